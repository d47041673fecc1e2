"""Deduplicated article storage keyed by the feed-provided GUID.

An article's source set lives in ``article_sources`` with a composite primary
key, so adding a feed to the set is an insert-if-absent and never a
read-modify-write. First sightings use the same discipline on ``articles``:
whichever writer loses the race on a new GUID falls through to linking its
feed to the row the winner created.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from article_store.models import Article, ArticleSource, BulkUpsertResult, Feed, StoredArticle
from common.datetime import ensure_utc, utc_now
from common.errors import ConflictError, FeedNotFoundError
from fetch_feeds.models import FeedArticle

logger = logging.getLogger(__name__)

MAX_UPSERT_ATTEMPTS = 3

CREATED = "created"
LINKED = "linked"
UNCHANGED = "unchanged"


def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Unsupported database dialect: {dialect}")


def select_feed_for_lock(feed_id: str, shared: bool = False):
    """Select a feed row locked FOR SHARE (upserts) or FOR UPDATE (deletes).

    Upserts and deletes of the same feed serialize on Postgres: a delete
    waits for in-flight upserts to commit before purging, and an upsert that
    waited on a delete finds the feed gone. SQLite renders no lock clause.
    """
    return select(Feed.id).where(Feed.id == feed_id).with_for_update(read=shared)


def _feed_exists(session: Session, feed_id: str) -> bool:
    return session.scalar(select_feed_for_lock(feed_id, shared=True)) is not None


def _upsert_once(session: Session, article: FeedArticle, feed_id: str) -> str:
    insert = _dialect_insert(session)
    now = utc_now()

    article_stmt = insert(Article).values(
        guid=article.guid,
        primary_feed_id=feed_id,
        title=article.title,
        link=article.link,
        content=article.content,
        summary=article.summary,
        published_at=ensure_utc(article.published_at),
        author=article.author,
        categories=list(article.categories or []),
        image_url=article.image_url,
        created_at=now,
        updated_at=now,
    ).on_conflict_do_nothing(index_elements=["guid"])

    source_stmt = insert(ArticleSource).values(
        article_guid=article.guid,
        feed_id=feed_id,
        added_at=now,
    ).on_conflict_do_nothing(index_elements=["article_guid", "feed_id"])

    try:
        created = session.execute(article_stmt).rowcount > 0
        linked = session.execute(source_stmt).rowcount > 0
    except IntegrityError as e:
        # The article or feed row vanished between our two statements
        raise ConflictError(article.guid, "Concurrent delete") from e

    if created:
        return CREATED
    return LINKED if linked else UNCHANGED


def _upsert_with_retry(session: Session, article: FeedArticle, feed_id: str) -> str:
    for attempt in range(1, MAX_UPSERT_ATTEMPTS + 1):
        if not _feed_exists(session, feed_id):
            session.rollback()
            raise FeedNotFoundError(feed_id)
        try:
            status = _upsert_once(session, article, feed_id)
            session.commit()
            return status
        except ConflictError:
            session.rollback()
            if attempt == MAX_UPSERT_ATTEMPTS:
                raise
            logger.warning(
                "Conflict storing article %s for feed %s, retrying (%d/%d)",
                article.guid, feed_id, attempt, MAX_UPSERT_ATTEMPTS,
            )
    raise AssertionError("unreachable")


def upsert_article(session: Session, article: FeedArticle, feed_id: str) -> StoredArticle:
    """Insert an article on first sighting of its GUID, else add `feed_id` to its sources.

    Re-ingesting the same (guid, feed) pair leaves the source set unchanged.
    Conflicts with concurrent writers are retried here.

    Raises:
        FeedNotFoundError: `feed_id` does not exist (e.g. it was just deleted).
    """
    _upsert_with_retry(session, article, feed_id)
    return get_article(session, article.guid)


def bulk_upsert_articles(
    session: Session,
    articles: Iterable[FeedArticle],
    feed_id: str,
) -> BulkUpsertResult:
    """Upsert every article for one feed, counting per-article errors instead of raising."""
    result = BulkUpsertResult()

    for article in articles:
        try:
            status = _upsert_with_retry(session, article, feed_id)
        except FeedNotFoundError:
            raise
        except Exception as e:
            logger.error("Failed to store article %s for feed %s: %s", article.guid, feed_id, e)
            session.rollback()
            result.errors += 1
            continue

        if status == CREATED:
            result.created += 1
        elif status == LINKED:
            result.linked += 1
        else:
            result.unchanged += 1

    logger.info(
        "Stored articles for feed %s: %d created, %d linked, %d unchanged, %d errors",
        feed_id, result.created, result.linked, result.unchanged, result.errors,
    )
    return result


def get_article(session: Session, guid: str) -> StoredArticle | None:
    stmt = (
        select(Article)
        .options(selectinload(Article.sources))
        .where(Article.guid == guid)
        .execution_options(populate_existing=True)
    )
    article = session.scalars(stmt).one_or_none()
    if article is None:
        return None
    feed = session.get(Feed, article.primary_feed_id, populate_existing=True)
    return _to_stored_article(article, feed)


def query_articles_by_feeds_and_range(
    session: Session,
    feed_ids: list[str],
    start: datetime,
    end: datetime,
    limit: int = 100,
) -> list[StoredArticle]:
    """Return articles from any of `feed_ids` published within [start, end].

    An article matches if its primary feed or any of its source feeds is in
    `feed_ids`. Results are newest first and capped at `limit`.
    """
    start, end = ensure_utc(start), ensure_utc(end)
    if start > end:
        raise ValueError("start must not be after end")

    feed_ids = list(dict.fromkeys(feed_ids))
    if not feed_ids or limit <= 0:
        return []

    sourced_by_feeds = (
        select(ArticleSource.article_guid)
        .where(ArticleSource.article_guid == Article.guid, ArticleSource.feed_id.in_(feed_ids))
        .exists()
    )
    stmt = (
        select(Article)
        .options(selectinload(Article.sources))
        .where(or_(Article.primary_feed_id.in_(feed_ids), sourced_by_feeds))
        .where(Article.published_at >= start, Article.published_at <= end)
        .order_by(Article.published_at.desc(), Article.guid)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    articles = session.scalars(stmt).all()

    primary_ids = {article.primary_feed_id for article in articles}
    feeds = {
        feed.id: feed
        for feed in session.scalars(
            select(Feed).where(Feed.id.in_(primary_ids)).execution_options(populate_existing=True)
        )
    } if primary_ids else {}

    return [_to_stored_article(article, feeds.get(article.primary_feed_id)) for article in articles]


def count_articles_for_feed(session: Session, feed_id: str) -> int:
    sourced_by_feed = (
        select(ArticleSource.article_guid)
        .where(ArticleSource.article_guid == Article.guid, ArticleSource.feed_id == feed_id)
        .exists()
    )
    stmt = select(func.count()).select_from(Article).where(
        or_(Article.primary_feed_id == feed_id, sourced_by_feed)
    )
    return session.scalar(stmt) or 0


def remove_feed_reference(session: Session, feed_id: str) -> tuple[int, int]:
    """Drop `feed_id` from every article's sources and purge articles left with none.

    Runs as one transaction. Returns (references_removed, articles_deleted).
    """
    try:
        counts = _remove_feed_reference(session, feed_id)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return counts


def _remove_feed_reference(session: Session, feed_id: str) -> tuple[int, int]:
    """Transaction body of remove_feed_reference; the caller commits."""
    no_sync = {"synchronize_session": False}

    removed = session.execute(
        delete(ArticleSource).where(ArticleSource.feed_id == feed_id),
        execution_options=no_sync,
    ).rowcount

    has_sources = select(ArticleSource.article_guid).where(
        ArticleSource.article_guid == Article.guid
    ).exists()
    deleted = session.execute(
        delete(Article).where(~has_sources),
        execution_options=no_sync,
    ).rowcount

    # Surviving articles keep primary_feed in their source set
    earliest_source = (
        select(ArticleSource.feed_id)
        .where(ArticleSource.article_guid == Article.guid)
        .order_by(ArticleSource.added_at, ArticleSource.feed_id)
        .limit(1)
        .scalar_subquery()
    )
    session.execute(
        update(Article)
        .where(Article.primary_feed_id == feed_id)
        .values(primary_feed_id=earliest_source, updated_at=utc_now()),
        execution_options=no_sync,
    )

    logger.info(
        "Removed feed %s from %d articles, deleted %d orphaned articles",
        feed_id, removed, deleted,
    )
    return removed, deleted


def _to_stored_article(article: Article, feed: Feed | None) -> StoredArticle:
    return StoredArticle(
        guid=article.guid,
        title=article.title,
        link=article.link,
        content=article.content,
        summary=article.summary,
        published_at=article.published_at,
        author=article.author,
        categories=list(article.categories or []),
        image_url=article.image_url,
        primary_feed_id=article.primary_feed_id,
        source_feed_ids=sorted(source.feed_id for source in article.sources),
        feed_title=feed.title if feed else None,
        feed_url=feed.url if feed else None,
    )
