"""Feed subscription records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import case, delete, literal, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from article_store.articles import _remove_feed_reference, count_articles_for_feed, select_feed_for_lock
from article_store.models import Feed
from common.datetime import ensure_utc, utc_now
from common.errors import DuplicateFeedError, FeedNotFoundError
from fetch_feeds.models import FeedMetadata

logger = logging.getLogger(__name__)


@dataclass
class FeedSummary:
    """A feed with its article count, as listed for its owner."""
    id: str
    owner_id: str
    url: str
    title: Optional[str]
    description: Optional[str]
    link: Optional[str]
    image_url: Optional[str]
    language: Optional[str]
    last_fetched: Optional[datetime]
    created_at: datetime
    article_count: int = 0


def create_feed(session: Session, owner_id: str, url: str) -> Feed:
    """Subscribe `owner_id` to `url`. The feed starts unfetched."""
    feed = Feed(owner_id=owner_id, url=url.strip())
    session.add(feed)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise DuplicateFeedError(owner_id, url) from e
    logger.info("Created feed %s for owner %s (%s)", feed.id, owner_id, feed.url)
    return feed


def get_feed(session: Session, feed_id: str) -> Feed:
    feed = session.get(Feed, feed_id, populate_existing=True)
    if feed is None:
        raise FeedNotFoundError(feed_id)
    return feed


def get_feeds(session: Session, feed_ids: list[str]) -> list[Feed]:
    """Return the feeds that exist among `feed_ids`, in request order."""
    if not feed_ids:
        return []
    stmt = select(Feed).where(Feed.id.in_(feed_ids)).execution_options(populate_existing=True)
    found = {feed.id: feed for feed in session.scalars(stmt)}
    return [found[feed_id] for feed_id in dict.fromkeys(feed_ids) if feed_id in found]


def list_feed_ids_by_owner(session: Session, owner_id: str) -> list[str]:
    stmt = select(Feed.id).where(Feed.owner_id == owner_id).order_by(Feed.created_at.desc())
    return list(session.scalars(stmt))


def list_feeds_by_owner(session: Session, owner_id: str) -> list[FeedSummary]:
    """All feeds of `owner_id`, newest first, with article counts."""
    stmt = (
        select(Feed)
        .where(Feed.owner_id == owner_id)
        .order_by(Feed.created_at.desc(), Feed.id)
    )
    feeds = session.scalars(stmt).all()
    return [
        FeedSummary(
            id=feed.id,
            owner_id=feed.owner_id,
            url=feed.url,
            title=feed.title,
            description=feed.description,
            link=feed.link,
            image_url=feed.image_url,
            language=feed.language,
            last_fetched=feed.last_fetched,
            created_at=feed.created_at,
            article_count=count_articles_for_feed(session, feed.id),
        )
        for feed in feeds
    ]


def mark_feed_fetched(
    session: Session,
    feed_id: str,
    metadata: FeedMetadata | None,
    fetched_at: datetime | None = None,
) -> Feed:
    """Record a successful fetch: refresh display metadata and advance last_fetched.

    last_fetched never moves backwards, so a slow refresh finishing after a
    faster one cannot make the feed look staler than it is.
    """
    fetched_at = ensure_utc(fetched_at) or utc_now()
    fetched_literal = literal(fetched_at, type_=Feed.last_fetched.type)

    values = {
        "last_fetched": case(
            (or_(Feed.last_fetched.is_(None), Feed.last_fetched < fetched_literal), fetched_literal),
            else_=Feed.last_fetched,
        ),
        "updated_at": utc_now(),
    }
    if metadata is not None:
        for field_name in ("title", "description", "link", "image_url", "language"):
            value = getattr(metadata, field_name)
            if value:
                values[field_name] = value

    result = session.execute(
        update(Feed).where(Feed.id == feed_id).values(**values),
        execution_options={"synchronize_session": False},
    )
    if result.rowcount == 0:
        session.rollback()
        raise FeedNotFoundError(feed_id)
    session.commit()
    return get_feed(session, feed_id)


def delete_feed(session: Session, feed_id: str) -> tuple[int, int]:
    """Delete a feed, detaching it from its articles and purging orphans, atomically.

    Returns (references_removed, articles_deleted).
    """
    try:
        if session.scalar(select_feed_for_lock(feed_id)) is None:
            raise FeedNotFoundError(feed_id)
        counts = _remove_feed_reference(session, feed_id)
        session.execute(
            delete(Feed).where(Feed.id == feed_id),
            execution_options={"synchronize_session": False},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.expunge_all()
    logger.info("Deleted feed %s", feed_id)
    return counts
