"""Feed subscription and refresh endpoints."""

from fastapi import APIRouter

from article_store.articles import count_articles_for_feed
from article_store.feeds import get_feed, list_feeds_by_owner
from common.db import get_session_factory
from newsletter_api.dependencies import Config, DbSession, OwnerId, require_owned_feeds
from newsletter_api.models import (
    FeedCreateRequest,
    FeedCreateResponse,
    FeedDeleteResponse,
    FeedListResponse,
    FeedRefreshResult,
    FeedResponse,
    RefreshRequest,
    RefreshResponse,
)
from refresh_feeds.refresh import refresh_stale_feeds
from refresh_feeds.subscribe import remove_feed, validate_and_add_feed

router = APIRouter(prefix="/feeds", tags=["feeds"])


def _feed_response(feed, article_count: int) -> FeedResponse:
    return FeedResponse(
        id=feed.id,
        url=feed.url,
        title=feed.title,
        description=feed.description,
        link=feed.link,
        image_url=feed.image_url,
        language=feed.language,
        last_fetched=feed.last_fetched,
        created_at=feed.created_at,
        article_count=article_count,
    )


@router.get("", response_model=FeedListResponse)
def list_feeds(session: DbSession, owner_id: OwnerId):
    """List the owner's feeds, newest first, with article counts."""
    feeds = list_feeds_by_owner(session, owner_id)
    return FeedListResponse(
        feeds=[_feed_response(feed, feed.article_count) for feed in feeds],
        total=len(feeds),
    )


@router.post("", response_model=FeedCreateResponse, status_code=201)
def add_feed(request: FeedCreateRequest, session: DbSession, owner_id: OwnerId, config: Config):
    """Validate a feed URL, subscribe to it and ingest its current articles.

    A feed whose initial ingest fails is still created; the failure is
    returned in `error`.
    """
    result = validate_and_add_feed(
        session,
        owner_id,
        request.url,
        timeout=config.feeds.fetch_timeout_seconds,
        user_agent=config.feeds.user_agent,
    )
    return FeedCreateResponse(
        feed=_feed_response(result.feed, count_articles_for_feed(session, result.feed.id)),
        articles_created=result.articles_created,
        articles_linked=result.articles_linked,
        error=result.error,
    )


@router.post("/refresh", response_model=RefreshResponse)
def refresh(request: RefreshRequest, session: DbSession, owner_id: OwnerId, config: Config):
    """Refresh the stale feeds among `feed_ids`. Fresh feeds are skipped unless `force`."""
    feed_ids = require_owned_feeds(session, owner_id, request.feed_ids)
    report, summary = refresh_stale_feeds(
        feed_ids,
        session_factory=get_session_factory(),
        config=config.feeds,
        force=request.force,
    )
    return RefreshResponse(
        succeeded=summary.succeeded,
        failed=summary.failed,
        skipped=summary.skipped,
        missing=report.missing,
        outcomes=[
            FeedRefreshResult(
                feed_id=outcome.feed_id,
                status=outcome.status,
                created=outcome.created,
                linked=outcome.linked,
                unchanged=outcome.unchanged,
                errors=outcome.errors,
                error=outcome.error,
            )
            for outcome in summary.outcomes
        ],
    )


@router.get("/{feed_id}", response_model=FeedResponse)
def get_one_feed(feed_id: str, session: DbSession, owner_id: OwnerId):
    require_owned_feeds(session, owner_id, [feed_id])
    feed = get_feed(session, feed_id)
    return _feed_response(feed, count_articles_for_feed(session, feed_id))


@router.delete("/{feed_id}", response_model=FeedDeleteResponse)
def delete_one_feed(feed_id: str, session: DbSession, owner_id: OwnerId):
    """Delete a feed. Articles no other feed references are deleted with it."""
    removed, deleted = remove_feed(session, owner_id, feed_id)
    return FeedDeleteResponse(feed_id=feed_id, references_removed=removed, articles_deleted=deleted)
