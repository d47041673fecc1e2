"""Subscribe an owner to a feed URL, or remove one of their feeds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from article_store.feeds import create_feed, delete_feed, get_feed
from article_store.models import Feed
from common.config import FeedsConfig
from common.errors import FeedError, FeedNotFoundError, InvalidFeedError
from fetch_feeds.fetch_feed import validate_feed_url
from refresh_feeds.refresh import fetch_and_store_feed

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionResult:
    feed: Feed
    articles_created: int = 0
    articles_linked: int = 0
    error: Optional[str] = None


def validate_and_add_feed(
    session: Session,
    owner_id: str,
    url: str,
    timeout: float = 30,
    user_agent: str = FeedsConfig.user_agent,
) -> SubscriptionResult:
    """Validate `url`, subscribe `owner_id` to it, and ingest its current articles.

    A feed that validated but whose initial ingest fails is kept, with the
    failure reported on the result.

    Raises:
        InvalidFeedError: `url` cannot be fetched and parsed as a feed.
        DuplicateFeedError: the owner is already subscribed to `url`.
    """
    url = (url or "").strip()
    if not validate_feed_url(url, timeout=timeout):
        raise InvalidFeedError(url, "Invalid RSS feed URL or unable to fetch feed")

    feed = create_feed(session, owner_id, url)

    try:
        outcome = fetch_and_store_feed(session, feed.id, timeout=timeout, user_agent=user_agent)
    except FeedError as e:
        logger.warning("Initial fetch failed for new feed %s: %s", feed.id, e)
        return SubscriptionResult(feed=feed, error="Feed created but initial fetch failed")

    if not outcome.succeeded:
        return SubscriptionResult(
            feed=get_feed(session, feed.id),
            articles_created=outcome.created,
            articles_linked=outcome.linked,
            error="Feed created but initial fetch failed",
        )

    logger.info(
        "Subscribed %s to %s: %d new articles, %d linked",
        owner_id, url, outcome.created, outcome.linked,
    )
    return SubscriptionResult(
        feed=get_feed(session, feed.id),
        articles_created=outcome.created,
        articles_linked=outcome.linked,
    )


def remove_feed(session: Session, owner_id: str, feed_id: str) -> tuple[int, int]:
    """Delete one of `owner_id`'s feeds. Returns (references_removed, articles_deleted).

    Raises:
        FeedNotFoundError: the feed does not exist or belongs to another owner.
    """
    feed = get_feed(session, feed_id)
    if feed.owner_id != owner_id:
        raise FeedNotFoundError(feed_id)
    return delete_feed(session, feed_id)
