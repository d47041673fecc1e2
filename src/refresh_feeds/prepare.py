"""Refresh stale feeds, then gather the articles a newsletter will be drafted from."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import sessionmaker

from article_store.articles import query_articles_by_feeds_and_range
from common.config import FeedsConfig, get_config
from common.datetime import ensure_utc
from common.db import get_session_factory
from common.errors import NoContentError
from refresh_feeds.models import PreparedArticles
from refresh_feeds.refresh import refresh_stale_feeds

logger = logging.getLogger(__name__)


def prepare_feeds_and_articles(
    feed_ids: list[str],
    start: datetime,
    end: datetime,
    limit: int | None = None,
    session_factory: sessionmaker | None = None,
    config: FeedsConfig | None = None,
    force: bool = False,
) -> PreparedArticles:
    """Bring the requested feeds up to date and return their articles in [start, end].

    Feeds that fail to refresh do not abort preparation: whatever is already
    stored for them is still returned, and the failures are reported on
    `PreparedArticles.refresh`.

    Raises:
        ValueError: `start` is after `end` or no feed ids were given.
        NoContentError: no stored article matches, with the refresh summary attached.
    """
    start, end = ensure_utc(start), ensure_utc(end)
    if start > end:
        raise ValueError("start must not be after end")
    feed_ids = list(dict.fromkeys(feed_ids))
    if not feed_ids:
        raise ValueError("At least one feed id is required")

    config = config or get_config().feeds
    session_factory = session_factory or get_session_factory()
    limit = config.article_limit if limit is None else limit

    report, summary = refresh_stale_feeds(
        feed_ids, session_factory=session_factory, config=config, force=force
    )
    if summary.failed:
        logger.warning(
            "%d of %d feeds failed to refresh: %s",
            summary.failed, len(feed_ids), ", ".join(summary.failed_feed_ids),
        )

    with session_factory() as session:
        articles = query_articles_by_feeds_and_range(session, feed_ids, start, end, limit=limit)

    if not articles:
        logger.warning(
            "No articles for %d feeds between %s and %s",
            len(feed_ids), start.isoformat(), end.isoformat(),
        )
        raise NoContentError(summary)

    logger.info("Prepared %d articles from %d feeds", len(articles), len(feed_ids))
    return PreparedArticles(
        articles=articles,
        refresh=summary,
        fresh_feed_ids=report.fresh,
        missing_feed_ids=report.missing,
    )
