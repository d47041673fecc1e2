"""Decide which feeds need refetching, using a freshness window shared per URL.

Staleness is derived from persisted ``last_fetched`` timestamps at call time.
All feed records that share a URL share its most recent fetch, whichever
owner triggered it, so one fetch serves every subscriber.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from article_store.feeds import get_feeds
from article_store.models import Feed
from common.datetime import ensure_utc, utc_now
from refresh_feeds.models import FreshnessReport

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=3)


def is_stale(last_fetched: datetime | None, now: datetime, window: timedelta) -> bool:
    """A URL is stale if never fetched or fetched `window` or longer ago.

    A fetch exactly `window` old counts as stale.
    """
    if last_fetched is None:
        return True
    return ensure_utc(now) - ensure_utc(last_fetched) >= window


def latest_fetch_by_url(session: Session, urls: list[str]) -> dict[str, datetime | None]:
    """Most recent last_fetched across every feed record sharing each URL."""
    if not urls:
        return {}
    stmt = (
        select(Feed.url, func.max(Feed.last_fetched))
        .where(Feed.url.in_(urls))
        .group_by(Feed.url)
    )
    latest = {url: ensure_utc(last_fetched) for url, last_fetched in session.execute(stmt)}
    return {url: latest.get(url) for url in urls}


def get_feeds_to_refresh(
    session: Session,
    feed_ids: list[str],
    window: timedelta = DEFAULT_FRESHNESS_WINDOW,
    now: datetime | None = None,
) -> FreshnessReport:
    """Partition `feed_ids` into fresh and stale. Unknown ids are reported as missing."""
    now = ensure_utc(now) or utc_now()
    requested = list(dict.fromkeys(feed_ids))
    feeds = get_feeds(session, requested)

    found_ids = {feed.id for feed in feeds}
    report = FreshnessReport(missing=[feed_id for feed_id in requested if feed_id not in found_ids])
    if report.missing:
        logger.warning("Ignoring %d unknown feed ids: %s", len(report.missing), report.missing)

    latest = latest_fetch_by_url(session, sorted({feed.url for feed in feeds}))
    for feed in feeds:
        if is_stale(latest.get(feed.url), now, window):
            report.stale.append(feed.id)
        else:
            report.fresh.append(feed.id)

    logger.info(
        "Freshness check: %d fresh, %d stale (window %s)",
        len(report.fresh), len(report.stale), window,
    )
    return report
