"""Refresh stale feeds concurrently and ingest their articles."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from article_store.articles import bulk_upsert_articles
from article_store.feeds import get_feed, get_feeds, mark_feed_fetched
from common.config import FeedsConfig, get_config
from common.db import get_session_factory
from common.errors import FeedError, FeedNotFoundError
from fetch_feeds.fetch_feed import fetch_and_parse_feed
from fetch_feeds.models import ParsedFeed
from refresh_feeds.freshness import get_feeds_to_refresh
from refresh_feeds.models import FAILED, SUCCEEDED, FeedRefreshOutcome, FreshnessReport, RefreshSummary

logger = logging.getLogger(__name__)


def store_parsed_feed(session: Session, feed_id: str, parsed: ParsedFeed) -> FeedRefreshOutcome:
    """Store the articles of one fetch for `feed_id`, then record the fetch on the feed.

    The feed's metadata and last_fetched only change once every article from
    the fetch has been stored.
    """
    stored = bulk_upsert_articles(session, parsed.articles, feed_id)

    outcome = FeedRefreshOutcome(
        feed_id=feed_id,
        status=SUCCEEDED,
        created=stored.created,
        linked=stored.linked,
        unchanged=stored.unchanged,
        errors=stored.errors,
    )
    if stored.errors:
        outcome.status = FAILED
        outcome.error = f"{stored.errors} of {len(parsed.articles)} articles could not be stored"
        logger.warning("Not marking feed %s as fetched: %s", feed_id, outcome.error)
        return outcome

    mark_feed_fetched(session, feed_id, parsed.metadata)
    return outcome


def fetch_and_store_feed(
    session: Session,
    feed_id: str,
    timeout: float = 30,
    user_agent: str = FeedsConfig.user_agent,
) -> FeedRefreshOutcome:
    """Fetch one feed and store its articles.

    Raises:
        FeedNotFoundError: the feed does not exist.
        FetchError / ParseError: the feed could not be fetched or parsed.
    """
    feed = get_feed(session, feed_id)
    parsed = fetch_and_parse_feed(feed.url, feed_id, timeout=timeout, user_agent=user_agent)
    outcome = store_parsed_feed(session, feed_id, parsed)
    outcome.url = feed.url
    return outcome


def _refresh_url(
    session_factory: Callable[[], Session],
    url: str,
    feed_ids: list[str],
    timeout: float,
    user_agent: str,
) -> list[FeedRefreshOutcome]:
    """Fetch `url` once and store the result for every feed subscribed to it."""
    try:
        parsed = fetch_and_parse_feed(url, feed_ids[0], timeout=timeout, user_agent=user_agent)
    except FeedError as e:
        logger.warning("Failed to refresh %s for feeds %s: %s", url, feed_ids, e)
        return [
            FeedRefreshOutcome(feed_id=feed_id, status=FAILED, url=url, error=str(e))
            for feed_id in feed_ids
        ]

    outcomes = []
    with session_factory() as session:
        for feed_id in feed_ids:
            try:
                outcome = store_parsed_feed(session, feed_id, parsed)
            except FeedNotFoundError as e:
                logger.warning("Feed removed during refresh: %s", e)
                outcome = FeedRefreshOutcome(feed_id=feed_id, status=FAILED, error=str(e))
            except Exception as e:
                logger.exception("Unexpected error storing feed %s", feed_id)
                session.rollback()
                outcome = FeedRefreshOutcome(feed_id=feed_id, status=FAILED, error=str(e))
            outcome.url = url
            outcomes.append(outcome)
    return outcomes


def refresh_feeds(
    feed_ids: list[str],
    session_factory: sessionmaker | None = None,
    config: FeedsConfig | None = None,
) -> RefreshSummary:
    """Refresh every feed in `feed_ids` concurrently, fetching each distinct URL once.

    Each URL settles independently: failures are recorded in the summary and
    never abort or roll back sibling refreshes. URLs still in flight when the
    overall budget expires are recorded as failed.
    """
    config = config or get_config().feeds
    session_factory = session_factory or get_session_factory()
    feed_ids = list(dict.fromkeys(feed_ids))
    if not feed_ids:
        return RefreshSummary()

    outcomes: dict[str, FeedRefreshOutcome] = {}
    feeds_by_url: dict[str, list[str]] = {}
    with session_factory() as session:
        for feed in get_feeds(session, feed_ids):
            feeds_by_url.setdefault(feed.url, []).append(feed.id)
    found = {feed_id for ids in feeds_by_url.values() for feed_id in ids}
    for feed_id in feed_ids:
        if feed_id not in found:
            outcomes[feed_id] = FeedRefreshOutcome(
                feed_id=feed_id, status=FAILED, error=str(FeedNotFoundError(feed_id))
            )

    logger.info("Refreshing %d feeds across %d URLs", len(feed_ids), len(feeds_by_url))
    executor = ThreadPoolExecutor(
        max_workers=max(1, min(config.max_workers, len(feeds_by_url))),
        thread_name_prefix="feed-refresh",
    )
    futures = {
        executor.submit(
            _refresh_url,
            session_factory,
            url,
            url_feed_ids,
            config.fetch_timeout_seconds,
            config.user_agent,
        ): url
        for url, url_feed_ids in feeds_by_url.items()
    }

    try:
        for future in as_completed(futures, timeout=config.refresh_timeout_seconds):
            url = futures[future]
            try:
                for outcome in future.result():
                    outcomes[outcome.feed_id] = outcome
            except Exception as e:
                logger.exception("Refresh worker for %s failed", url)
                for feed_id in feeds_by_url[url]:
                    outcomes[feed_id] = FeedRefreshOutcome(
                        feed_id=feed_id, status=FAILED, url=url, error=str(e)
                    )
    except FuturesTimeoutError:
        logger.error(
            "Refresh budget of %ss exceeded with %d feeds outstanding",
            config.refresh_timeout_seconds, len(feed_ids) - len(outcomes),
        )
        for future, url in futures.items():
            future.cancel()
            for feed_id in feeds_by_url[url]:
                outcomes.setdefault(feed_id, FeedRefreshOutcome(
                    feed_id=feed_id,
                    status=FAILED,
                    url=url,
                    error=f"Refresh timed out after {config.refresh_timeout_seconds}s",
                ))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    summary = RefreshSummary(outcomes=[outcomes[feed_id] for feed_id in feed_ids])
    logger.info("Feed refresh complete: %d successful, %d failed", summary.succeeded, summary.failed)
    return summary


def refresh_stale_feeds(
    feed_ids: list[str],
    session_factory: sessionmaker | None = None,
    config: FeedsConfig | None = None,
    force: bool = False,
) -> tuple[FreshnessReport, RefreshSummary]:
    """Refresh the feeds among `feed_ids` whose URL is stale (all of them if `force`)."""
    config = config or get_config().feeds
    session_factory = session_factory or get_session_factory()

    with session_factory() as session:
        report = get_feeds_to_refresh(session, feed_ids, window=config.freshness_window)

    to_refresh = (report.stale + report.fresh) if force else report.stale
    if not to_refresh:
        logger.info("All %d feeds are fresh, skipping refresh", len(report.fresh))
        return report, RefreshSummary(skipped=len(report.fresh))

    logger.info("Refreshing %d stale feeds (out of %d total)", len(to_refresh), len(feed_ids))
    summary = refresh_feeds(to_refresh, session_factory=session_factory, config=config)
    summary.skipped = 0 if force else len(report.fresh)
    return report, summary
