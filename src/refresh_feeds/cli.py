"""CLIs for refreshing feeds and managing feed subscriptions."""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv

from article_store.feeds import list_feeds_by_owner
from article_store.models import create_tables
from common.cli_helpers import setup_logging
from common.config import load_config, set_config
from common.db import get_engine, get_session, get_session_factory
from common.errors import NewsletterError
from refresh_feeds.helpers import (
    format_refresh_summary,
    parse_manage_feeds_args,
    parse_refresh_feeds_args,
    resolve_feed_ids,
)
from refresh_feeds.refresh import refresh_stale_feeds
from refresh_feeds.subscribe import remove_feed, validate_and_add_feed

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def _init(config_name: str | None):
    config = load_config(config_name)
    set_config(config)
    create_tables(get_engine())
    return config


def main() -> None:
    args = parse_refresh_feeds_args()
    config = _init(args.config)

    with get_session() as session:
        try:
            feed_ids = resolve_feed_ids(session, args.feed_ids, args.owner)
        except ValueError as e:
            logger.error("%s", e)
            sys.exit(2)

    if not feed_ids:
        logger.warning("No feeds to refresh")
        return

    report, summary = refresh_stale_feeds(
        feed_ids,
        session_factory=get_session_factory(),
        config=config.feeds,
        force=args.force,
    )
    for feed_id in report.missing:
        logger.warning("Feed %s not found", feed_id)
    for line in format_refresh_summary(summary):
        print(line)

    if summary.failed:
        sys.exit(1)


def manage_main() -> None:
    args = parse_manage_feeds_args()
    config = _init(args.config)

    with get_session() as session:
        try:
            if args.command == "add":
                result = validate_and_add_feed(
                    session,
                    args.owner,
                    args.url,
                    timeout=config.feeds.fetch_timeout_seconds,
                    user_agent=config.feeds.user_agent,
                )
                print(f"{result.feed.id}  {result.feed.title or result.feed.url}")
                print(f"{result.articles_created} new articles, {result.articles_linked} linked")
                if result.error:
                    logger.warning("%s", result.error)

            elif args.command == "remove":
                removed, deleted = remove_feed(session, args.owner, args.feed_id)
                print(f"Removed feed {args.feed_id}: {removed} references, {deleted} articles deleted")

            elif args.command == "list":
                for feed in list_feeds_by_owner(session, args.owner):
                    last_fetched = feed.last_fetched.isoformat() if feed.last_fetched else "never"
                    print(f"{feed.id}  {feed.article_count:>5}  {last_fetched}  {feed.title or feed.url}")

        except NewsletterError as e:
            logger.error("%s", e)
            sys.exit(1)


if __name__ == "__main__":
    main()
