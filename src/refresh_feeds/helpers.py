"""Helper functions for the refresh_feeds CLIs."""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from article_store.feeds import list_feed_ids_by_owner
from common.cli_helpers import parse_id_list
from refresh_feeds.models import RefreshSummary

logger = logging.getLogger(__name__)


def resolve_feed_ids(session: Session, feed_ids: str | None, owner_id: str | None) -> list[str]:
    '''Resolve --feed-ids / --owner into the list of feed ids to refresh.'''

    if feed_ids:
        return parse_id_list(feed_ids)
    if owner_id:
        return list_feed_ids_by_owner(session, owner_id)
    raise ValueError("Either --feed-ids or --owner is required")


def format_refresh_summary(summary: RefreshSummary) -> list[str]:
    '''Render a refresh summary as one line per feed followed by the totals.'''

    lines = []
    for outcome in summary.outcomes:
        if outcome.succeeded:
            lines.append(
                f"  ok      {outcome.feed_id}  created={outcome.created} "
                f"linked={outcome.linked} unchanged={outcome.unchanged}"
            )
        else:
            lines.append(f"  failed  {outcome.feed_id}  {outcome.error}")
    lines.append(
        f"{summary.succeeded} succeeded, {summary.failed} failed, {summary.skipped} skipped as fresh"
    )
    return lines


def parse_refresh_feeds_args() -> argparse.Namespace:
    '''Parse CLI arguments for refresh-feeds.'''

    parser = argparse.ArgumentParser(description="Refresh stale RSS feeds and store their articles.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--feed-ids", default=None, help="Comma-separated list of feed ids.")
    group.add_argument("--owner", default=None, help="Refresh every feed of this owner.")
    parser.add_argument("--force", action="store_true", help="Refetch feeds even if they are fresh.")
    parser.add_argument("--config", default=None, help="Config name under configs/ (default: CONFIG_ENV or prod).")
    return parser.parse_args()


def parse_manage_feeds_args() -> argparse.Namespace:
    '''Parse CLI arguments for manage-feeds.'''

    parser = argparse.ArgumentParser(description="Add, remove or list an owner's RSS feeds.")
    parser.add_argument("--config", default=None, help="Config name under configs/ (default: CONFIG_ENV or prod).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Validate and subscribe to a feed URL.")
    add.add_argument("--owner", required=True)
    add.add_argument("--url", required=True)

    remove = subparsers.add_parser("remove", help="Delete a feed and its orphaned articles.")
    remove.add_argument("--owner", required=True)
    remove.add_argument("--feed-id", required=True)

    list_ = subparsers.add_parser("list", help="List an owner's feeds with article counts.")
    list_.add_argument("--owner", required=True)

    return parser.parse_args()
