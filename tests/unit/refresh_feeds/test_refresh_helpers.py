"""Tests for refresh_feeds.helpers module."""

import pytest

from refresh_feeds.helpers import format_refresh_summary, resolve_feed_ids
from refresh_feeds.models import FAILED, SUCCEEDED, FeedRefreshOutcome, RefreshSummary


class TestResolveFeedIds:
    def test_explicit_ids_win(self, session) -> None:
        assert resolve_feed_ids(session, "a, b,a", "owner-1") == ["a", "b"]

    def test_owner_lists_their_feeds(self, session, make_feed) -> None:
        feed_id = make_feed(owner_id="owner-1")
        assert resolve_feed_ids(session, None, "owner-1") == [feed_id]

    def test_requires_one_of_them(self, session) -> None:
        with pytest.raises(ValueError):
            resolve_feed_ids(session, None, None)


class TestFormatRefreshSummary:
    def test_renders_outcomes_and_totals(self) -> None:
        summary = RefreshSummary(
            outcomes=[
                FeedRefreshOutcome(feed_id="a", status=SUCCEEDED, created=3),
                FeedRefreshOutcome(feed_id="b", status=FAILED, error="Timed out after 30s"),
            ],
            skipped=2,
        )
        lines = format_refresh_summary(summary)
        assert "created=3" in lines[0]
        assert "Timed out after 30s" in lines[1]
        assert lines[-1] == "1 succeeded, 1 failed, 2 skipped as fresh"
