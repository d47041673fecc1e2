"""Tests for article_store.feeds module."""

from datetime import datetime, timedelta, timezone

import pytest

from article_store.articles import upsert_article
from article_store.feeds import (
    create_feed,
    get_feed,
    get_feeds,
    list_feed_ids_by_owner,
    list_feeds_by_owner,
    mark_feed_fetched,
)
from common.errors import DuplicateFeedError, FeedNotFoundError
from fetch_feeds.models import FeedMetadata

FETCHED_AT = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestCreateFeed:
    def test_new_feed_is_unfetched(self, session) -> None:
        feed = create_feed(session, "owner-1", "  https://example.com/rss ")
        assert feed.url == "https://example.com/rss"
        assert feed.last_fetched is None

    def test_duplicate_url_for_same_owner_raises(self, session) -> None:
        create_feed(session, "owner-1", "https://example.com/rss")
        with pytest.raises(DuplicateFeedError):
            create_feed(session, "owner-1", "https://example.com/rss")

    def test_same_url_for_different_owners_is_allowed(self, session) -> None:
        first = create_feed(session, "owner-1", "https://example.com/rss")
        second = create_feed(session, "owner-2", "https://example.com/rss")
        assert first.id != second.id


class TestGetFeeds:
    def test_get_feed_unknown_raises(self, session) -> None:
        with pytest.raises(FeedNotFoundError):
            get_feed(session, "missing")

    def test_returns_existing_in_request_order(self, session) -> None:
        a = create_feed(session, "owner-1", "https://a.example.com/rss")
        b = create_feed(session, "owner-1", "https://b.example.com/rss")
        feeds = get_feeds(session, [b.id, "missing", a.id, b.id])
        assert [feed.id for feed in feeds] == [b.id, a.id]

    def test_list_ids_by_owner(self, session) -> None:
        a = create_feed(session, "owner-1", "https://a.example.com/rss")
        create_feed(session, "owner-2", "https://b.example.com/rss")
        assert list_feed_ids_by_owner(session, "owner-1") == [a.id]


class TestListFeedsByOwner:
    def test_includes_article_counts(self, session, article_factory) -> None:
        a = create_feed(session, "owner-1", "https://a.example.com/rss")
        b = create_feed(session, "owner-1", "https://b.example.com/rss")
        upsert_article(session, article_factory("g1"), a.id)
        upsert_article(session, article_factory("g2"), a.id)
        upsert_article(session, article_factory("g2"), b.id)

        counts = {feed.id: feed.article_count for feed in list_feeds_by_owner(session, "owner-1")}
        assert counts == {a.id: 2, b.id: 1}

    def test_other_owners_feeds_are_excluded(self, session) -> None:
        create_feed(session, "owner-2", "https://a.example.com/rss")
        assert list_feeds_by_owner(session, "owner-1") == []


class TestMarkFeedFetched:
    def test_updates_metadata_and_last_fetched(self, session) -> None:
        feed = create_feed(session, "owner-1", "https://example.com/rss")
        metadata = FeedMetadata(title="Example", description="All the news", language="en")

        updated = mark_feed_fetched(session, feed.id, metadata, fetched_at=FETCHED_AT)

        assert updated.title == "Example"
        assert updated.description == "All the news"
        assert updated.language == "en"
        assert updated.last_fetched == FETCHED_AT

    def test_empty_metadata_keeps_previous_values(self, session) -> None:
        feed = create_feed(session, "owner-1", "https://example.com/rss")
        mark_feed_fetched(session, feed.id, FeedMetadata(title="Example"), fetched_at=FETCHED_AT)
        updated = mark_feed_fetched(session, feed.id, FeedMetadata(), fetched_at=FETCHED_AT + timedelta(hours=1))
        assert updated.title == "Example"

    def test_last_fetched_never_moves_backwards(self, session) -> None:
        feed = create_feed(session, "owner-1", "https://example.com/rss")
        mark_feed_fetched(session, feed.id, None, fetched_at=FETCHED_AT)
        updated = mark_feed_fetched(session, feed.id, None, fetched_at=FETCHED_AT - timedelta(hours=2))
        assert updated.last_fetched == FETCHED_AT

    def test_unknown_feed_raises(self, session) -> None:
        with pytest.raises(FeedNotFoundError):
            mark_feed_fetched(session, "missing", None)
