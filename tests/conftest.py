"""Shared fixtures: an isolated SQLite database and injected config per test."""

from datetime import datetime, timezone

import pytest

from article_store.feeds import create_feed
from article_store.models import create_tables
from common.config import AppConfig, DatabaseConfig, FeedsConfig, reset_config, set_config
from common.db import configure_database, get_engine
from fetch_feeds.models import FeedArticle


@pytest.fixture(autouse=True)
def app_config(tmp_path):
    config = AppConfig(
        feeds=FeedsConfig(fetch_timeout_seconds=5, refresh_timeout_seconds=10, max_workers=4),
        database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'newsletter.db'}"),
    )
    set_config(config)
    yield config
    reset_config()


@pytest.fixture
def session_factory(app_config):
    factory = configure_database(app_config.database.url)
    create_tables(get_engine())
    yield factory
    get_engine().dispose()


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def make_feed(session_factory):
    """Create a feed in its own short-lived session and return its id."""

    def _make_feed(owner_id: str = "owner-1", url: str = "https://example.com/rss") -> str:
        with session_factory() as session:
            return create_feed(session, owner_id, url).id

    return _make_feed


def make_article(guid: str, feed_id: str = "", day: int = 10, hour: int = 12, **kwargs) -> FeedArticle:
    values = {
        "feed_id": feed_id,
        "guid": guid,
        "title": f"Article {guid}",
        "link": f"https://example.com/{guid}",
        "content": None,
        "summary": f"Summary of {guid}",
        "published_at": datetime(2024, 3, day, hour, 0, tzinfo=timezone.utc),
    }
    values.update(kwargs)
    return FeedArticle(**values)


@pytest.fixture
def article_factory():
    return make_article
