"""Tests for fetch_feeds.fetch_feed module."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from common.errors import FetchError, ParseError
from fetch_feeds.fetch_feed import (
    _parse_image,
    _parse_published_date,
    fetch_and_parse_feed,
    parse_feed_content,
    validate_feed_url,
)

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example News</title>
    <link>https://example.com/</link>
    <description>All the &lt;b&gt;news&lt;/b&gt;</description>
    <language>en-us</language>
    <image><url>https://example.com/logo.png</url><title>Example</title><link>https://example.com/</link></image>
    <item>
      <title>First story</title>
      <link>https://example.com/first</link>
      <guid>story-1</guid>
      <description>&lt;p&gt;First   summary&lt;/p&gt;</description>
      <pubDate>Mon, 04 Mar 2024 12:00:00 GMT</pubDate>
      <category>Tech</category>
      <media:content url="https://example.com/first.jpg" medium="image" />
    </item>
    <item>
      <title>No guid</title>
      <link>https://example.com/second</link>
      <pubDate>Tue, 05 Mar 2024 09:30:00 EST</pubDate>
    </item>
    <item>
      <title>Duplicate of first</title>
      <link>https://example.com/first-again</link>
      <guid>story-1</guid>
    </item>
    <item>
      <description>Neither a title nor a link</description>
    </item>
  </channel>
</rss>
"""

ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <subtitle>Updates</subtitle>
  <link href="https://atom.example.com/" />
  <id>urn:uuid:feed</id>
  <updated>2024-03-06T10:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <link href="https://atom.example.com/entry" />
    <id>urn:uuid:entry-1</id>
    <updated>2024-03-06T10:00:00Z</updated>
    <summary>Entry summary</summary>
    <content type="html">&lt;p&gt;Full content&lt;/p&gt;</content>
    <author><name>Jane Writer</name></author>
  </entry>
</feed>
"""


class TestParseFeedContent:
    def test_parses_rss_metadata(self) -> None:
        parsed = parse_feed_content(RSS, "https://example.com/rss", "feed-1")
        assert parsed.metadata.title == "Example News"
        assert parsed.metadata.description == "All the news"
        assert parsed.metadata.language == "en-us"
        assert parsed.metadata.image_url == "https://example.com/logo.png"

    def test_parses_rss_items(self) -> None:
        parsed = parse_feed_content(RSS, "https://example.com/rss", "feed-1")
        first = parsed.articles[0]
        assert first.guid == "story-1"
        assert first.feed_id == "feed-1"
        assert first.summary == "First summary"
        assert first.published_at == datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)
        assert first.categories == ["Tech"]
        assert first.image_url == "https://example.com/first.jpg"

    def test_guid_falls_back_to_link(self) -> None:
        parsed = parse_feed_content(RSS, "https://example.com/rss", "feed-1")
        second = parsed.articles[1]
        assert second.guid == "https://example.com/second"
        assert second.published_at == datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)

    def test_skips_duplicate_guids_and_empty_entries(self) -> None:
        parsed = parse_feed_content(RSS, "https://example.com/rss", "feed-1")
        assert [article.guid for article in parsed.articles] == ["story-1", "https://example.com/second"]

    def test_parses_atom(self) -> None:
        parsed = parse_feed_content(ATOM, "https://atom.example.com/feed", "feed-2")
        assert parsed.metadata.title == "Atom Example"
        assert parsed.metadata.description == "Updates"
        entry = parsed.articles[0]
        assert entry.guid == "urn:uuid:entry-1"
        assert entry.content == "<p>Full content</p>"
        assert entry.author == "Jane Writer"
        assert entry.published_at == datetime(2024, 3, 6, 10, 0, tzinfo=timezone.utc)

    def test_undated_entry_uses_fetch_time(self) -> None:
        before = datetime.now(timezone.utc)
        parsed = parse_feed_content(RSS, "https://example.com/rss", "feed-1")
        assert all(article.published_at.tzinfo is not None for article in parsed.articles)
        undated = parse_feed_content(
            b'<rss version="2.0"><channel><title>T</title>'
            b"<item><title>Undated</title><link>https://example.com/u</link></item>"
            b"</channel></rss>",
            "https://example.com/rss",
            "feed-1",
        ).articles[0]
        assert undated.published_at >= before

    def test_non_feed_raises_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_feed_content(b"<html><body>Not a feed</body></html>", "https://example.com", "feed-1")


class TestParsePublishedDate:
    def test_converts_offsets_to_utc(self) -> None:
        result = _parse_published_date({"published": "Mon, 01 Jan 2024 12:00:00 PST"})
        assert result == datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)

    def test_naive_datetime_gets_utc(self) -> None:
        result = _parse_published_date({"published": "2024-01-01 12:00:00"})
        assert result.utcoffset() == timedelta(0)

    def test_returns_none_for_missing_or_invalid(self) -> None:
        assert _parse_published_date({}) is None
        assert _parse_published_date({"published": "not a date"}) is None


class TestParseImage:
    def test_prefers_media_content_images(self) -> None:
        entry = {
            "media_content": [{"url": "https://example.com/video.mp4", "medium": "video"},
                              {"url": "https://example.com/a.jpg", "medium": "image"}],
        }
        assert _parse_image(entry) == "https://example.com/a.jpg"

    def test_falls_back_to_image_enclosure(self) -> None:
        entry = {"enclosures": [{"href": "https://example.com/e.png", "type": "image/png"}]}
        assert _parse_image(entry) == "https://example.com/e.png"

    def test_none_without_images(self) -> None:
        assert _parse_image({}) is None


class TestFetchAndParseFeed:
    @patch("fetch_feeds.fetch_feed.requests.get")
    def test_fetches_with_timeout_and_user_agent(self, mock_get) -> None:
        mock_get.return_value = Mock(content=RSS, raise_for_status=Mock())
        parsed = fetch_and_parse_feed("https://example.com/rss", "feed-1", timeout=7, user_agent="test-agent")
        assert len(parsed.articles) == 2
        _, kwargs = mock_get.call_args
        assert kwargs["timeout"] == 7
        assert kwargs["headers"]["User-Agent"] == "test-agent"

    @patch("fetch_feeds.fetch_feed.requests.get")
    def test_timeout_raises_fetch_error(self, mock_get) -> None:
        mock_get.side_effect = requests.Timeout("slow")
        with pytest.raises(FetchError, match="Timed out"):
            fetch_and_parse_feed("https://example.com/rss", "feed-1", timeout=5)

    @patch("fetch_feeds.fetch_feed.requests.get")
    def test_http_error_raises_fetch_error(self, mock_get) -> None:
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        mock_get.return_value = response
        with pytest.raises(FetchError) as exc_info:
            fetch_and_parse_feed("https://example.com/rss", "feed-1")
        assert exc_info.value.feed_url == "https://example.com/rss"


class TestValidateFeedUrl:
    def test_rejects_non_http_scheme(self) -> None:
        assert validate_feed_url("ftp://example.com/rss") is False
        assert validate_feed_url("not a url") is False

    @patch("fetch_feeds.fetch_feed.requests.get")
    def test_accepts_parseable_feed(self, mock_get) -> None:
        mock_get.return_value = Mock(content=RSS, raise_for_status=Mock())
        assert validate_feed_url("https://example.com/rss") is True

    @patch("fetch_feeds.fetch_feed.requests.get")
    def test_rejects_unparseable_response(self, mock_get) -> None:
        mock_get.return_value = Mock(content=b"<html></html>", raise_for_status=Mock())
        assert validate_feed_url("https://example.com/page") is False
