"""Fetch an RSS/Atom feed and normalize it into articles and metadata."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlparse

import feedparser
import requests
from dateutil.parser import parse as parse_date

from common.datetime import utc_now
from common.errors import FetchError, ParseError
from common.hashing import generate_fallback_guid
from common.text import clean_text
from fetch_feeds.models import FeedArticle, FeedMetadata, ParsedFeed

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
USER_AGENT = "newsletter-pipeline/1.0 (RSS reader)"

# Timezone abbreviations for date parsing
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
}


def validate_feed_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """Return True if `url` can be fetched and parsed as a feed. Nothing is stored."""
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        logger.warning("Rejected feed URL with unsupported scheme: %s", url)
        return False

    try:
        fetch_and_parse_feed(url, feed_id="", timeout=timeout)
    except (FetchError, ParseError) as e:
        logger.warning("Feed validation failed for %s: %s", url, e)
        return False
    return True


def fetch_and_parse_feed(
    url: str,
    feed_id: str,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
) -> ParsedFeed:
    """Fetch `url` and parse it as RSS 2.0 or Atom.

    Raises:
        FetchError: network failure, timeout or non-2xx response.
        ParseError: the body is not a recognisable feed.
    """
    content = _fetch_feed_content(url, timeout, user_agent)
    return parse_feed_content(content, url, feed_id)


def _fetch_feed_content(url: str, timeout: float, user_agent: str) -> bytes:
    try:
        response = requests.get(
            url,
            timeout=timeout,
            headers={
                "User-Agent": user_agent,
                "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
            },
        )
        response.raise_for_status()
    except requests.Timeout as e:
        raise FetchError(url, f"Timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise FetchError(url, f"Fetch failed: {e}") from e
    return response.content


def parse_feed_content(content: bytes, url: str, feed_id: str) -> ParsedFeed:
    """Parse raw feed bytes into metadata and normalized articles."""
    feed = feedparser.parse(content)

    if not feed.get("version"):
        reason = feed.get("bozo_exception") or "unrecognized feed format"
        raise ParseError(url, f"Could not parse feed: {reason}")

    if feed.get("bozo"):
        logger.warning("Feed %s is not well-formed, continuing: %s", url, feed.get("bozo_exception"))

    fetched_at = utc_now()
    seen_guids: set[str] = set()
    articles = []
    for entry in feed.entries:
        try:
            article = _parse_entry(entry, url, feed_id, fetched_at, seen_guids)
            if article is not None:
                articles.append(article)
        except Exception as e:
            logger.warning("Failed to parse entry in %s: %s", url, e)
            continue

    logger.info("Parsed %d articles from %s", len(articles), url)
    return ParsedFeed(metadata=_parse_metadata(feed.feed), articles=articles)


def _parse_metadata(channel) -> FeedMetadata:
    image = channel.get("image") or {}
    return FeedMetadata(
        title=clean_text(channel.get("title")),
        description=clean_text(channel.get("subtitle") or channel.get("description")),
        link=channel.get("link"),
        image_url=image.get("href") or image.get("url"),
        language=channel.get("language"),
    )


def _parse_entry(
    entry, feed_url: str, feed_id: str, fetched_at: datetime, seen_guids: set
) -> FeedArticle | None:
    """Parse a single RSS item / Atom entry into a FeedArticle."""
    title = clean_text(entry.get("title"))
    link = entry.get("link")
    if not title and not link:
        return None

    published_at = _parse_published_date(entry) or fetched_at

    guid = (entry.get("id") or "").strip() or link
    if not guid:
        guid = generate_fallback_guid(feed_url, title, published_at.isoformat())
    if guid in seen_guids:
        return None
    seen_guids.add(guid)

    return FeedArticle(
        feed_id=feed_id,
        guid=guid,
        title=title or link,
        link=link,
        content=_parse_content(entry),
        summary=clean_text(entry.get("summary")),
        published_at=published_at,
        author=clean_text(entry.get("author")),
        categories=_parse_categories(entry),
        image_url=_parse_image(entry),
    )


def _parse_published_date(entry) -> datetime | None:
    """Extract and parse the published date from an RSS entry, as UTC."""
    published = entry.get("published") or entry.get("updated")
    if not published:
        return None

    try:
        dt = parse_date(published, tzinfos=TZINFOS)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def _parse_content(entry) -> Optional[str]:
    for block in entry.get("content") or []:
        value = block.get("value")
        if value:
            return value
    return None


def _parse_categories(entry) -> list[str]:
    categories = []
    for tag in entry.get("tags") or []:
        term = (tag.get("term") or "").strip()
        if term and term not in categories:
            categories.append(term)
    return categories


def _parse_image(entry) -> Optional[str]:
    for media in entry.get("media_content") or []:
        medium = media.get("medium")
        is_image = medium == "image" if medium else (media.get("type") or "image/").startswith("image/")
        if media.get("url") and is_image:
            return media["url"]
    for thumbnail in entry.get("media_thumbnail") or []:
        if thumbnail.get("url"):
            return thumbnail["url"]
    for enclosure in entry.get("enclosures") or []:
        if (enclosure.get("type") or "").startswith("image/") and enclosure.get("href"):
            return enclosure["href"]
    return None
