"""Data models for the fetch_feeds stage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class FeedMetadata:
    """Feed-level display metadata from the channel/feed element."""
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    image_url: Optional[str] = None
    language: Optional[str] = None


@dataclass
class FeedArticle:
    """One normalized RSS item or Atom entry."""
    feed_id: str
    guid: str
    title: str
    link: Optional[str]
    content: Optional[str]
    summary: Optional[str]
    published_at: datetime
    author: Optional[str] = None
    categories: list[str] = field(default_factory=list)
    image_url: Optional[str] = None


@dataclass
class ParsedFeed:
    metadata: FeedMetadata
    articles: list[FeedArticle]
