"""ORM models for feeds, deduplicated articles and saved newsletters."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from common.datetime import ensure_utc, utc_now


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite has no timezone type, so values are normalised to UTC before they
    are bound and re-tagged as UTC when read back.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        value = ensure_utc(value)
        if value is not None and dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class Feed(Base):
    __tablename__ = "feeds"
    __table_args__ = (
        UniqueConstraint("owner_id", "url", name="uq_feeds_owner_url"),
        Index("ix_feeds_url", "url"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    url: Mapped[str] = mapped_column(String(2048))
    title: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    link: Mapped[Optional[str]] = mapped_column(Text)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    language: Mapped[Optional[str]] = mapped_column(String(32))
    last_fetched: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, onupdate=utc_now)


class Article(Base):
    __tablename__ = "articles"

    guid: Mapped[str] = mapped_column(String(2048), primary_key=True)
    # Not a foreign key: the primary feed is reassigned, not cascaded, when
    # its feed is deleted.
    primary_feed_id: Mapped[str] = mapped_column(String(32), index=True)
    title: Mapped[str] = mapped_column(Text)
    link: Mapped[Optional[str]] = mapped_column(Text)
    content: Mapped[Optional[str]] = mapped_column(Text)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    published_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    author: Mapped[Optional[str]] = mapped_column(Text)
    categories: Mapped[list] = mapped_column(JSON, default=list)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, onupdate=utc_now)

    sources: Mapped[list["ArticleSource"]] = relationship(
        back_populates="article",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ArticleSource(Base):
    """Membership of a feed in an article's source set."""

    __tablename__ = "article_sources"

    article_guid: Mapped[str] = mapped_column(
        ForeignKey("articles.guid", ondelete="CASCADE"), primary_key=True
    )
    feed_id: Mapped[str] = mapped_column(
        ForeignKey("feeds.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    added_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)

    article: Mapped[Article] = relationship(back_populates="sources")


class Newsletter(Base):
    __tablename__ = "newsletters"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    suggested_titles: Mapped[list] = mapped_column(JSON)
    suggested_subject_lines: Mapped[list] = mapped_column(JSON)
    body: Mapped[str] = mapped_column(Text)
    top_announcements: Mapped[list] = mapped_column(JSON)
    additional_info: Mapped[Optional[str]] = mapped_column(Text)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime)
    user_input: Mapped[Optional[str]] = mapped_column(Text)
    feeds_used: Mapped[list] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, onupdate=utc_now)


def create_tables(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)


@dataclass
class StoredArticle:
    """An article as returned by the store, with its source attribution."""

    guid: str
    title: str
    link: Optional[str]
    content: Optional[str]
    summary: Optional[str]
    published_at: datetime
    author: Optional[str]
    categories: list[str]
    image_url: Optional[str]
    primary_feed_id: str
    source_feed_ids: list[str] = field(default_factory=list)
    feed_title: Optional[str] = None
    feed_url: Optional[str] = None

    @property
    def source_count(self) -> int:
        return len(self.source_feed_ids)


@dataclass
class BulkUpsertResult:
    created: int = 0
    linked: int = 0
    unchanged: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.created + self.linked + self.unchanged
