"""Request and response models for the newsletter API."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from generate_newsletter.schema import NewsletterSettings


class FeedCreateRequest(BaseModel):
    url: str = Field(min_length=1)


class FeedResponse(BaseModel):
    """A subscribed feed."""

    id: str
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    image_url: Optional[str] = None
    language: Optional[str] = None
    last_fetched: Optional[datetime] = None
    created_at: datetime
    article_count: int = 0


class FeedListResponse(BaseModel):
    feeds: list[FeedResponse]
    total: int


class FeedCreateResponse(BaseModel):
    feed: FeedResponse
    articles_created: int = 0
    articles_linked: int = 0
    error: Optional[str] = None


class FeedDeleteResponse(BaseModel):
    feed_id: str
    references_removed: int
    articles_deleted: int


class RefreshRequest(BaseModel):
    feed_ids: list[str] = Field(min_length=1)
    force: bool = False


class FeedRefreshResult(BaseModel):
    feed_id: str
    status: str
    created: int = 0
    linked: int = 0
    unchanged: int = 0
    errors: int = 0
    error: Optional[str] = None


class RefreshResponse(BaseModel):
    """Outcome of one refresh cycle."""

    succeeded: int
    failed: int
    skipped: int
    missing: list[str] = Field(default_factory=list)
    outcomes: list[FeedRefreshResult] = Field(default_factory=list)


class ArticleResponse(BaseModel):
    guid: str
    title: str
    link: Optional[str] = None
    summary: Optional[str] = None
    published_at: datetime
    author: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    primary_feed_id: str
    source_feed_ids: list[str] = Field(default_factory=list)
    source_count: int = 1
    feed_title: Optional[str] = None


class ArticleListResponse(BaseModel):
    articles: list[ArticleResponse]
    total: int


class GenerateRequest(BaseModel):
    """Parameters for drafting a newsletter."""

    feed_ids: list[str] = Field(min_length=1)
    start_date: date
    end_date: date
    user_input: Optional[str] = None
    settings: Optional[NewsletterSettings] = None
    save: bool = False


class NewsletterResponse(BaseModel):
    id: str
    suggested_titles: list[str]
    suggested_subject_lines: list[str]
    body: str
    top_announcements: list[str]
    additional_info: Optional[str] = None
    start_date: datetime
    end_date: datetime
    user_input: Optional[str] = None
    feeds_used: list[str] = Field(default_factory=list)
    created_at: datetime


class NewsletterListResponse(BaseModel):
    newsletters: list[NewsletterResponse]
    total: int
    limit: int
    offset: int
