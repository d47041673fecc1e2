"""Data models for the refresh_feeds stage."""

from dataclasses import dataclass, field
from typing import Optional

from article_store.models import StoredArticle

SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass
class FreshnessReport:
    """Partition of requested feed ids by whether their URL needs refetching."""
    fresh: list[str] = field(default_factory=list)
    stale: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


@dataclass
class FeedRefreshOutcome:
    """Result of refreshing one feed: success with counts, or failure with cause."""
    feed_id: str
    status: str
    url: Optional[str] = None
    created: int = 0
    linked: int = 0
    unchanged: int = 0
    errors: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


@dataclass
class RefreshSummary:
    outcomes: list[FeedRefreshOutcome] = field(default_factory=list)
    skipped: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.succeeded)

    @property
    def failed_feed_ids(self) -> list[str]:
        return [outcome.feed_id for outcome in self.outcomes if not outcome.succeeded]

    @property
    def articles_created(self) -> int:
        return sum(outcome.created for outcome in self.outcomes)


@dataclass
class PreparedArticles:
    """Articles ready for prompt building, plus how the refresh went."""
    articles: list[StoredArticle]
    refresh: RefreshSummary
    fresh_feed_ids: list[str] = field(default_factory=list)
    missing_feed_ids: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.articles)

    @property
    def partial_failure(self) -> bool:
        return self.refresh.failed > 0
