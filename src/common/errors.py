"""Exception taxonomy shared by the feed, store and generation stages."""

from __future__ import annotations

from typing import Any


class NewsletterError(Exception):
    """Base class for errors raised by this project."""


class FeedError(NewsletterError):
    """A failure attributable to one specific feed URL."""

    def __init__(self, feed_url: str, message: str) -> None:
        super().__init__(f"{message} ({feed_url})")
        self.feed_url = feed_url
        self.message = message


class FetchError(FeedError):
    """Network, timeout or HTTP status failure reaching a feed origin."""


class ParseError(FeedError):
    """The feed body is malformed or not a recognised RSS/Atom document."""


class InvalidFeedError(FeedError):
    """A URL offered for subscription could not be fetched and parsed."""


class FeedNotFoundError(NewsletterError):
    def __init__(self, feed_id: str) -> None:
        super().__init__(f"Feed with ID {feed_id} not found")
        self.feed_id = feed_id


class DuplicateFeedError(NewsletterError):
    def __init__(self, owner_id: str, url: str) -> None:
        super().__init__(f"Owner {owner_id} is already subscribed to {url}")
        self.owner_id = owner_id
        self.url = url


class ConflictError(NewsletterError):
    """A concurrent writer won a race on the same article GUID."""

    def __init__(self, guid: str, message: str = "Conflicting write") -> None:
        super().__init__(f"{message} for article {guid}")
        self.guid = guid


class NoContentError(NewsletterError):
    """No stored article matches the requested feeds and date range.

    The refresh summary of the cycle that preceded the query is attached so
    callers can tell "nothing published" apart from "every feed failed".
    """

    def __init__(self, refresh: Any = None) -> None:
        super().__init__("No articles found for the selected feeds and date range")
        self.refresh = refresh


class GenerationError(NewsletterError):
    """The language model call failed or returned an invalid newsletter."""


class NewsletterAccessError(NewsletterError):
    """A newsletter was requested by an owner it does not belong to."""


class NewsletterNotFoundError(NewsletterError):
    def __init__(self, newsletter_id: str) -> None:
        super().__init__(f"Newsletter {newsletter_id} not found")
        self.newsletter_id = newsletter_id
