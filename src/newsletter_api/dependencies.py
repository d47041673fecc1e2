"""Shared FastAPI dependencies."""

from datetime import date, datetime
from typing import Annotated, Iterator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from article_store.feeds import get_feeds
from common.cli_helpers import date_range_to_datetimes
from common.config import AppConfig, get_config
from common.db import get_session
from common.errors import FeedNotFoundError


def get_db() -> Iterator[Session]:
    """Dependency to get a database session for the request."""
    with get_session() as session:
        yield session


def get_app_config() -> AppConfig:
    return get_config()


def get_owner_id(x_owner_id: Annotated[str | None, Header()] = None) -> str:
    """The requesting owner, as resolved by the upstream auth layer."""
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(status_code=401, detail="X-Owner-Id header is required")
    return x_owner_id.strip()


def require_owned_feeds(session: Session, owner_id: str, feed_ids: list[str]) -> list[str]:
    """Return `feed_ids` deduplicated, or raise if any is unknown or not the owner's."""
    feed_ids = list(dict.fromkeys(feed_ids))
    owned = {feed.id for feed in get_feeds(session, feed_ids) if feed.owner_id == owner_id}
    for feed_id in feed_ids:
        if feed_id not in owned:
            raise FeedNotFoundError(feed_id)
    # End the read transaction so refresh workers can take the write lock
    session.rollback()
    return feed_ids


def request_date_range(start: date, end: date) -> tuple[datetime, datetime]:
    """The UTC datetimes covering [start, end], or 400 if the range is reversed."""
    try:
        return date_range_to_datetimes(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


DbSession = Annotated[Session, Depends(get_db)]
OwnerId = Annotated[str, Depends(get_owner_id)]
Config = Annotated[AppConfig, Depends(get_app_config)]
