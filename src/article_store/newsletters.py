"""Saved newsletter records, scoped to their owner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from article_store.models import Newsletter
from common.datetime import ensure_utc
from common.errors import NewsletterAccessError, NewsletterNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class NewsletterRecord:
    id: str
    owner_id: str
    suggested_titles: list[str]
    suggested_subject_lines: list[str]
    body: str
    top_announcements: list[str]
    additional_info: Optional[str]
    start_date: datetime
    end_date: datetime
    user_input: Optional[str]
    feeds_used: list[str]
    created_at: datetime
    updated_at: datetime


def _to_record(newsletter: Newsletter) -> NewsletterRecord:
    return NewsletterRecord(
        id=newsletter.id,
        owner_id=newsletter.owner_id,
        suggested_titles=list(newsletter.suggested_titles),
        suggested_subject_lines=list(newsletter.suggested_subject_lines),
        body=newsletter.body,
        top_announcements=list(newsletter.top_announcements),
        additional_info=newsletter.additional_info,
        start_date=newsletter.start_date,
        end_date=newsletter.end_date,
        user_input=newsletter.user_input,
        feeds_used=list(newsletter.feeds_used),
        created_at=newsletter.created_at,
        updated_at=newsletter.updated_at,
    )


def create_newsletter(
    session: Session,
    owner_id: str,
    suggested_titles: list[str],
    suggested_subject_lines: list[str],
    body: str,
    top_announcements: list[str],
    start_date: datetime,
    end_date: datetime,
    feeds_used: list[str],
    additional_info: str | None = None,
    user_input: str | None = None,
) -> NewsletterRecord:
    """Store a generated newsletter verbatim."""
    newsletter = Newsletter(
        owner_id=owner_id,
        suggested_titles=list(suggested_titles),
        suggested_subject_lines=list(suggested_subject_lines),
        body=body,
        top_announcements=list(top_announcements),
        additional_info=additional_info,
        start_date=ensure_utc(start_date),
        end_date=ensure_utc(end_date),
        user_input=user_input,
        feeds_used=list(feeds_used),
    )
    session.add(newsletter)
    session.commit()
    logger.info("Saved newsletter %s for owner %s", newsletter.id, owner_id)
    return _to_record(newsletter)


def list_newsletters(
    session: Session,
    owner_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[NewsletterRecord]:
    """Newsletters of `owner_id`, most recent first."""
    stmt = (
        select(Newsletter)
        .where(Newsletter.owner_id == owner_id)
        .order_by(Newsletter.created_at.desc(), Newsletter.id)
        .offset(offset)
    )
    if limit:
        stmt = stmt.limit(limit)
    return [_to_record(newsletter) for newsletter in session.scalars(stmt)]


def count_newsletters(session: Session, owner_id: str) -> int:
    stmt = select(func.count()).select_from(Newsletter).where(Newsletter.owner_id == owner_id)
    return session.scalar(stmt) or 0


def _get_owned(session: Session, newsletter_id: str, owner_id: str) -> Newsletter | None:
    newsletter = session.get(Newsletter, newsletter_id)
    if newsletter is None:
        return None
    if newsletter.owner_id != owner_id:
        raise NewsletterAccessError(f"Newsletter {newsletter_id} does not belong to {owner_id}")
    return newsletter


def get_newsletter(session: Session, newsletter_id: str, owner_id: str) -> NewsletterRecord | None:
    """Return the newsletter, or None if it does not exist.

    Raises:
        NewsletterAccessError: the newsletter belongs to another owner.
    """
    newsletter = _get_owned(session, newsletter_id, owner_id)
    return _to_record(newsletter) if newsletter else None


def delete_newsletter(session: Session, newsletter_id: str, owner_id: str) -> NewsletterRecord:
    newsletter = _get_owned(session, newsletter_id, owner_id)
    if newsletter is None:
        raise NewsletterNotFoundError(newsletter_id)
    record = _to_record(newsletter)
    session.delete(newsletter)
    session.commit()
    logger.info("Deleted newsletter %s", newsletter_id)
    return record
