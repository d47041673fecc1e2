"""End-to-end newsletter generation for a set of feeds and a date range."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from article_store.newsletters import NewsletterRecord, create_newsletter
from common.config import AppConfig, get_config
from common.db import get_session_factory
from generate_newsletter.gateway import generate_newsletter
from generate_newsletter.prompt import build_article_summaries, build_newsletter_prompt
from generate_newsletter.schema import NewsletterResult, NewsletterSettings
from refresh_feeds.models import PreparedArticles
from refresh_feeds.prepare import prepare_feeds_and_articles

logger = logging.getLogger(__name__)


@dataclass
class GeneratedNewsletter:
    result: NewsletterResult
    prepared: PreparedArticles
    record: Optional[NewsletterRecord] = None


def prompt_for_articles(
    prepared: PreparedArticles,
    start: datetime,
    end: datetime,
    user_input: str | None = None,
    settings: NewsletterSettings | None = None,
    char_limit: int = 500,
) -> str:
    summaries = build_article_summaries(prepared.articles, char_limit=char_limit)
    return build_newsletter_prompt(
        start=start,
        end=end,
        article_summaries=summaries,
        article_count=prepared.count,
        user_input=user_input,
        settings=settings,
    )


def save_newsletter(
    session: Session,
    owner_id: str,
    result: NewsletterResult,
    start: datetime,
    end: datetime,
    feed_ids: list[str],
    user_input: str | None = None,
) -> NewsletterRecord:
    return create_newsletter(
        session,
        owner_id=owner_id,
        suggested_titles=result.suggested_titles,
        suggested_subject_lines=result.suggested_subject_lines,
        body=result.body,
        top_announcements=result.top_announcements,
        additional_info=result.additional_info,
        start_date=start,
        end_date=end,
        feeds_used=feed_ids,
        user_input=user_input,
    )


def generate_for_feeds(
    owner_id: str,
    feed_ids: list[str],
    start: datetime,
    end: datetime,
    user_input: str | None = None,
    settings: NewsletterSettings | None = None,
    save: bool = False,
    session_factory: sessionmaker | None = None,
    config: AppConfig | None = None,
) -> GeneratedNewsletter:
    """Refresh stale feeds, gather their articles and draft a newsletter from them.

    Raises:
        NoContentError: no article matches the feeds and date range.
        GenerationError: the model call failed or returned an invalid draft.
    """
    config = config or get_config()
    session_factory = session_factory or get_session_factory()

    prepared = prepare_feeds_and_articles(
        feed_ids, start, end, session_factory=session_factory, config=config.feeds
    )
    prompt = prompt_for_articles(
        prepared, start, end,
        user_input=user_input,
        settings=settings,
        char_limit=config.generation.summary_char_limit,
    )
    result = generate_newsletter(
        prompt,
        model=config.generation.model,
        temperature=config.generation.temperature,
    )

    generated = GeneratedNewsletter(result=result, prepared=prepared)
    if save:
        with session_factory() as session:
            generated.record = save_newsletter(
                session, owner_id, result, start, end, feed_ids, user_input=user_input
            )
    logger.info(
        "Generated newsletter for owner %s from %d articles (%d feeds failed to refresh)",
        owner_id, prepared.count, prepared.refresh.failed,
    )
    return generated
