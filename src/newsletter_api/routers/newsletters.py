"""Newsletter generation and history endpoints."""

import json
import logging
from datetime import datetime
from typing import Annotated, Any, Iterator

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from article_store.newsletters import (
    NewsletterRecord,
    count_newsletters,
    delete_newsletter,
    get_newsletter,
    list_newsletters,
)
from common.config import AppConfig
from common.db import get_session, get_session_factory
from common.errors import GenerationError
from generate_newsletter.gateway import stream_newsletter
from generate_newsletter.generate import prompt_for_articles, save_newsletter
from generate_newsletter.schema import NewsletterResult
from newsletter_api.dependencies import Config, DbSession, OwnerId, request_date_range, require_owned_feeds
from newsletter_api.models import GenerateRequest, NewsletterListResponse, NewsletterResponse
from refresh_feeds.models import PreparedArticles
from refresh_feeds.prepare import prepare_feeds_and_articles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/newsletters", tags=["newsletters"])


def _newsletter_response(record: NewsletterRecord) -> NewsletterResponse:
    return NewsletterResponse(
        id=record.id,
        suggested_titles=record.suggested_titles,
        suggested_subject_lines=record.suggested_subject_lines,
        body=record.body,
        top_announcements=record.top_announcements,
        additional_info=record.additional_info,
        start_date=record.start_date,
        end_date=record.end_date,
        user_input=record.user_input,
        feeds_used=record.feeds_used,
        created_at=record.created_at,
    )


def _event(payload: dict[str, Any]) -> str:
    return json.dumps(payload, default=str) + "\n"


def _newsletter_events(
    prompt: str,
    owner_id: str,
    request: GenerateRequest,
    feed_ids: list[str],
    start: datetime,
    end: datetime,
    prepared: PreparedArticles,
    config: AppConfig,
) -> Iterator[str]:
    """Stream partial drafts as NDJSON, ending with a complete or an error event."""
    try:
        for update in stream_newsletter(
            prompt,
            model=config.generation.model,
            temperature=config.generation.temperature,
        ):
            if not isinstance(update, NewsletterResult):
                yield _event({"type": "partial", "newsletter": update.model_dump(exclude_none=True)})
                continue

            newsletter_id = None
            if request.save:
                with get_session() as session:
                    record = save_newsletter(
                        session, owner_id, update, start, end, feed_ids, user_input=request.user_input
                    )
                newsletter_id = record.id
            yield _event({
                "type": "complete",
                "newsletter": update.model_dump(),
                "newsletter_id": newsletter_id,
                "article_count": prepared.count,
                "failed_feed_ids": prepared.refresh.failed_feed_ids,
            })
    except GenerationError as e:
        logger.error("Newsletter generation failed for owner %s: %s", owner_id, e)
        yield _event({"type": "error", "error": str(e)})


@router.post("/generate")
def generate(request: GenerateRequest, session: DbSession, owner_id: OwnerId, config: Config):
    """Draft a newsletter from the owner's feeds, streamed as NDJSON.

    Stale feeds are refreshed first. Each line is a `partial` event with the
    draft so far; the last line is a `complete` event with the validated
    newsletter or an `error` event. Returns 404 with the refresh summary when
    no article matches.
    """
    start, end = request_date_range(request.start_date, request.end_date)
    feed_ids = require_owned_feeds(session, owner_id, request.feed_ids)

    prepared = prepare_feeds_and_articles(
        feed_ids, start, end, session_factory=get_session_factory(), config=config.feeds
    )
    prompt = prompt_for_articles(
        prepared, start, end,
        user_input=request.user_input,
        settings=request.settings,
        char_limit=config.generation.summary_char_limit,
    )
    return StreamingResponse(
        _newsletter_events(prompt, owner_id, request, feed_ids, start, end, prepared, config),
        media_type="application/x-ndjson",
    )


@router.get("", response_model=NewsletterListResponse)
def list_owner_newsletters(
    session: DbSession,
    owner_id: OwnerId,
    limit: Annotated[int, Query(ge=1, le=200, description="Max results")] = 50,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
):
    """List the owner's newsletters, most recent first."""
    records = list_newsletters(session, owner_id, limit=limit, offset=offset)
    return NewsletterListResponse(
        newsletters=[_newsletter_response(record) for record in records],
        total=count_newsletters(session, owner_id),
        limit=limit,
        offset=offset,
    )


@router.get("/{newsletter_id}", response_model=NewsletterResponse)
def get_one_newsletter(newsletter_id: str, session: DbSession, owner_id: OwnerId):
    record = get_newsletter(session, newsletter_id, owner_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Newsletter not found")
    return _newsletter_response(record)


@router.delete("/{newsletter_id}", status_code=204)
def delete_one_newsletter(newsletter_id: str, session: DbSession, owner_id: OwnerId):
    delete_newsletter(session, newsletter_id, owner_id)
