"""Article query endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from article_store.articles import query_articles_by_feeds_and_range
from newsletter_api.dependencies import Config, DbSession, OwnerId, request_date_range, require_owned_feeds
from newsletter_api.models import ArticleListResponse, ArticleResponse

router = APIRouter(prefix="/articles", tags=["articles"])


@router.get("", response_model=ArticleListResponse)
def list_articles(
    session: DbSession,
    owner_id: OwnerId,
    config: Config,
    feed_ids: Annotated[list[str], Query(min_length=1, description="Feed ids to include")],
    start: Annotated[date, Query(description="First day, UTC (YYYY-MM-DD)")],
    end: Annotated[date, Query(description="Last day, UTC (YYYY-MM-DD)")],
    limit: Annotated[int | None, Query(ge=1, le=500, description="Max results")] = None,
):
    """List stored articles from the given feeds published between start and end, newest first.

    Stored articles only; this endpoint never refreshes feeds.
    """
    feed_ids = require_owned_feeds(session, owner_id, feed_ids)
    start_dt, end_dt = request_date_range(start, end)
    articles = query_articles_by_feeds_and_range(
        session, feed_ids, start_dt, end_dt, limit=limit or config.feeds.article_limit
    )
    return ArticleListResponse(
        articles=[
            ArticleResponse(
                guid=article.guid,
                title=article.title,
                link=article.link,
                summary=article.summary,
                published_at=article.published_at,
                author=article.author,
                categories=article.categories,
                image_url=article.image_url,
                primary_feed_id=article.primary_feed_id,
                source_feed_ids=article.source_feed_ids,
                source_count=article.source_count,
                feed_title=article.feed_title,
            )
            for article in articles
        ],
        total=len(articles),
    )
