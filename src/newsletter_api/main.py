"""FastAPI application for feeds, articles and newsletter generation."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from article_store.models import create_tables
from common.cli_helpers import setup_logging
from common.config import get_config
from common.db import get_engine
from newsletter_api.errors import register_exception_handlers
from newsletter_api.routers import articles, feeds, health, newsletters

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables(get_engine())
    yield


app = FastAPI(
    title="Newsletter API",
    description="Subscribe to RSS feeds and draft newsletters from their articles",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(feeds.router)
app.include_router(articles.router)
app.include_router(newsletters.router)


def main() -> None:
    setup_logging()
    config = get_config().server
    logger.info("Starting API on %s:%d", config.host, config.port)
    uvicorn.run("newsletter_api.main:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
