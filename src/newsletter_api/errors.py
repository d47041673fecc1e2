"""Map domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.errors import (
    DuplicateFeedError,
    FeedError,
    FeedNotFoundError,
    GenerationError,
    NewsletterAccessError,
    NewsletterError,
    NewsletterNotFoundError,
    NoContentError,
)
from common.serialization import serialize_dataclass

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (FeedNotFoundError, 404),
    (NewsletterNotFoundError, 404),
    (NoContentError, 404),
    (DuplicateFeedError, 409),
    (NewsletterAccessError, 403),
    (FeedError, 400),
    (GenerationError, 502),
)


def status_for(error: NewsletterError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NewsletterError)
    async def handle_newsletter_error(request: Request, exc: NewsletterError) -> JSONResponse:
        status_code = status_for(exc)
        content = {"error": str(exc)}
        if isinstance(exc, NoContentError) and exc.refresh is not None:
            content["refresh"] = {
                "succeeded": exc.refresh.succeeded,
                "failed": exc.refresh.failed,
                "skipped": exc.refresh.skipped,
                "outcomes": [serialize_dataclass(outcome) for outcome in exc.refresh.outcomes],
            }
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())})
