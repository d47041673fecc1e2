"""Health check endpoint."""

from fastapi import APIRouter
from sqlalchemy import text

from newsletter_api.dependencies import DbSession

router = APIRouter(tags=["health"])


@router.get("/health")
def health(session: DbSession):
    session.execute(text("SELECT 1"))
    return {"status": "ok"}
