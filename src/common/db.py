"""Database engine and session management."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from common.config import get_config

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for `url`.

    SQLite connections enforce foreign keys and open every transaction with
    BEGIN IMMEDIATE, so concurrent writers queue on the database lock instead
    of failing on lock upgrade.
    """
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(url, echo=echo, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def configure_database(url: str, echo: bool = False) -> sessionmaker[Session]:
    """Replace the process-wide engine and session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = create_db_engine(url, echo=echo)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("Configured database (%s)", _engine.dialect.name)
    return _session_factory


def get_engine() -> Engine:
    if _engine is None:
        config = get_config().database
        configure_database(config.url, echo=config.echo)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        get_engine()
    return _session_factory


@contextmanager
def get_session() -> Iterator[Session]:
    """Context manager for a session with rollback on error."""
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
