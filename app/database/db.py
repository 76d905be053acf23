"""Database connection and session management.

Nothing here touches the database at import time: the engine is built by
``configure_engine`` (called from ``bootstrap``) or lazily on first use.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_config

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None
_database_url: str | None = None


def _build_engine(database_url: str) -> Engine:
    config = get_config()
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=config.DEBUG and config.LOG_LEVEL == "DEBUG",
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        database_url,
        echo=config.DEBUG and config.LOG_LEVEL == "DEBUG",
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=10,
        max_overflow=20,
    )


def configure_engine(database_url: str | None = None) -> Engine:
    """Bind engine and session factory to the given URL (or the configured one)."""
    global _engine, _session_factory, _database_url
    resolved_url = database_url or get_config().DATABASE_URL
    if _engine is not None:
        _engine.dispose()
    _engine = _build_engine(resolved_url)
    _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    _database_url = resolved_url
    logger.info(
        "database.engine.configured",
        extra={"event": "database.engine.configured", "database_url_scheme": resolved_url.split("://", 1)[0]},
    )
    return _engine


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine, configuring it on first use."""
    if _engine is None:
        return configure_engine()
    return _engine


def get_active_database_url() -> str:
    """Return the currently bound database URL."""
    get_engine()
    return _database_url or get_config().DATABASE_URL


def get_session_factory() -> sessionmaker[Session]:
    get_engine()
    assert _session_factory is not None
    return _session_factory


def dispose_engine() -> None:
    """Release pooled connections; the next call rebuilds the engine."""
    global _engine, _session_factory, _database_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
    _database_url = None


def get_db() -> Generator[Session, None, None]:
    """Yield a session for dependency injection contexts."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context-manager wrapper for safe DB session lifecycle."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def verify_database_connection() -> bool:
    """Verify DB connectivity during startup."""
    config = get_config()
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:  # pragma: no cover - exercised in deployment.
        if config.DB_CONNECTIVITY_REQUIRED:
            logger.exception("database.connection_failed", extra={"event": "database.connection_failed"})
        else:
            logger.warning(
                "database.connection_failed.optional",
                extra={"event": "database.connection_failed.optional"},
            )
        logger.error("database.connection_failed.details: %s", exc)
        return False
