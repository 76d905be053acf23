"""Explicit schema initialization; run once at deploy time, never on import."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

from app.core.startup import bootstrap
from app.database.db import get_active_database_url, get_engine
from app.models import Base

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def create_schema() -> None:
    """Create every table straight from model metadata (tests, throwaway SQLite)."""
    Base.metadata.create_all(bind=get_engine())


def init_db(database_url: str | None = None, use_migrations: bool = True) -> None:
    bootstrap(database_url)
    active_url = get_active_database_url()
    if use_migrations:
        command.upgrade(build_alembic_config(active_url), "head")
    else:
        create_schema()
    logger.info(
        "database.schema.ready",
        extra={
            "event": "database.schema.ready",
            "database_url_scheme": active_url.split("://", 1)[0],
            "migrations": use_migrations,
        },
    )


if __name__ == "__main__":
    init_db()
