"""Process start: logging, engine binding and fail-fast checks."""

from __future__ import annotations

import logging

from sqlalchemy import inspect

from app.core.config import get_config
from app.core.logging_config import configure_logging
from app.database.db import configure_engine, get_active_database_url, get_engine, verify_database_connection

logger = logging.getLogger(__name__)

REQUIRED_TABLES = frozenset({"tenants", "organisations", "deals", "contracts", "contract_history"})


def missing_tables() -> set[str]:
    """Contract tables absent from the bound database (run ``init_db`` to create them)."""
    return set(REQUIRED_TABLES) - set(inspect(get_engine()).get_table_names())


def validate_startup_config() -> None:
    config = get_config()
    database_url = get_active_database_url()
    scheme = database_url.split("://", 1)[0]

    if not verify_database_connection():
        if config.DB_CONNECTIVITY_REQUIRED:
            raise RuntimeError("Database connectivity check failed.")
        logger.warning(
            "startup.database.unreachable",
            extra={"event": "startup.database.unreachable", "database_url_scheme": scheme},
        )
    else:
        absent = missing_tables()
        if absent:
            logger.warning(
                "startup.database.schema_missing",
                extra={"event": "startup.database.schema_missing", "errors": sorted(absent)},
            )

    if config.is_production and scheme == "sqlite":
        logger.warning("startup.production.sqlite_detected", extra={"event": "startup.production.sqlite_detected"})

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": scheme,
            "max_reactivations": config.CONTRACT_MAX_REACTIVATIONS,
        },
    )


def bootstrap(database_url: str | None = None) -> None:
    """Run once per process (ASGI lifespan, scripts); importing the package does none of this."""
    configure_logging()
    configure_engine(database_url)
    validate_startup_config()
