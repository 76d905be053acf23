"""Dependency providers for API handlers and scripts."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import Config, get_config
from app.database.db import get_db
from app.services.contract_service import ContractService


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_contract_service(
    db: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> ContractService:
    """Request-scoped lifecycle service bound to the request's session."""
    return ContractService(db=db, config=settings)
