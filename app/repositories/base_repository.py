"""Session lifecycle and tenant scoping shared by repositories."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.auth.tenant_context import TenantContext
from app.database.db import get_session_factory


class TenantScopedRepository:
    """Base class for repositories that operate on a SQLAlchemy session.

    Every query built through ``scoped_select`` is pinned to the acting
    user's tenant; subclasses never issue unscoped reads.
    """

    model: Any = None

    def __init__(self, db: Session | None = None) -> None:
        self.db = db or get_session_factory()()

    def scoped_select(self, user: TenantContext, model: Any = None) -> Select:
        target = model or self.model
        return select(target).where(target.tenant_id == user.tenant_id)

    def exists_in_tenant(self, model: Any, entity_id: str, user: TenantContext) -> bool:
        stmt = self.scoped_select(user, model).where(model.id == entity_id).limit(1)
        return self.db.execute(stmt).first() is not None

    def commit(self) -> None:
        """Commit current transaction and rollback on failure."""
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "TenantScopedRepository":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        self.close()
