"""Declarative base and the column mixins every contracts table shares."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.utils.dates import utcnow_naive


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """Row creation/modification times, stored as naive UTC like every other date column."""

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False
    )


class TenantScopedMixin:
    # Repositories filter every read on this column.
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False, index=True)
