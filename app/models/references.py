"""Records owned by neighbouring CRM modules that contracts point at.

This service only checks that a referenced organisation or deal exists in the
acting user's tenant; it never edits these rows outside of seeding.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TenantScopedMixin, TimestampMixin
from app.utils.ids import new_entity_id


class Tenant(Base, TimestampMixin):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Organisation(Base, TimestampMixin, TenantScopedMixin):
    """Counterparty a contract is signed with."""

    __tablename__ = "organisations"
    __table_args__ = (Index("idx_organisations_tenant_name", "tenant_id", "name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_entity_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str | None] = mapped_column(String(50))


class Deal(Base, TimestampMixin, TenantScopedMixin):
    """Sales opportunity a contract may close."""

    __tablename__ = "deals"
    __table_args__ = (Index("idx_deals_tenant_organisation", "tenant_id", "organisation_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_entity_id)
    organisation_id: Mapped[str | None] = mapped_column(ForeignKey("organisations.id", ondelete="RESTRICT"))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    organisation = relationship(Organisation)
