"""Contract model module."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TenantScopedMixin, TimestampMixin
from app.models.enums import ContractStatus, ContractType
from app.utils.ids import new_entity_id


class Contract(Base, TimestampMixin, TenantScopedMixin):
    __tablename__ = "contracts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "contract_number", name="uq_contracts_tenant_number"),
        CheckConstraint("reactivation_count >= 0", name="ck_contracts_reactivation_count_non_negative"),
        Index("idx_contracts_tenant_status", "tenant_id", "status"),
        Index("idx_contracts_tenant_organisation", "tenant_id", "organisation_id"),
        Index("idx_contracts_tenant_deal", "tenant_id", "deal_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_entity_id)
    contract_number: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[ContractType] = mapped_column(Enum(ContractType), default=ContractType.SERVICE, nullable=False)
    status: Mapped[ContractStatus] = mapped_column(Enum(ContractStatus), default=ContractStatus.DRAFT, nullable=False)

    organisation_id: Mapped[str] = mapped_column(ForeignKey("organisations.id", ondelete="RESTRICT"), nullable=False)
    deal_id: Mapped[str | None] = mapped_column(ForeignKey("deals.id", ondelete="SET NULL"))
    contact_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    version: Mapped[str] = mapped_column(String(20), default="1.0", nullable=False)

    # Naive UTC; SQLite drops tzinfo on read so everything is normalized on write.
    effective_date: Mapped[datetime | None] = mapped_column(DateTime)
    end_date: Mapped[datetime | None] = mapped_column(DateTime)
    sent_date: Mapped[datetime | None] = mapped_column(DateTime)
    signed_date: Mapped[datetime | None] = mapped_column(DateTime)

    reactivation_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    assigned_user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    created_by: Mapped[int | None] = mapped_column(Integer)
    updated_by: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}

    organisation = relationship("Organisation")
    deal = relationship("Deal")
