"""contract lifecycle schema with tenant isolation and audit trail

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

CONTRACT_STATUS = sa.Enum("DRAFT", "SENT", "SIGNED", "ACTIVE", "EXPIRED", "CANCELLED", name="contractstatus")
CONTRACT_TYPE = sa.Enum(
    "MASTER", "ORDER", "SERVICE", "NDA", "AMENDMENT", "SERVICE_AGREEMENT", "OTHER", name="contracttype"
)
HISTORY_OPERATION = sa.Enum("CREATE", "UPDATE", "STATUS_CHANGE", name="historyoperation")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _tenant_column() -> sa.Column:
    return sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "organisations",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organisations_tenant_id", "organisations", ["tenant_id"])
    op.create_index("idx_organisations_tenant_name", "organisations", ["tenant_id", "name"])

    op.create_table(
        "deals",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column("organisation_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["organisation_id"], ["organisations.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_deals_tenant_id", "deals", ["tenant_id"])
    op.create_index("idx_deals_tenant_organisation", "deals", ["tenant_id", "organisation_id"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_column(),
        sa.Column("contract_number", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", CONTRACT_TYPE, nullable=False),
        sa.Column("status", CONTRACT_STATUS, nullable=False),
        sa.Column("organisation_id", sa.String(length=36), nullable=False),
        sa.Column("deal_id", sa.String(length=36), nullable=True),
        sa.Column("contact_ids", sa.JSON(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("version", sa.String(length=20), nullable=False),
        sa.Column("effective_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("sent_date", sa.DateTime(), nullable=True),
        sa.Column("signed_date", sa.DateTime(), nullable=True),
        sa.Column("reactivation_count", sa.Integer(), nullable=False),
        sa.Column("assigned_user_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("row_version", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["organisation_id"], ["organisations.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "contract_number", name="uq_contracts_tenant_number"),
        sa.CheckConstraint("reactivation_count >= 0", name="ck_contracts_reactivation_count_non_negative"),
    )
    op.create_index("ix_contracts_tenant_id", "contracts", ["tenant_id"])
    op.create_index("ix_contracts_assigned_user_id", "contracts", ["assigned_user_id"])
    op.create_index("idx_contracts_tenant_status", "contracts", ["tenant_id", "status"])
    op.create_index("idx_contracts_tenant_organisation", "contracts", ["tenant_id", "organisation_id"])
    op.create_index("idx_contracts_tenant_deal", "contracts", ["tenant_id", "deal_id"])

    op.create_table(
        "contract_history",
        sa.Column("id", sa.Integer(), nullable=False),
        _tenant_column(),
        sa.Column("contract_id", sa.String(length=36), nullable=False),
        sa.Column("operation", HISTORY_OPERATION, nullable=False),
        sa.Column("changed_fields", sa.JSON(), nullable=False),
        sa.Column("before_data", sa.JSON(), nullable=True),
        sa.Column("after_data", sa.JSON(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("checksum", sa.String(length=64), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contract_history_tenant_id", "contract_history", ["tenant_id"])
    op.create_index("idx_contract_history_tenant_contract", "contract_history", ["tenant_id", "contract_id"])


def downgrade() -> None:
    op.drop_index("idx_contract_history_tenant_contract", table_name="contract_history")
    op.drop_index("ix_contract_history_tenant_id", table_name="contract_history")
    op.drop_table("contract_history")

    op.drop_index("idx_contracts_tenant_deal", table_name="contracts")
    op.drop_index("idx_contracts_tenant_organisation", table_name="contracts")
    op.drop_index("idx_contracts_tenant_status", table_name="contracts")
    op.drop_index("ix_contracts_assigned_user_id", table_name="contracts")
    op.drop_index("ix_contracts_tenant_id", table_name="contracts")
    op.drop_table("contracts")

    op.drop_index("idx_deals_tenant_organisation", table_name="deals")
    op.drop_index("ix_deals_tenant_id", table_name="deals")
    op.drop_table("deals")

    op.drop_index("idx_organisations_tenant_name", table_name="organisations")
    op.drop_index("ix_organisations_tenant_id", table_name="organisations")
    op.drop_table("organisations")

    op.drop_table("tenants")

    bind = op.get_bind()
    for enum_type in (HISTORY_OPERATION, CONTRACT_TYPE, CONTRACT_STATUS):
        enum_type.drop(bind, checkfirst=True)
