"""Demo data for local development; only ever invoked explicitly."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.auth.tenant_context import TenantContext
from app.models import ContractStatus, ContractType, Organisation, Tenant, UserRole
from app.services.contract_service import ContractService
from app.utils.dates import utcnow_naive

logger = logging.getLogger(__name__)

DEMO_TENANT_SLUG = "demo"
DEMO_ADMIN_USER_ID = 1


def _demo_contracts(now: datetime) -> list[dict[str, Any]]:
    return [
        {
            "title": "Master Service Agreement - AutoMax Luxury",
            "contract_number": "MSA-2024-001",
            "type": ContractType.MASTER,
            "status": ContractStatus.ACTIVE,
            "description": "Master agreement covering all vehicle shipping services",
            "amount": Decimal("500000"),
            "effective_date": datetime(2024, 1, 1),
            "end_date": datetime(2025, 12, 31),
            "sent_date": datetime(2023, 12, 1),
            "signed_date": datetime(2023, 12, 15),
            "notes": "Annual master service agreement with volume discounts applied",
        },
        {
            "title": "Vehicle Purchase Order #2024-Q1-045",
            "contract_number": "PO-2024-045",
            "type": ContractType.ORDER,
            "status": ContractStatus.SIGNED,
            "amount": Decimal("1250000"),
            "effective_date": datetime(2024, 3, 1),
            "end_date": datetime(2024, 6, 30),
            "sent_date": datetime(2024, 2, 15),
            "signed_date": datetime(2024, 2, 28),
        },
        {
            "title": "Shipping Services Agreement - Q2 2024",
            "contract_number": "SSA-2024-Q2",
            "type": ContractType.SERVICE,
            "status": ContractStatus.SENT,
            "amount": Decimal("75000"),
            "effective_date": datetime(2024, 4, 1),
            "end_date": datetime(2024, 6, 30),
            "sent_date": now,
            "notes": "Pending signature - sent for review",
        },
        {
            "title": "NDA - Strategic Partnership Discussion",
            "contract_number": "NDA-2024-007",
            "type": ContractType.NDA,
            "status": ContractStatus.DRAFT,
            "notes": "Draft prepared for legal review",
        },
        {
            "title": "Amendment to MSA-2024-001 - Rate Update",
            "contract_number": "AMD-2024-001",
            "type": ContractType.AMENDMENT,
            "status": ContractStatus.ACTIVE,
            "amount": Decimal("50000"),
            "version": "1.1",
            "effective_date": datetime(2024, 4, 1),
            "sent_date": datetime(2024, 3, 10),
            "signed_date": datetime(2024, 3, 25),
        },
        {
            "title": "Service Contract - Expiring Soon",
            "contract_number": "CNT-2023-099",
            "type": ContractType.SERVICE,
            "status": ContractStatus.ACTIVE,
            "amount": Decimal("25000"),
            "effective_date": datetime(2023, 6, 1),
            "end_date": now + timedelta(days=15),
            "sent_date": datetime(2023, 5, 1),
            "signed_date": datetime(2023, 5, 15),
            "notes": "Contract expiring soon - renewal needed",
        },
    ]


def seed_demo_data(db: Session, clock: Callable[[], datetime] = utcnow_naive) -> list[str]:
    """Create a demo tenant with one organisation and sample contracts owned by an admin.

    Returns the ids of contracts created. Re-running is a no-op once the demo
    tenant exists.
    """
    if db.execute(select(Tenant).where(Tenant.slug == DEMO_TENANT_SLUG)).scalar_one_or_none() is not None:
        logger.info("seed.skipped", extra={"event": "seed.skipped", "tenant_slug": DEMO_TENANT_SLUG})
        return []

    tenant = Tenant(slug=DEMO_TENANT_SLUG, name="Demo Tenant")
    db.add(tenant)
    db.flush()
    organisation = Organisation(tenant_id=tenant.id, name="AutoMax Luxury", type="DEALER")
    db.add(organisation)
    db.commit()

    acting_user = TenantContext(tenant_id=tenant.id, user_id=DEMO_ADMIN_USER_ID, role=UserRole.ADMIN.value)
    service = ContractService(db=db, clock=clock)
    created: list[str] = []
    for payload in _demo_contracts(clock()):
        payload["organisation_id"] = organisation.id
        result = service.create_contract(payload, acting_user, reason="Seed data")
        if not result.success or result.data is None:
            logger.warning(
                "seed.contract.rejected",
                extra={"event": "seed.contract.rejected", "errors": result.errors},
            )
            continue
        created.append(result.data.id)

    logger.info("seed.completed", extra={"event": "seed.completed", "contracts": len(created)})
    return created
