from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest

from app.auth.tenant_context import TenantContext
from app.core.config import get_config
from app.database.db import configure_engine, dispose_engine, get_engine, get_session_factory
from app.models import Base, Deal, Organisation, Tenant
from app.services.contract_service import ContractService


class FakeClock:
    """Settable replacement for ``utcnow_naive``."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@dataclass
class TenantFixture:
    organisation_id: str
    deal_id: str
    foreign_organisation_id: str
    admin: TenantContext
    senior: TenantContext
    junior: TenantContext
    other_junior: TenantContext
    viewer: TenantContext
    foreign_admin: TenantContext


@pytest.fixture
def session_factory(tmp_path):
    configure_engine(f"sqlite:///{tmp_path / 'contracts_test.db'}")
    Base.metadata.create_all(bind=get_engine())
    yield get_session_factory()
    dispose_engine()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def tenants(db_session) -> TenantFixture:
    db_session.add_all([Tenant(id=1, slug="acme", name="Acme"), Tenant(id=2, slug="globex", name="Globex")])
    db_session.flush()
    organisation = Organisation(tenant_id=1, name="AutoMax Luxury", type="DEALER")
    foreign_organisation = Organisation(tenant_id=2, name="Globex Motors")
    db_session.add_all([organisation, foreign_organisation])
    db_session.flush()
    deal = Deal(tenant_id=1, organisation_id=organisation.id, title="Fleet renewal", value=120000)
    db_session.add(deal)
    db_session.commit()

    return TenantFixture(
        organisation_id=organisation.id,
        deal_id=deal.id,
        foreign_organisation_id=foreign_organisation.id,
        admin=TenantContext(tenant_id=1, user_id=1, role="admin"),
        senior=TenantContext(tenant_id=1, user_id=2, role="senior_sales_manager"),
        junior=TenantContext(tenant_id=1, user_id=3, role="junior_sales_manager"),
        other_junior=TenantContext(tenant_id=1, user_id=5, role="junior_sales_manager"),
        viewer=TenantContext(tenant_id=1, user_id=4, role="viewer"),
        foreign_admin=TenantContext(tenant_id=2, user_id=9, role="admin"),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, 0))


@pytest.fixture
def service(db_session, clock) -> ContractService:
    return ContractService(db=db_session, config=get_config(), clock=clock)
