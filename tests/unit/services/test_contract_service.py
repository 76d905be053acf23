from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

import app.services.contract_service as contract_service_module
from app.core.config import get_config
from app.core.exceptions import ValidationError
from app.models.enums import ContractStatus, ContractType, HistoryOperation
from app.repositories.contract_repository import verify_history_entry
from app.services.contract_service import ContractService
from app.services.results import ErrorCode

S = ContractStatus


def _create(service, tenants, user=None, **overrides):
    data = {"title": "Master Service Agreement", "organisation_id": tenants.organisation_id}
    data.update(overrides)
    result = service.create_contract(data, user or tenants.admin)
    assert result.success, result.errors
    return result.data


def _walk(service, contract_id, user, *statuses):
    for status in statuses:
        result = service.update_status(contract_id, status, user)
        assert result.success, result.errors
    return result.data


# --- create_contract -----------------------------------------------------------------


def test_create_contract_applies_defaults(service, tenants):
    contract = _create(service, tenants)

    assert contract.status == S.DRAFT
    assert contract.version == "1.0"
    assert contract.currency == "USD"
    assert contract.type == ContractType.SERVICE
    assert contract.reactivation_count == 0
    assert contract.tenant_id == 1
    assert contract.assigned_user_id == tenants.admin.user_id
    assert contract.created_by == tenants.admin.user_id
    assert contract.row_version == 1
    assert re.fullmatch(r"CNT-\d{13}-[A-Z0-9]{4}", contract.contract_number)


def test_generated_contract_numbers_are_distinct(service, tenants):
    first = _create(service, tenants)
    second = _create(service, tenants)
    assert first.contract_number != second.contract_number


def test_create_contract_keeps_explicit_fields(service, tenants):
    contract = _create(
        service,
        tenants,
        contract_number="MSA-2026-001",
        type=ContractType.MASTER,
        status=S.ACTIVE,
        amount=Decimal("500000.00"),
        currency="eur",
        version="2.1",
        deal_id=tenants.deal_id,
        assigned_user_id=tenants.junior.user_id,
        tags=["priority"],
    )
    assert contract.contract_number == "MSA-2026-001"
    assert contract.status == S.ACTIVE
    assert contract.currency == "EUR"
    assert contract.amount == Decimal("500000.00")
    assert contract.version == "2.1"
    assert contract.deal_id == tenants.deal_id
    assert contract.assigned_user_id == tenants.junior.user_id
    assert contract.tags == ["priority"]


def test_create_contract_reports_all_validation_errors(service, tenants):
    result = service.create_contract({"title": "", "amount": -5}, tenants.admin)

    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION
    assert "Title is required" in result.errors
    assert "Organisation is required" in result.errors
    assert "Amount cannot be negative" in result.errors
    assert service.list_contracts(tenants.admin) == []


def test_create_contract_rejects_bad_date_ordering(service, tenants):
    result = service.create_contract(
        {
            "title": "Order",
            "organisation_id": tenants.organisation_id,
            "effective_date": datetime(2026, 6, 1),
            "end_date": datetime(2026, 5, 1),
            "sent_date": datetime(2026, 5, 10),
            "signed_date": datetime(2026, 5, 9),
        },
        tenants.admin,
    )
    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == [
        "End date must be after effective date",
        "Signed date cannot be before sent date",
    ]


@pytest.mark.parametrize("status", [S.EXPIRED, S.CANCELLED])
def test_create_contract_rejects_non_initial_status(service, tenants, status):
    result = service.create_contract(
        {"title": "Late import", "organisation_id": tenants.organisation_id, "status": status},
        tenants.admin,
    )
    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == [f"Invalid initial status: {status.value}"]


def test_create_contract_rejects_reactivation_count_above_limit(service, tenants):
    result = service.create_contract(
        {"title": "Import", "organisation_id": tenants.organisation_id, "reactivation_count": 4},
        tenants.admin,
    )
    assert result.errors == ["Reactivation count must be between 0 and 3"]


def test_create_contract_rejects_duplicate_number_within_tenant(service, tenants):
    _create(service, tenants, contract_number="NDA-7")
    result = service.create_contract(
        {"title": "Copy", "organisation_id": tenants.organisation_id, "contract_number": "NDA-7"},
        tenants.admin,
    )
    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == ["Contract number NDA-7 already exists"]


def test_same_contract_number_is_allowed_in_another_tenant(service, tenants):
    _create(service, tenants, contract_number="NDA-7")
    result = service.create_contract(
        {"title": "Other", "organisation_id": tenants.foreign_organisation_id, "contract_number": "NDA-7"},
        tenants.foreign_admin,
    )
    assert result.success, result.errors


def test_create_contract_requires_references_in_same_tenant(service, tenants):
    result = service.create_contract(
        {"title": "Cross", "organisation_id": tenants.foreign_organisation_id, "deal_id": "missing-deal"},
        tenants.admin,
    )
    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == [
        f"Organisation {tenants.foreign_organisation_id} not found",
        "Deal missing-deal not found",
    ]


def test_create_contract_reports_schema_errors_as_results(service, tenants):
    result = service.create_contract(
        {"title": "Bad", "organisation_id": tenants.organisation_id, "amount": "lots"},
        tenants.admin,
    )
    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors[0].startswith("amount:")


def test_contract_number_allocation_gives_up_after_max_attempts(service, tenants, monkeypatch):
    _create(service, tenants, contract_number="CNT-1-AAAA")
    calls = []

    def _always_taken(prefix="CNT", suffix_length=4):
        calls.append(prefix)
        return "CNT-1-AAAA"

    monkeypatch.setattr(contract_service_module, "new_contract_number", _always_taken)
    result = service.create_contract({"title": "Next", "organisation_id": tenants.organisation_id}, tenants.admin)

    assert result.error_code == ErrorCode.CONFLICT
    assert result.errors == ["Could not allocate a unique contract number"]
    assert len(calls) == get_config().CONTRACT_NUMBER_MAX_ATTEMPTS


def test_viewer_cannot_create_contracts(service, tenants):
    result = service.create_contract(
        {"title": "Read only", "organisation_id": tenants.organisation_id}, tenants.viewer
    )
    assert result.error_code == ErrorCode.FORBIDDEN


# --- update_status -------------------------------------------------------------------


def test_full_happy_path_to_active(service, tenants, clock):
    contract = _create(service, tenants)
    clock.now = datetime(2026, 3, 2, 10, 0)
    sent = _walk(service, contract.id, tenants.admin, S.SENT)
    assert sent.sent_date == datetime(2026, 3, 2, 10, 0)

    clock.now = datetime(2026, 3, 5, 16, 30)
    active = _walk(service, contract.id, tenants.admin, S.SIGNED, S.ACTIVE)
    assert active.status == S.ACTIVE
    assert active.signed_date == datetime(2026, 3, 5, 16, 30)
    assert active.updated_by == tenants.admin.user_id
    assert active.row_version == 4


def test_draft_cannot_jump_to_signed(service, tenants):
    contract = _create(service, tenants)
    result = service.update_status(contract.id, S.SIGNED, tenants.admin)

    assert result.error_code == ErrorCode.INVALID_TRANSITION
    assert result.errors == ["Cannot transition from DRAFT to SIGNED"]
    assert service.get_contract(contract.id, tenants.admin).status == S.DRAFT


def test_same_status_is_not_a_transition(service, tenants):
    contract = _create(service, tenants)
    result = service.update_status(contract.id, S.DRAFT, tenants.admin)
    assert result.error_code == ErrorCode.INVALID_TRANSITION


def test_cancelled_is_terminal(service, tenants):
    contract = _create(service, tenants)
    _walk(service, contract.id, tenants.admin, S.CANCELLED)

    for target in ContractStatus:
        result = service.update_status(contract.id, target, tenants.admin)
        assert result.error_code == ErrorCode.INVALID_TRANSITION


def test_unknown_status_value_is_a_validation_failure(service, tenants):
    contract = _create(service, tenants)
    result = service.update_status(contract.id, "ARCHIVED", tenants.admin)
    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == ["Unknown contract status: ARCHIVED"]


def test_status_strings_are_accepted(service, tenants):
    contract = _create(service, tenants)
    result = service.update_status(contract.id, "SENT", tenants.admin)
    assert result.success
    assert result.data.status == S.SENT


def test_update_status_on_missing_contract(service, tenants):
    result = service.update_status("does-not-exist", S.SENT, tenants.admin)
    assert result.error_code == ErrorCode.NOT_FOUND
    assert result.errors == ["Contract not found or access denied"]


def test_reactivation_is_capped_at_three(service, tenants):
    contract = _create(service, tenants, status=S.ACTIVE)

    for expected in (1, 2, 3):
        _walk(service, contract.id, tenants.admin, S.EXPIRED)
        reactivated = _walk(service, contract.id, tenants.admin, S.ACTIVE)
        assert reactivated.reactivation_count == expected

    _walk(service, contract.id, tenants.admin, S.EXPIRED)
    result = service.update_status(contract.id, S.ACTIVE, tenants.admin)

    assert result.success is False
    assert result.error_code == ErrorCode.REACTIVATION_LIMIT
    assert result.errors == ["Contract has reached the maximum reactivation limit (3)"]
    current = service.get_contract(contract.id, tenants.admin)
    assert current.status == S.EXPIRED
    assert current.reactivation_count == 3


def test_imported_contract_at_limit_cannot_be_reactivated(service, tenants):
    contract = _create(service, tenants, status=S.ACTIVE, reactivation_count=3)
    _walk(service, contract.id, tenants.admin, S.EXPIRED)
    result = service.update_status(contract.id, S.ACTIVE, tenants.admin)
    assert result.error_code == ErrorCode.REACTIVATION_LIMIT


def test_reactivation_limit_follows_config(db_session, tenants, clock):
    config = replace(get_config(), CONTRACT_MAX_REACTIVATIONS=1)
    service = ContractService(db=db_session, config=config, clock=clock)
    contract = _create(service, tenants, status=S.ACTIVE)
    _walk(service, contract.id, tenants.admin, S.EXPIRED, S.ACTIVE, S.EXPIRED)

    result = service.update_status(contract.id, S.ACTIVE, tenants.admin)
    assert result.errors == ["Contract has reached the maximum reactivation limit (1)"]


def test_signed_to_active_does_not_count_as_reactivation(service, tenants):
    contract = _create(service, tenants, status=S.SIGNED)
    active = _walk(service, contract.id, tenants.admin, S.ACTIVE)
    assert active.reactivation_count == 0


def test_sent_date_is_stamped_once(service, tenants, clock):
    contract = _create(service, tenants)
    first_sent = datetime(2026, 3, 2, 8, 0)
    clock.now = first_sent
    _walk(service, contract.id, tenants.admin, S.SENT, S.DRAFT)

    clock.now = datetime(2026, 3, 9, 8, 0)
    resent = _walk(service, contract.id, tenants.admin, S.SENT)
    assert resent.sent_date == first_sent


def test_imported_signed_date_is_preserved(service, tenants):
    signed = datetime(2025, 12, 15)
    contract = _create(
        service,
        tenants,
        status=S.SENT,
        sent_date=datetime(2025, 12, 1),
        signed_date=signed,
    )
    result = _walk(service, contract.id, tenants.admin, S.SIGNED)
    assert result.signed_date == signed


def test_sending_rejects_sent_stamp_after_existing_signed_date(service, tenants):
    contract = _create(service, tenants, signed_date=datetime(2025, 1, 1))

    result = service.update_status(contract.id, S.SENT, tenants.admin)

    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == ["Signed date cannot be before sent date"]
    stored = service.get_contract(contract.id, tenants.admin)
    assert stored.status == S.DRAFT
    assert stored.sent_date is None
    assert len(service.get_history(contract.id, tenants.admin)) == 1


def test_expected_row_version_mismatch_is_a_conflict(service, tenants):
    contract = _create(service, tenants)
    _walk(service, contract.id, tenants.admin, S.SENT)

    result = service.update_status(contract.id, S.DRAFT, tenants.admin, expected_row_version=1)
    assert result.error_code == ErrorCode.CONFLICT
    assert result.errors == ["Contract was modified by another request; reload and retry"]
    assert service.get_contract(contract.id, tenants.admin).status == S.SENT


def test_expected_row_version_match_succeeds(service, tenants):
    contract = _create(service, tenants)
    result = service.update_status(contract.id, S.SENT, tenants.admin, expected_row_version=1)
    assert result.success
    assert result.data.row_version == 2


def test_concurrent_writer_causes_conflict_not_lost_update(session_factory, tenants, clock):
    session_a = session_factory()
    session_b = session_factory()
    try:
        service_a = ContractService(db=session_a, clock=clock)
        service_b = ContractService(db=session_b, clock=clock)
        contract = _create(service_a, tenants, status=S.ACTIVE, reactivation_count=2)
        _walk(service_a, contract.id, tenants.admin, S.EXPIRED)

        # session_a still holds the EXPIRED row at row_version 2 in its identity map.
        assert _walk(service_b, contract.id, tenants.admin, S.ACTIVE).reactivation_count == 3
        result = service_a.update_status(contract.id, S.ACTIVE, tenants.admin)

        assert result.error_code == ErrorCode.CONFLICT
        fresh = ContractService(db=session_factory(), clock=clock)
        try:
            current = fresh.get_contract(contract.id, tenants.admin)
            assert current.reactivation_count == 3
            assert current.status == S.ACTIVE
        finally:
            fresh.close()
    finally:
        session_a.close()
        session_b.close()


# --- access control ------------------------------------------------------------------


def test_other_tenant_cannot_see_or_change_contract(service, tenants):
    contract = _create(service, tenants)

    assert service.get_contract(contract.id, tenants.foreign_admin) is None
    assert service.list_contracts(tenants.foreign_admin) == []
    assert service.get_history(contract.id, tenants.foreign_admin) is None
    result = service.update_status(contract.id, S.SENT, tenants.foreign_admin)
    assert result.error_code == ErrorCode.NOT_FOUND


def test_junior_manager_only_sees_own_contracts(service, tenants):
    own = _create(service, tenants, user=tenants.junior, title="Mine")
    _create(service, tenants, title="Assigned elsewhere", assigned_user_id=tenants.senior.user_id)

    assert [c.id for c in service.list_contracts(tenants.junior)] == [own.id]
    assert service.get_contract(own.id, tenants.other_junior) is None
    assert service.update_status(own.id, S.SENT, tenants.other_junior).error_code == ErrorCode.NOT_FOUND
    assert service.update_status(own.id, S.SENT, tenants.junior).success


def test_junior_manager_can_work_assigned_contract(service, tenants):
    contract = _create(service, tenants, assigned_user_id=tenants.junior.user_id)
    assert service.get_contract(contract.id, tenants.junior) is not None
    assert service.update_status(contract.id, S.SENT, tenants.junior).success


def test_senior_manager_sees_whole_tenant(service, tenants):
    _create(service, tenants, user=tenants.junior)
    _create(service, tenants)
    assert len(service.list_contracts(tenants.senior)) == 2


def test_viewer_can_read_but_not_update(service, tenants):
    contract = _create(service, tenants)
    assert service.get_contract(contract.id, tenants.viewer) is not None

    result = service.update_status(contract.id, S.SENT, tenants.viewer)
    assert result.error_code == ErrorCode.FORBIDDEN
    assert result.errors == ["Access denied: cannot update this contract"]


# --- update_contract -----------------------------------------------------------------


def test_update_contract_patches_fields_and_logs_history(service, tenants):
    contract = _create(service, tenants)
    result = service.update_contract(contract.id, {"title": "Renamed MSA", "notes": "Legal reviewed"}, tenants.admin)

    assert result.success
    assert result.data.title == "Renamed MSA"
    history = service.get_history(contract.id, tenants.admin)
    assert [entry.operation for entry in history] == [HistoryOperation.CREATE, HistoryOperation.UPDATE]
    assert history[-1].changed_fields == ["notes", "title"]


def test_update_contract_without_changes_writes_no_history(service, tenants):
    contract = _create(service, tenants)
    result = service.update_contract(contract.id, {"title": contract.title}, tenants.admin)
    assert result.success
    assert len(service.get_history(contract.id, tenants.admin)) == 1


def test_update_contract_validates_merged_record(service, tenants):
    contract = _create(service, tenants, effective_date=datetime(2026, 1, 1), end_date=datetime(2026, 12, 31))
    result = service.update_contract(contract.id, {"end_date": datetime(2025, 12, 1), "amount": -1}, tenants.admin)

    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == ["Amount cannot be negative", "End date must be after effective date"]


def test_update_contract_cannot_change_status(service, tenants):
    contract = _create(service, tenants)
    result = service.update_contract(contract.id, {"status": "ACTIVE"}, tenants.admin)

    assert result.error_code == ErrorCode.VALIDATION
    assert any(error.startswith("status:") for error in result.errors)
    assert service.get_contract(contract.id, tenants.admin).status == S.DRAFT


def test_update_contract_rejects_number_taken_by_another_contract(service, tenants):
    _create(service, tenants, contract_number="PO-1")
    contract = _create(service, tenants, contract_number="PO-2")
    result = service.update_contract(contract.id, {"contract_number": "PO-1"}, tenants.admin)
    assert result.errors == ["Contract number PO-1 already exists"]


def test_update_contract_ignores_blank_identifiers(service, tenants):
    contract = _create(service, tenants, contract_number="PO-7", version="2.1")
    result = service.update_contract(contract.id, {"contract_number": "  ", "version": ""}, tenants.admin)

    assert result.success
    assert result.data.contract_number == "PO-7"
    assert result.data.version == "2.1"


def test_update_contract_rejects_blank_organisation(service, tenants):
    contract = _create(service, tenants)
    result = service.update_contract(contract.id, {"organisation_id": ""}, tenants.admin)

    assert result.error_code == ErrorCode.VALIDATION
    assert result.errors == ["Organisation is required"]


# --- queries -------------------------------------------------------------------------


def test_query_helpers_filter_by_field(service, tenants):
    nda = _create(service, tenants, type=ContractType.NDA)
    order = _create(service, tenants, type=ContractType.ORDER, deal_id=tenants.deal_id, status=S.SIGNED)

    assert [c.id for c in service.get_by_type(ContractType.NDA, tenants.admin)] == [nda.id]
    assert [c.id for c in service.get_by_deal(tenants.deal_id, tenants.admin)] == [order.id]
    assert [c.id for c in service.get_by_status(S.SIGNED, tenants.admin)] == [order.id]
    assert {c.id for c in service.get_by_organisation(tenants.organisation_id, tenants.admin)} == {nda.id, order.id}


def test_get_expiring_returns_active_contracts_in_window(service, tenants, clock):
    now = clock.now
    soon = _create(service, tenants, status=S.ACTIVE, end_date=now + timedelta(days=10))
    _create(service, tenants, status=S.ACTIVE, end_date=now + timedelta(days=40))
    _create(service, tenants, status=S.SIGNED, end_date=now + timedelta(days=5))
    _create(service, tenants, status=S.ACTIVE, end_date=now - timedelta(days=1))
    _create(service, tenants, status=S.ACTIVE)

    assert [c.id for c in service.get_expiring(30, tenants.admin)] == [soon.id]
    assert [c.id for c in service.get_expiring(None, tenants.admin)] == [soon.id]
    assert len(service.get_expiring(60, tenants.admin)) == 2


@pytest.mark.parametrize("days", [-1, 3651, 10**7])
def test_get_expiring_rejects_window_out_of_range(service, tenants, days):
    with pytest.raises(ValidationError, match="between 0 and 3650"):
        service.get_expiring(days, tenants.admin)


# --- audit trail ---------------------------------------------------------------------


def test_history_records_reasons_and_verifies(service, tenants):
    contract = _create(service, tenants, status=S.ACTIVE)
    service.update_status(contract.id, S.EXPIRED, tenants.admin)
    service.update_status(contract.id, S.ACTIVE, tenants.admin, reason="Renewed for Q3")

    history = service.get_history(contract.id, tenants.admin)
    assert [entry.reason for entry in history] == [
        "Contract created",
        "Status changed to EXPIRED",
        "Reactivation #1 (of 3): Renewed for Q3",
    ]
    assert history[-1].changed_fields == ["reactivation_count", "status"]
    assert history[-1].before_data["status"] == "EXPIRED"
    assert history[-1].after_data["status"] == "ACTIVE"
    assert all(verify_history_entry(entry) for entry in history)


def test_rejected_transitions_leave_no_history(service, tenants):
    contract = _create(service, tenants)
    service.update_status(contract.id, S.SIGNED, tenants.admin)
    assert len(service.get_history(contract.id, tenants.admin)) == 1


def test_tampered_history_fails_verification(service, tenants):
    contract = _create(service, tenants)
    _walk(service, contract.id, tenants.admin, S.SENT)
    entry = service.get_history(contract.id, tenants.admin)[-1]

    entry.reason = "Status changed to SIGNED"
    assert verify_history_entry(entry) is False
