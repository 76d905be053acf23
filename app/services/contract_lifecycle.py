"""Contract status lifecycle rules.

Pure data and pure functions only: the transition table, the set of
statuses a contract may be created in, and the business validation that
runs before anything is persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.core.state_machine import StateMachine
from app.models.enums import ContractStatus

DEFAULT_MAX_REACTIVATIONS = 3

CONTRACT_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.SENT, ContractStatus.CANCELLED}),
    # A contract must be evidenced as sent before it can be signed.
    ContractStatus.SENT: frozenset({ContractStatus.SIGNED, ContractStatus.DRAFT, ContractStatus.CANCELLED}),
    ContractStatus.SIGNED: frozenset({ContractStatus.ACTIVE, ContractStatus.CANCELLED}),
    ContractStatus.ACTIVE: frozenset({ContractStatus.EXPIRED, ContractStatus.CANCELLED}),
    ContractStatus.EXPIRED: frozenset({ContractStatus.ACTIVE}),
    ContractStatus.CANCELLED: frozenset(),
}

CONTRACT_STATE_MACHINE: StateMachine[ContractStatus] = StateMachine(CONTRACT_TRANSITIONS)

# Already-running agreements may be imported as SENT/SIGNED/ACTIVE; nothing is born expired or cancelled.
INITIAL_STATUSES: frozenset[ContractStatus] = frozenset(
    {ContractStatus.DRAFT, ContractStatus.SENT, ContractStatus.SIGNED, ContractStatus.ACTIVE}
)


def is_reactivation(current: ContractStatus, target: ContractStatus) -> bool:
    return current == ContractStatus.EXPIRED and target == ContractStatus.ACTIVE


def reactivation_limit_message(max_reactivations: int) -> str:
    return f"Contract has reached the maximum reactivation limit ({max_reactivations})"


def reactivation_reason(number: int, max_reactivations: int, reason: str | None = None) -> str:
    label = f"Reactivation #{number} (of {max_reactivations})"
    return f"{label}: {reason}" if reason else label


def status_change_reason(target: ContractStatus, reason: str | None = None) -> str:
    label = f"Status changed to {target.value}"
    return f"{label}: {reason}" if reason else label


def validate_contract_data(
    data: Mapping[str, Any],
    max_reactivations: int = DEFAULT_MAX_REACTIVATIONS,
) -> list[str]:
    """Return every violated business rule; an empty list means valid."""
    errors: list[str] = []

    title = data.get("title")
    if not title or not str(title).strip():
        errors.append("Title is required")

    if not data.get("organisation_id"):
        errors.append("Organisation is required")

    amount = data.get("amount")
    if amount is not None and amount < 0:
        errors.append("Amount cannot be negative")

    effective_date = data.get("effective_date")
    end_date = data.get("end_date")
    if effective_date and end_date and end_date <= effective_date:
        errors.append("End date must be after effective date")

    sent_date = data.get("sent_date")
    signed_date = data.get("signed_date")
    if sent_date and signed_date and signed_date < sent_date:
        errors.append("Signed date cannot be before sent date")

    currency = data.get("currency")
    if not isinstance(currency, str) or len(currency) != 3 or not currency.isalpha():
        errors.append("Currency must be a 3-letter code")

    reactivation_count = data.get("reactivation_count", 0) or 0
    if not 0 <= reactivation_count <= max_reactivations:
        errors.append(f"Reactivation count must be between 0 and {max_reactivations}")

    return errors
