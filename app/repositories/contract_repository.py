"""Tenant-scoped contract persistence with an append-only audit trail."""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.auth.tenant_context import TenantContext
from app.core.logging import LogContext, build_log_event
from app.models.contract import Contract
from app.models.contract_history import ContractHistory
from app.models.enums import ContractStatus, HistoryOperation
from app.repositories.base_repository import TenantScopedRepository
from app.services.results import ErrorCode, OperationResult
from app.utils.dates import to_naive_utc, utcnow_naive

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR = "Contract not found or access denied"
CONCURRENT_MODIFICATION_ERROR = "Contract was modified by another request; reload and retry"
CONSTRAINT_ERROR = "Contract violates a uniqueness or reference constraint"

_SNAPSHOT_EXCLUDE = {"created_at", "updated_at"}


def _json_safe(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return to_naive_utc(value).isoformat()
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def snapshot_contract(contract: Contract) -> dict[str, Any]:
    """Column values of a contract as JSON-safe primitives."""
    return {
        column.key: _json_safe(getattr(contract, column.key))
        for column in Contract.__table__.columns
        if column.key not in _SNAPSHOT_EXCLUDE
    }


def history_checksum(
    *,
    tenant_id: int,
    contract_id: str,
    operation: HistoryOperation,
    changed_fields: list[str],
    before_data: dict[str, Any] | None,
    after_data: dict[str, Any] | None,
    user_id: int,
    reason: str | None,
    created_at: datetime,
) -> str:
    body = {
        "tenant_id": tenant_id,
        "contract_id": contract_id,
        "operation": operation.value,
        "changed_fields": changed_fields,
        "before_data": before_data,
        "after_data": after_data,
        "user_id": user_id,
        "reason": reason,
        "created_at": to_naive_utc(created_at).isoformat(),
    }
    encoded = json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def verify_history_entry(entry: ContractHistory) -> bool:
    """Return False when a stored history row no longer matches its checksum."""
    expected = history_checksum(
        tenant_id=entry.tenant_id,
        contract_id=entry.contract_id,
        operation=entry.operation,
        changed_fields=list(entry.changed_fields or []),
        before_data=entry.before_data,
        after_data=entry.after_data,
        user_id=entry.user_id,
        reason=entry.reason,
        created_at=entry.created_at,
    )
    return expected == entry.checksum


class ContractRepository(TenantScopedRepository):
    """CRUD collaborator for contracts.

    Tenant isolation and record-level access (assigned-or-created for
    restricted roles) are enforced here, so callers only ever see rows the
    acting user may see. ``get`` returns ``None`` both for missing rows and
    for rows outside the caller's reach.
    """

    model = Contract

    def _can(self, user: TenantContext, operation: str, contract: Contract) -> bool:
        return user.may_access(operation, contract.assigned_user_id, contract.created_by)

    def _visible_select(self, user: TenantContext):
        stmt = self.scoped_select(user)
        if not user.has_scope("contracts.read_all"):
            stmt = stmt.where(
                or_(Contract.assigned_user_id == user.user_id, Contract.created_by == user.user_id)
            )
        return stmt

    def _log_change(
        self,
        contract: Contract,
        operation: HistoryOperation,
        user: TenantContext,
        before_data: dict[str, Any] | None,
        after_data: dict[str, Any] | None,
        changed_fields: list[str],
        reason: str | None,
    ) -> ContractHistory:
        created_at = utcnow_naive()
        entry = ContractHistory(
            tenant_id=contract.tenant_id,
            contract_id=contract.id,
            operation=operation,
            changed_fields=changed_fields,
            before_data=before_data,
            after_data=after_data,
            user_id=user.user_id,
            reason=reason,
            created_at=created_at,
            updated_at=created_at,
            checksum=history_checksum(
                tenant_id=contract.tenant_id,
                contract_id=contract.id,
                operation=operation,
                changed_fields=changed_fields,
                before_data=before_data,
                after_data=after_data,
                user_id=user.user_id,
                reason=reason,
                created_at=created_at,
            ),
        )
        self.db.add(entry)
        return entry

    def create(
        self,
        data: dict[str, Any],
        user: TenantContext,
        reason: str | None = None,
    ) -> OperationResult[Contract]:
        if not user.has_scope("contracts.create"):
            return OperationResult.fail("Access denied: cannot create contracts", ErrorCode.FORBIDDEN)

        contract = Contract(
            **data,
            tenant_id=user.tenant_id,
            created_by=user.user_id,
            updated_by=user.user_id,
        )
        if contract.assigned_user_id is None:
            contract.assigned_user_id = user.user_id
        self.db.add(contract)
        try:
            self.db.flush()
            after_data = snapshot_contract(contract)
            self._log_change(
                contract,
                HistoryOperation.CREATE,
                user,
                before_data=None,
                after_data=after_data,
                changed_fields=sorted(after_data),
                reason=reason,
            )
            self.commit()
        except IntegrityError as exc:
            self.rollback()
            logger.warning(
                "contract.create.integrity_error",
                extra=build_log_event(
                    "contract.create.integrity_error",
                    LogContext.for_actor(user),
                    errors=[str(exc.orig)],
                ),
            )
            return OperationResult.fail(CONSTRAINT_ERROR, ErrorCode.CONFLICT)

        self.db.refresh(contract)
        return OperationResult.ok(contract)

    def get(self, contract_id: str, user: TenantContext) -> Contract | None:
        stmt = self.scoped_select(user).where(Contract.id == contract_id)
        contract = self.db.execute(stmt).scalar_one_or_none()
        if contract is None or not self._can(user, "read", contract):
            return None
        return contract

    def update(
        self,
        contract_id: str,
        patch: dict[str, Any],
        user: TenantContext,
        reason: str | None = None,
        operation: HistoryOperation = HistoryOperation.UPDATE,
        expected_row_version: int | None = None,
    ) -> OperationResult[Contract]:
        contract = self.get(contract_id, user)
        if contract is None:
            return OperationResult.fail(NOT_FOUND_ERROR, ErrorCode.NOT_FOUND)
        if not self._can(user, "update", contract):
            return OperationResult.fail("Access denied: cannot update this contract", ErrorCode.FORBIDDEN)
        if expected_row_version is not None and expected_row_version != contract.row_version:
            return OperationResult.fail(CONCURRENT_MODIFICATION_ERROR, ErrorCode.CONFLICT)

        before_data = snapshot_contract(contract)
        for key, value in patch.items():
            setattr(contract, key, value)
        contract.updated_by = user.user_id

        log_context = LogContext.for_actor(user, contract_id)
        try:
            # The UPDATE is guarded by row_version; a concurrent writer makes it match zero rows.
            self.db.flush()
            after_data = snapshot_contract(contract)
            changed_fields = sorted(key for key in patch if before_data.get(key) != after_data.get(key))
            if changed_fields:
                self._log_change(
                    contract,
                    operation,
                    user,
                    before_data=before_data,
                    after_data=after_data,
                    changed_fields=changed_fields,
                    reason=reason,
                )
            self.commit()
        except StaleDataError:
            self.rollback()
            logger.warning(
                "contract.update.stale",
                extra=build_log_event("contract.update.stale", log_context, error_code=ErrorCode.CONFLICT.value),
            )
            return OperationResult.fail(CONCURRENT_MODIFICATION_ERROR, ErrorCode.CONFLICT)
        except IntegrityError as exc:
            self.rollback()
            logger.warning(
                "contract.update.integrity_error",
                extra=build_log_event("contract.update.integrity_error", log_context, errors=[str(exc.orig)]),
            )
            return OperationResult.fail(CONSTRAINT_ERROR, ErrorCode.CONFLICT)

        self.db.refresh(contract)
        return OperationResult.ok(contract)

    def list(self, filters: dict[str, Any], user: TenantContext) -> list[Contract]:
        if not user.has_scope("contracts.read"):
            return []
        stmt = self._visible_select(user)
        for key, value in filters.items():
            if value is None:
                continue
            stmt = stmt.where(getattr(Contract, key) == value)
        stmt = stmt.order_by(Contract.created_at, Contract.id)
        return list(self.db.execute(stmt).scalars())

    def list_ending_between(
        self,
        start: datetime,
        end: datetime,
        user: TenantContext,
        status: ContractStatus = ContractStatus.ACTIVE,
    ) -> list[Contract]:
        if not user.has_scope("contracts.read"):
            return []
        stmt = (
            self._visible_select(user)
            .where(
                Contract.status == status,
                Contract.end_date.is_not(None),
                Contract.end_date >= start,
                Contract.end_date <= end,
            )
            .order_by(Contract.end_date, Contract.id)
        )
        return list(self.db.execute(stmt).scalars())

    def history(self, contract_id: str, user: TenantContext) -> list[ContractHistory] | None:
        if self.get(contract_id, user) is None:
            return None
        stmt = (
            self.scoped_select(user, ContractHistory)
            .where(ContractHistory.contract_id == contract_id)
            .order_by(ContractHistory.id)
        )
        return list(self.db.execute(stmt).scalars())

    def contract_number_exists(
        self,
        contract_number: str,
        user: TenantContext,
        exclude_id: str | None = None,
    ) -> bool:
        stmt = select(Contract.id).where(
            Contract.tenant_id == user.tenant_id,
            Contract.contract_number == contract_number,
        )
        if exclude_id is not None:
            stmt = stmt.where(Contract.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None
