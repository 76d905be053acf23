"""Contract service: creation, status lifecycle and tenant-scoped queries."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.auth.tenant_context import TenantContext
from app.core.config import Config, get_config
from app.core.exceptions import ValidationError
from app.core.logging import LogContext, build_log_event
from app.models.contract import Contract
from app.models.contract_history import ContractHistory
from app.models.enums import ContractStatus, ContractType, HistoryOperation
from app.models.references import Deal, Organisation
from app.repositories.contract_repository import NOT_FOUND_ERROR, ContractRepository
from app.schemas.contracts import ContractCreateRequest, ContractUpdateRequest
from app.services.contract_lifecycle import (
    CONTRACT_STATE_MACHINE,
    INITIAL_STATUSES,
    is_reactivation,
    reactivation_limit_message,
    reactivation_reason,
    status_change_reason,
    validate_contract_data,
)
from app.services.results import ErrorCode, OperationResult
from app.utils.dates import utcnow_naive
from app.utils.ids import new_contract_number

logger = logging.getLogger(__name__)

_NON_NULLABLE_PATCH_FIELDS = ("contract_number", "type", "version")
_LIST_PATCH_FIELDS = ("contact_ids", "tags")
_VALIDATED_FIELDS = (
    "title",
    "organisation_id",
    "amount",
    "currency",
    "effective_date",
    "end_date",
    "sent_date",
    "signed_date",
    "reactivation_count",
)

MAX_EXPIRING_WINDOW_DAYS = 3650


def _schema_errors(exc: PydanticValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def _merged_record(contract: Contract, patch: Mapping[str, Any]) -> dict[str, Any]:
    """Validated fields of ``contract`` as they would read after ``patch``."""
    merged = {field: getattr(contract, field) for field in _VALIDATED_FIELDS}
    merged.update(patch)
    return merged


def _coerce(schema: type[BaseModel], data: BaseModel | Mapping[str, Any]) -> BaseModel:
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    return schema.model_validate(dict(data))


class ContractService:
    """Contract Lifecycle Manager.

    Owns the contract status field: legal transitions, one-time sent/signed
    stamping, and the cap on EXPIRED -> ACTIVE reactivations. Persistence,
    tenant scoping and record-level access are delegated to
    ``ContractRepository``. Every operation returns an ``OperationResult``;
    business failures are never raised.
    """

    def __init__(
        self,
        db: Session | None = None,
        repository: ContractRepository | None = None,
        config: Config | None = None,
        clock: Callable[[], datetime] = utcnow_naive,
    ) -> None:
        self.repository = repository or ContractRepository(db=db)
        self.db = self.repository.db
        self.config = config or get_config()
        self._clock = clock

    @property
    def max_reactivations(self) -> int:
        return self.config.CONTRACT_MAX_REACTIVATIONS

    def close(self) -> None:
        self.repository.close()

    def __enter__(self) -> "ContractService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.repository.rollback()
        self.close()

    def _generate_contract_number(self, acting_user: TenantContext) -> str | None:
        for _ in range(self.config.CONTRACT_NUMBER_MAX_ATTEMPTS):
            candidate = new_contract_number(prefix=self.config.CONTRACT_NUMBER_PREFIX)
            if not self.repository.contract_number_exists(candidate, acting_user):
                return candidate
        return None

    def _reference_errors(self, payload: Mapping[str, Any], acting_user: TenantContext) -> list[str]:
        errors: list[str] = []
        organisation_id = payload.get("organisation_id")
        if organisation_id and not self.repository.exists_in_tenant(Organisation, organisation_id, acting_user):
            errors.append(f"Organisation {organisation_id} not found")
        deal_id = payload.get("deal_id")
        if deal_id and not self.repository.exists_in_tenant(Deal, deal_id, acting_user):
            errors.append(f"Deal {deal_id} not found")
        return errors

    def _reject(
        self,
        event: str,
        context: LogContext,
        errors: list[str] | str,
        error_code: ErrorCode,
    ) -> OperationResult[Contract]:
        result: OperationResult[Contract] = OperationResult.fail(errors, error_code)
        logger.info(event, extra=build_log_event(event, context, error_code=error_code.value, errors=result.errors))
        return result

    def create_contract(
        self,
        data: ContractCreateRequest | Mapping[str, Any],
        acting_user: TenantContext,
        reason: str | None = None,
    ) -> OperationResult[Contract]:
        """Create a contract, reporting every violated rule at once."""
        context = LogContext.for_actor(acting_user)
        try:
            request = _coerce(ContractCreateRequest, data)
        except PydanticValidationError as exc:
            return self._reject("contract.create.rejected", context, _schema_errors(exc), ErrorCode.VALIDATION)

        payload = request.model_dump()
        if payload["assigned_user_id"] is None:
            payload["assigned_user_id"] = acting_user.user_id

        errors: list[str] = []
        explicit_number = payload["contract_number"]
        if explicit_number is None:
            payload["contract_number"] = self._generate_contract_number(acting_user)
            if payload["contract_number"] is None:
                return self._reject(
                    "contract.create.number_exhausted",
                    context,
                    "Could not allocate a unique contract number",
                    ErrorCode.CONFLICT,
                )
        elif self.repository.contract_number_exists(explicit_number, acting_user):
            errors.append(f"Contract number {explicit_number} already exists")

        if payload["status"] is None:
            payload["status"] = ContractStatus.DRAFT
        if payload["version"] is None:
            payload["version"] = "1.0"

        errors = validate_contract_data(payload, self.max_reactivations) + errors
        if payload["status"] not in INITIAL_STATUSES:
            errors.append(f"Invalid initial status: {payload['status'].value}")
        errors.extend(self._reference_errors(payload, acting_user))
        if errors:
            return self._reject("contract.create.rejected", context, errors, ErrorCode.VALIDATION)

        result = self.repository.create(payload, acting_user, reason=reason or "Contract created")
        if result.success and result.data is not None:
            logger.info(
                "contract.created",
                extra=build_log_event(
                    "contract.created",
                    LogContext.for_actor(acting_user, result.data.id),
                    to_status=result.data.status.value,
                ),
            )
        return result

    def update_status(
        self,
        contract_id: str,
        new_status: ContractStatus | str,
        acting_user: TenantContext,
        reason: str | None = None,
        expected_row_version: int | None = None,
    ) -> OperationResult[Contract]:
        """Move a contract along one edge of the lifecycle."""
        context = LogContext.for_actor(acting_user, contract_id)
        try:
            target = ContractStatus(new_status)
        except ValueError:
            return self._reject(
                "contract.status.rejected", context, f"Unknown contract status: {new_status}", ErrorCode.VALIDATION
            )

        contract = self.repository.get(contract_id, acting_user)
        if contract is None:
            return self._reject("contract.status.rejected", context, NOT_FOUND_ERROR, ErrorCode.NOT_FOUND)

        current = contract.status
        if not CONTRACT_STATE_MACHINE.can_transition(current, target):
            return self._reject(
                "contract.status.rejected",
                context,
                f"Cannot transition from {current.value} to {target.value}",
                ErrorCode.INVALID_TRANSITION,
            )

        patch: dict[str, Any] = {"status": target}
        if is_reactivation(current, target):
            if contract.reactivation_count >= self.max_reactivations:
                return self._reject(
                    "contract.status.rejected",
                    context,
                    reactivation_limit_message(self.max_reactivations),
                    ErrorCode.REACTIVATION_LIMIT,
                )
            patch["reactivation_count"] = contract.reactivation_count + 1
            audit_reason = reactivation_reason(patch["reactivation_count"], self.max_reactivations, reason)
        else:
            audit_reason = status_change_reason(target, reason)

        # Stamped once; re-entering SENT or SIGNED keeps the first timestamp.
        now = self._clock()
        if target == ContractStatus.SENT and contract.sent_date is None:
            patch["sent_date"] = now
        if target == ContractStatus.SIGNED and contract.signed_date is None:
            patch["signed_date"] = now

        errors = validate_contract_data(_merged_record(contract, patch), self.max_reactivations)
        if errors:
            return self._reject("contract.status.rejected", context, errors, ErrorCode.VALIDATION)

        result = self.repository.update(
            contract_id,
            patch,
            acting_user,
            reason=audit_reason,
            operation=HistoryOperation.STATUS_CHANGE,
            expected_row_version=expected_row_version,
        )
        if result.success and result.data is not None:
            logger.info(
                "contract.status.changed",
                extra=build_log_event(
                    "contract.status.changed",
                    context,
                    from_status=current.value,
                    to_status=target.value,
                    reactivation_count=result.data.reactivation_count,
                ),
            )
        else:
            logger.info(
                "contract.status.rejected",
                extra=build_log_event(
                    "contract.status.rejected",
                    context,
                    error_code=result.error_code.value if result.error_code else None,
                    errors=result.errors,
                ),
            )
        return result

    def update_contract(
        self,
        contract_id: str,
        data: ContractUpdateRequest | Mapping[str, Any],
        acting_user: TenantContext,
        reason: str | None = None,
    ) -> OperationResult[Contract]:
        """Patch non-lifecycle fields and re-run business validation on the merged record."""
        context = LogContext.for_actor(acting_user, contract_id)
        try:
            request = _coerce(ContractUpdateRequest, data)
        except PydanticValidationError as exc:
            return self._reject("contract.update.rejected", context, _schema_errors(exc), ErrorCode.VALIDATION)

        patch = request.model_dump(exclude_unset=True)
        expected_row_version = patch.pop("expected_row_version", None)
        for key in _NON_NULLABLE_PATCH_FIELDS:
            if key in patch and patch[key] is None:
                patch.pop(key)
        for key in _LIST_PATCH_FIELDS:
            if key in patch and patch[key] is None:
                patch[key] = []

        contract = self.repository.get(contract_id, acting_user)
        if contract is None:
            return self._reject("contract.update.rejected", context, NOT_FOUND_ERROR, ErrorCode.NOT_FOUND)

        errors = validate_contract_data(_merged_record(contract, patch), self.max_reactivations)
        changed_refs = {key: patch[key] for key in ("organisation_id", "deal_id") if key in patch}
        errors.extend(self._reference_errors(changed_refs, acting_user))
        new_number = patch.get("contract_number")
        if new_number and self.repository.contract_number_exists(new_number, acting_user, exclude_id=contract_id):
            errors.append(f"Contract number {new_number} already exists")
        if errors:
            return self._reject("contract.update.rejected", context, errors, ErrorCode.VALIDATION)

        result = self.repository.update(
            contract_id,
            patch,
            acting_user,
            reason=reason or "Contract updated",
            operation=HistoryOperation.UPDATE,
            expected_row_version=expected_row_version,
        )
        if result.success:
            logger.info(
                "contract.updated",
                extra=build_log_event("contract.updated", context, fields=sorted(patch)),
            )
        return result

    def get_contract(self, contract_id: str, acting_user: TenantContext) -> Contract | None:
        return self.repository.get(contract_id, acting_user)

    def list_contracts(
        self,
        acting_user: TenantContext,
        organisation_id: str | None = None,
        deal_id: str | None = None,
        status: ContractStatus | None = None,
        type: ContractType | None = None,
    ) -> list[Contract]:
        filters = {
            "organisation_id": organisation_id,
            "deal_id": deal_id,
            "status": status,
            "type": type,
        }
        return self.repository.list(filters, acting_user)

    def get_by_organisation(self, organisation_id: str, acting_user: TenantContext) -> list[Contract]:
        return self.list_contracts(acting_user, organisation_id=organisation_id)

    def get_by_deal(self, deal_id: str, acting_user: TenantContext) -> list[Contract]:
        return self.list_contracts(acting_user, deal_id=deal_id)

    def get_by_status(self, status: ContractStatus, acting_user: TenantContext) -> list[Contract]:
        return self.list_contracts(acting_user, status=status)

    def get_by_type(self, type: ContractType, acting_user: TenantContext) -> list[Contract]:
        return self.list_contracts(acting_user, type=type)

    def get_expiring(self, days: int | None, acting_user: TenantContext) -> list[Contract]:
        """ACTIVE contracts whose end date falls within ``[now, now + days]``.

        ``days=None`` uses ``CONTRACT_EXPIRING_DEFAULT_DAYS``.
        """
        if days is None:
            days = self.config.CONTRACT_EXPIRING_DEFAULT_DAYS
        if not 0 <= days <= MAX_EXPIRING_WINDOW_DAYS:
            raise ValidationError(f"days must be between 0 and {MAX_EXPIRING_WINDOW_DAYS}")
        now = self._clock()
        return self.repository.list_ending_between(now, now + timedelta(days=days), acting_user)

    def get_history(self, contract_id: str, acting_user: TenantContext) -> list[ContractHistory] | None:
        return self.repository.history(contract_id, acting_user)
