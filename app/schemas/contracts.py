"""Contract request/response schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import ContractStatus, ContractType, HistoryOperation
from app.services.results import ErrorCode, OperationResult
from app.utils.dates import to_naive_utc

_DATE_FIELDS = ("effective_date", "end_date", "sent_date", "signed_date")


class ContractCreateRequest(BaseModel):
    """Creation payload.

    Business rules (required title and organisation, non-negative amount,
    date ordering) are deliberately not expressed as field constraints: the
    lifecycle service checks them together so every violation is reported
    in one response.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = ""
    contract_number: str | None = Field(default=None, max_length=64)
    type: ContractType = ContractType.SERVICE
    status: ContractStatus | None = None
    description: str | None = Field(default=None, max_length=20000)
    organisation_id: str | None = None
    deal_id: str | None = None
    contact_ids: list[str] = Field(default_factory=list)
    amount: Decimal | None = None
    currency: str = "USD"
    version: str | None = Field(default=None, max_length=20)
    effective_date: datetime | None = None
    end_date: datetime | None = None
    sent_date: datetime | None = None
    signed_date: datetime | None = None
    reactivation_count: int = 0
    assigned_user_id: int | None = None
    notes: str | None = Field(default=None, max_length=20000)
    tags: list[str] = Field(default_factory=list)

    @field_validator(*_DATE_FIELDS)
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("contract_number", "organisation_id", "deal_id", "version")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class ContractUpdateRequest(BaseModel):
    """Partial update of non-lifecycle fields.

    Status, sent/signed timestamps and the reactivation counter only move
    through the status transition endpoint.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    contract_number: str | None = Field(default=None, max_length=64)
    type: ContractType | None = None
    description: str | None = Field(default=None, max_length=20000)
    organisation_id: str | None = None
    deal_id: str | None = None
    contact_ids: list[str] | None = None
    amount: Decimal | None = None
    currency: str | None = None
    version: str | None = Field(default=None, max_length=20)
    effective_date: datetime | None = None
    end_date: datetime | None = None
    assigned_user_id: int | None = None
    notes: str | None = Field(default=None, max_length=20000)
    tags: list[str] | None = None
    expected_row_version: int | None = Field(default=None, ge=1)

    @field_validator("effective_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str | None) -> str | None:
        return value.strip().upper() if value is not None else None

    @field_validator("contract_number", "organisation_id", "deal_id", "version")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class ContractStatusUpdateRequest(BaseModel):
    status: ContractStatus
    reason: str | None = Field(default=None, max_length=2000)
    expected_row_version: int | None = Field(default=None, ge=1)


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: int
    contract_number: str
    title: str
    description: str | None = None
    type: ContractType
    status: ContractStatus
    organisation_id: str
    deal_id: str | None = None
    contact_ids: list[str] = Field(default_factory=list)
    amount: Decimal | None = None
    currency: str
    version: str
    effective_date: datetime | None = None
    end_date: datetime | None = None
    sent_date: datetime | None = None
    signed_date: datetime | None = None
    reactivation_count: int
    assigned_user_id: int | None = None
    created_by: int | None = None
    updated_by: int | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    row_version: int
    created_at: datetime
    updated_at: datetime


class ContractHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contract_id: str
    operation: HistoryOperation
    changed_fields: list[str] = Field(default_factory=list)
    user_id: int
    reason: str | None = None
    checksum: str
    created_at: datetime


class ErrorEnvelope(BaseModel):
    """HTTP body of a failed ``OperationResult``."""

    status: str = "error"
    error_code: ErrorCode
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: OperationResult[Any]) -> "ErrorEnvelope":
        return cls(error_code=result.error_code or ErrorCode.VALIDATION, errors=result.errors)
