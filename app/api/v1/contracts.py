"""Contract endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from app.api.v1._authz import acting_user
from app.core.dependencies import get_contract_service
from app.models.contract import Contract
from app.models.enums import ContractStatus, ContractType
from app.schemas.contracts import (
    ContractCreateRequest,
    ContractHistoryResponse,
    ContractResponse,
    ContractStatusUpdateRequest,
    ContractUpdateRequest,
    ErrorEnvelope,
)
from app.repositories.contract_repository import NOT_FOUND_ERROR
from app.services.contract_service import MAX_EXPIRING_WINDOW_DAYS, ContractService
from app.services.results import ErrorCode, OperationResult

router = APIRouter(prefix="/contracts", tags=["contracts"])

ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION: 422,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.REACTIVATION_LIMIT: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
}


def _unwrap(result: OperationResult[Contract]) -> ContractResponse:
    if result.success and result.data is not None:
        return ContractResponse.model_validate(result.data)
    envelope = ErrorEnvelope.from_result(result)
    raise HTTPException(status_code=ERROR_STATUS_CODES[envelope.error_code], detail=envelope.model_dump(mode="json"))


def _not_found(contract_id: str) -> HTTPException:
    envelope = ErrorEnvelope(
        error_code=ErrorCode.NOT_FOUND,
        errors=[NOT_FOUND_ERROR],
    )
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=envelope.model_dump(mode="json"))


@router.get("", response_model=list[ContractResponse])
def list_contracts(
    organisation_id: str | None = Query(default=None),
    deal_id: str | None = Query(default=None),
    status_filter: ContractStatus | None = Query(default=None, alias="status"),
    type_filter: ContractType | None = Query(default=None, alias="type"),
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> list[ContractResponse]:
    user = acting_user(authorization, scopes=["contracts.read"], tenant_header=tenant_header)
    rows = service.list_contracts(
        user,
        organisation_id=organisation_id,
        deal_id=deal_id,
        status=status_filter,
        type=type_filter,
    )
    return [ContractResponse.model_validate(row) for row in rows]


@router.get("/expiring", response_model=list[ContractResponse])
def list_expiring_contracts(
    days: int | None = Query(default=None, ge=0, le=MAX_EXPIRING_WINDOW_DAYS),
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> list[ContractResponse]:
    user = acting_user(authorization, scopes=["contracts.read"], tenant_header=tenant_header)
    return [ContractResponse.model_validate(row) for row in service.get_expiring(days, user)]


@router.get("/{contract_id}", response_model=ContractResponse)
def get_contract(
    contract_id: str,
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    user = acting_user(authorization, scopes=["contracts.read"], tenant_header=tenant_header)
    contract = service.get_contract(contract_id, user)
    if contract is None:
        raise _not_found(contract_id)
    return ContractResponse.model_validate(contract)


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
def create_contract(
    payload: ContractCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    user = acting_user(authorization, scopes=["contracts.create"], tenant_header=tenant_header)
    return _unwrap(service.create_contract(payload, user, reason="User created contract"))


@router.patch("/{contract_id}", response_model=ContractResponse)
def update_contract(
    contract_id: str,
    payload: ContractUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    user = acting_user(authorization, scopes=["contracts.update"], tenant_header=tenant_header)
    return _unwrap(service.update_contract(contract_id, payload, user, reason="User updated contract"))


@router.post("/{contract_id}/status", response_model=ContractResponse)
def update_contract_status(
    contract_id: str,
    payload: ContractStatusUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> ContractResponse:
    user = acting_user(authorization, scopes=["contracts.update"], tenant_header=tenant_header)
    result = service.update_status(
        contract_id,
        payload.status,
        user,
        reason=payload.reason,
        expected_row_version=payload.expected_row_version,
    )
    return _unwrap(result)


@router.get("/{contract_id}/history", response_model=list[ContractHistoryResponse])
def get_contract_history(
    contract_id: str,
    authorization: str | None = Header(default=None, alias="Authorization"),
    tenant_header: int | None = Header(default=None, alias="X-Tenant-ID"),
    service: ContractService = Depends(get_contract_service),
) -> list[ContractHistoryResponse]:
    user = acting_user(authorization, scopes=["contracts.read"], tenant_header=tenant_header)
    entries = service.get_history(contract_id, user)
    if entries is None:
        raise _not_found(contract_id)
    return [ContractHistoryResponse.model_validate(entry) for entry in entries]
