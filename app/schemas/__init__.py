"""Pydantic schema package for API contracts."""

from app.schemas.contracts import (
    ContractCreateRequest,
    ContractHistoryResponse,
    ContractResponse,
    ContractStatusUpdateRequest,
    ContractUpdateRequest,
    ErrorEnvelope,
)

__all__ = [
    "ContractCreateRequest",
    "ContractHistoryResponse",
    "ContractResponse",
    "ContractStatusUpdateRequest",
    "ContractUpdateRequest",
    "ErrorEnvelope",
]
