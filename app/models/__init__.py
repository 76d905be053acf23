"""SQLAlchemy models for the contracts schema."""

from app.models.base import Base
from app.models.contract import Contract
from app.models.contract_history import ContractHistory
from app.models.enums import ContractStatus, ContractType, HistoryOperation, UserRole
from app.models.references import Deal, Organisation, Tenant

__all__ = [
    "Base",
    "Contract",
    "ContractHistory",
    "ContractStatus",
    "ContractType",
    "Deal",
    "HistoryOperation",
    "Organisation",
    "Tenant",
    "UserRole",
]
