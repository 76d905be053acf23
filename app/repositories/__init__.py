"""Tenant-scoped persistence collaborators."""

from app.repositories.base_repository import TenantScopedRepository
from app.repositories.contract_repository import ContractRepository

__all__ = ["ContractRepository", "TenantScopedRepository"]
