"""Canonical enum values for the tenant-aware schema."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    SENIOR_SALES_MANAGER = "senior_sales_manager"
    JUNIOR_SALES_MANAGER = "junior_sales_manager"
    VIEWER = "viewer"


class ContractStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    SIGNED = "SIGNED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class ContractType(str, enum.Enum):
    MASTER = "MASTER"
    ORDER = "ORDER"
    SERVICE = "SERVICE"
    NDA = "NDA"
    AMENDMENT = "AMENDMENT"
    SERVICE_AGREEMENT = "SERVICE_AGREEMENT"
    OTHER = "OTHER"


class HistoryOperation(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
