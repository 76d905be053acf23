"""Typed success/failure values returned by contract operations."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"
    REACTIVATION_LIMIT = "reactivation_limit"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Either ``success=True`` with ``data`` or ``success=False`` with ``errors``."""

    success: bool
    data: T | None = None
    errors: list[str] = field(default_factory=list)
    error_code: ErrorCode | None = None

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, errors: list[str] | str, error_code: ErrorCode) -> "OperationResult[T]":
        if isinstance(errors, str):
            errors = [errors]
        return cls(success=False, errors=list(errors), error_code=error_code)
