"""Structured log payloads for contract events."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol


class _Actor(Protocol):
    tenant_id: int
    user_id: int


@dataclass(frozen=True)
class LogContext:
    tenant_id: int | None = None
    user_id: int | None = None
    contract_id: str | None = None
    trace_id: str | None = None

    @classmethod
    def for_actor(cls, actor: _Actor, contract_id: str | None = None) -> "LogContext":
        return cls(tenant_id=actor.tenant_id, user_id=actor.user_id, contract_id=contract_id)


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Return an ``extra=`` mapping for a stdlib logger call.

    ``JsonFormatter`` copies the known keys into the emitted line; keys whose
    value is ``None`` are left out.
    """
    payload = {"event": event, **asdict(context), **fields}
    return {key: value for key, value in payload.items() if value is not None}
