"""The acting user every contract operation runs as."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.auth.rbac import can_access_record, has_scopes
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.models.enums import UserRole

_KNOWN_ROLES = frozenset(role.value for role in UserRole)


@dataclass(frozen=True)
class TenantContext:
    """Tenant, user and role resolved from a verified access token.

    Repositories pin every query to ``tenant_id``; ``may_access`` applies the
    assigned-or-created restriction for roles without ``*_all`` scopes.
    """

    tenant_id: int
    user_id: int
    role: str
    permissions_version: int = 1

    def has_scope(self, scope: str) -> bool:
        return has_scopes(self.role, [scope])

    def may_access(self, operation: str, assigned_user_id: int | None, created_by: int | None) -> bool:
        return can_access_record(
            role=self.role,
            user_id=self.user_id,
            operation=operation,
            assigned_user_id=assigned_user_id,
            created_by=created_by,
        )

    @classmethod
    def from_claims(
        cls,
        claims: dict[str, Any],
        header_tenant_id: int | None = None,
        allow_admin_header_override: bool = False,
    ) -> "TenantContext":
        try:
            token_tenant_id = int(claims["tenant_id"])
            user_id = int(claims["sub"])
            role = str(claims["role"]).lower()
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError("Token claims are missing tenant/user context.") from exc
        if role not in _KNOWN_ROLES:
            raise AuthenticationError(f"Unknown role in token: {role}")

        tenant_id = token_tenant_id
        if header_tenant_id is not None and int(header_tenant_id) != token_tenant_id:
            # Support staff acting inside a customer tenant.
            if not (allow_admin_header_override and role == UserRole.ADMIN.value):
                raise AuthorizationError("Tenant override is admin-only.")
            tenant_id = int(header_tenant_id)

        return cls(
            tenant_id=tenant_id,
            user_id=user_id,
            role=role,
            permissions_version=int(claims.get("permissions_version", 1)),
        )

