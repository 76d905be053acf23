"""Shared authorization helpers for API v1 route modules."""

from __future__ import annotations

from fastapi import HTTPException

from app.auth.jwt import decode_jwt
from app.auth.rbac import require_scopes
from app.auth.tenant_context import TenantContext
from app.core.config import get_config
from app.core.exceptions import AuthenticationError, AuthorizationError


def _extract_bearer_token(authorization: str | None) -> str:
    if authorization is None or not authorization.strip():
        raise AuthenticationError("Authorization header is required.")
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must use Bearer token.")
    return parts[1].strip()


def authorize(
    authorization: str | None,
    scopes: list[str],
    tenant_header: int | None = None,
) -> TenantContext:
    token = _extract_bearer_token(authorization)
    claims = decode_jwt(token=token, secret=get_config().JWT_SECRET)
    user = TenantContext.from_claims(claims, header_tenant_id=tenant_header, allow_admin_header_override=True)
    require_scopes(user.role, scopes)
    return user


def map_auth_error(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, AuthenticationError):
        return 401, str(exc)
    if isinstance(exc, AuthorizationError):
        return 403, str(exc)
    return 401, "Unauthorized."


def acting_user(
    authorization: str | None,
    scopes: list[str],
    tenant_header: int | None = None,
) -> TenantContext:
    """``authorize`` with auth failures translated to HTTP errors."""
    try:
        return authorize(authorization=authorization, scopes=scopes, tenant_header=tenant_header)
    except (AuthenticationError, AuthorizationError) as exc:
        code, detail = map_auth_error(exc)
        raise HTTPException(status_code=code, detail=detail) from exc
