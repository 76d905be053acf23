"""Role-based authorization helpers."""

from __future__ import annotations

from app.core.exceptions import AuthorizationError

# Scope strings are kept explicit for endpoint-level declarations.
# ``*.read_all`` / ``*.update_all`` lift the assigned-or-created restriction.
ROLE_SCOPES: dict[str, set[str]] = {
    "admin": {
        "*",
    },
    "senior_sales_manager": {
        "contracts.create",
        "contracts.read",
        "contracts.read_all",
        "contracts.update",
        "contracts.update_all",
    },
    "junior_sales_manager": {
        "contracts.create",
        "contracts.read",
        "contracts.update",
    },
    "viewer": {
        "contracts.read",
        "contracts.read_all",
    },
}


def get_scopes_for_role(role: str) -> set[str]:
    """Return scopes granted to a role."""
    return ROLE_SCOPES.get(role.lower(), set())


def has_scopes(role: str, required_scopes: list[str] | set[str] | tuple[str, ...]) -> bool:
    """Check if role includes every required scope."""
    granted = get_scopes_for_role(role)
    if "*" in granted:
        return True
    return set(required_scopes).issubset(granted)


def require_scopes(role: str, required_scopes: list[str] | set[str] | tuple[str, ...]) -> None:
    """Raise when a role lacks required scopes."""
    if has_scopes(role=role, required_scopes=required_scopes):
        return
    missing = sorted(set(required_scopes) - get_scopes_for_role(role))
    raise AuthorizationError(f"Missing required scopes: {', '.join(missing)}")


def can_access_record(
    role: str,
    user_id: int,
    operation: str,
    assigned_user_id: int | None,
    created_by: int | None,
) -> bool:
    """Decide whether a user may ``read`` or ``update`` one contract row.

    Roles holding ``contracts.<operation>_all`` see every row of their
    tenant; roles holding only ``contracts.<operation>`` are limited to rows
    assigned to or created by them.
    """
    if has_scopes(role, [f"contracts.{operation}_all"]):
        return True
    if not has_scopes(role, [f"contracts.{operation}"]):
        return False
    return user_id in {assigned_user_id, created_by}
