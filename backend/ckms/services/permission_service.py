# Overview: Service-layer operations for permission; encapsulates role checks and store scoping.

"""
Role-based access control.

Roles are fixed (ADMIN, CENTRAL_STAFF, STORE_STAFF) and map statically to
permission codes, see ckms.permissions.DEFAULT_ROLE_PERMISSIONS.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant
- Check permission before looking anything up, so a 403 never reveals
  whether the target exists
- Log denials only
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..models import Role
from ..permissions import DEFAULT_ROLE_PERMISSIONS


class PermissionDeniedError(Exception):
    """Raised when the caller lacks a permission or targets another store."""
    status_code = 403


@dataclass(frozen=True)
class CallerIdentity:
    """
    Verified identity of the caller, as captured by the session.

    store_id is None for organisation-level users (Admin, Central Staff).
    """
    user_id: int
    role: Role
    store_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_central_staff(self) -> bool:
        return self.role == Role.CENTRAL_STAFF

    @property
    def is_store_staff(self) -> bool:
        return self.role == Role.STORE_STAFF


def get_role_permissions(role: Role) -> set[str]:
    """Permission codes granted to a role."""
    return set(DEFAULT_ROLE_PERMISSIONS.get(Role(role), []))


def has_permission(caller: CallerIdentity, permission_code: str) -> bool:
    return permission_code in get_role_permissions(caller.role)


def require_permission(caller: CallerIdentity, permission_code: str) -> None:
    """
    Raise PermissionDeniedError unless the caller's role grants permission_code.

    Usage:
        require_permission(caller, "REVIEW_SUPPLY_ORDERS")
    """
    if not has_permission(caller, permission_code):
        current_app.logger.warning(
            "Permission denied: user %s (%s) lacks %s",
            caller.user_id, caller.role.value, permission_code,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def ensure_store_access(caller: CallerIdentity, store_id: int) -> None:
    """
    Store Staff may only act on their own store.

    Admin and Central Staff are organisation-wide and always pass.
    """
    if not caller.is_store_staff:
        return
    if caller.store_id is None or caller.store_id != store_id:
        current_app.logger.warning(
            "Cross-store access denied: user %s (store %s) -> store %s",
            caller.user_id, caller.store_id, store_id,
        )
        raise PermissionDeniedError("Permission denied: resource belongs to another store")
