# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Role-based authorization for core operations.

WHY explicit Actor: every service function receives the acting user and role
as an argument instead of reading request globals. Routes, the CLI and tests
all build an Actor the same way, and the check runs before any domain logic.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..permissions import ROLE_PERMISSIONS, ALL_PERMISSION_CODES, Role


class PermissionDeniedError(Exception):
    """Raised when a user lacks required permission."""
    pass


@dataclass(frozen=True)
class Actor:
    """Authenticated caller of a core operation."""
    user_id: int
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role)


def get_role_permissions(role: str) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(actor: Actor, permission_code: str) -> bool:
    if permission_code not in ALL_PERMISSION_CODES:
        raise ValueError(f"unknown permission code: {permission_code}")
    return permission_code in get_role_permissions(actor.role)


def require_permission(actor: Actor, permission_code: str) -> None:
    """
    Require actor to have permission, raise PermissionDeniedError if not.

    Denials are logged; grants are not.
    """
    if actor is None:
        raise PermissionDeniedError("Authentication required")

    if not has_permission(actor, permission_code):
        current_app.logger.warning(
            "permission denied: user=%s role=%s permission=%s",
            actor.user_id, actor.role, permission_code,
        )
        raise PermissionDeniedError(
            f"Permission denied: {permission_code} (role {actor.role}; requires "
            f"{' or '.join(r for r in Role.ALL if permission_code in get_role_permissions(r))})"
        )
