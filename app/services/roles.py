"""Workspace roles and their total order (viewer < member < owner)."""

from __future__ import annotations

from enum import Enum

from app.services.workspace_errors import InvalidRoleError


class WorkspaceRole(str, Enum):
    """Ranked membership tier. Declaration order is rank order."""

    VIEWER = "viewer"
    MEMBER = "member"
    OWNER = "owner"


_ORDINALS: dict[WorkspaceRole, int] = {role: i for i, role in enumerate(WorkspaceRole)}

# Indexed by enum ordinal
ROLE_RANK: tuple[int, ...] = (1, 2, 3)


def role_rank(role: WorkspaceRole) -> int:
    """Return the rank of role; higher means more privilege."""
    return ROLE_RANK[_ORDINALS[role]]


def role_at_least(actual: WorkspaceRole, required: WorkspaceRole) -> bool:
    """Return True if actual grants at least the privileges of required."""
    return role_rank(actual) >= role_rank(required)


def coerce_role(value: object) -> WorkspaceRole | None:
    """Map a stored value to a role; None if it is not an exact role name."""
    if isinstance(value, WorkspaceRole):
        return value
    if not isinstance(value, str):
        return None
    try:
        return WorkspaceRole(value)
    except ValueError:
        return None


def parse_role(value: object) -> WorkspaceRole:
    """Parse submitted input (surrounding whitespace ignored); InvalidRoleError if unknown."""
    if isinstance(value, str):
        value = value.strip()
    role = coerce_role(value)
    if role is None:
        raise InvalidRoleError(value)
    return role
