"""Typed outcomes of workspace and membership operations.

Each is an expected result surfaced to callers; the API layer maps them to
HTTP statuses (422, 404, 409). None of these are logged as errors.
"""

from __future__ import annotations


class WorkspaceError(Exception):
    """Base class for expected workspace/membership failures."""


class WorkspaceValidationError(WorkspaceError, ValueError):
    """Raised when workspace input is malformed (e.g. blank name)."""


class InvalidRoleError(WorkspaceValidationError):
    """Raised when a role string is not one of owner, member, viewer."""

    def __init__(self, value: object = None) -> None:
        super().__init__("role must be one of owner | member | viewer")
        self.value = value


class WorkspaceNotFoundError(WorkspaceError, LookupError):
    """Raised when a workspace id does not exist."""


class UserNotFoundError(WorkspaceError, LookupError):
    """Raised when no user has the requested email."""


class MemberNotFoundError(WorkspaceError, LookupError):
    """Raised when the target user is not a member of the workspace."""


class AlreadyMemberError(WorkspaceError):
    """Raised when adding a user who already has a role in the workspace."""


class CannotSelfDemoteError(WorkspaceError):
    """Raised when an owner tries to lower their own role."""


class LastOwnerError(WorkspaceError):
    """Raised when a mutation would leave the workspace without an owner."""
