"""Workspace service: orchestration of workspace creation and membership.

Normalizes input and validates roles before any I/O, then delegates to the
store's atomic primitives. The owner-protection rules live in the store.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from app.models import User, Workspace, WorkspaceMember
from app.services import workspace_store
from app.services.auth import normalize_email
from app.services.roles import WorkspaceRole, parse_role


def create_workspace(
    db: Session,
    creator_id: str | UUID,
    name: str,
    currency: str | None = None,
) -> tuple[Workspace, WorkspaceRole]:
    """Create a workspace owned by its creator. Returns (workspace, OWNER)."""
    workspace = workspace_store.create_workspace_with_owner(
        db,
        creator_id,
        (name or "").strip(),
        (currency or "").strip(),
    )
    return workspace, WorkspaceRole.OWNER


def list_my_workspaces(db: Session, user_id: str | UUID) -> list[tuple[Workspace, str]]:
    return workspace_store.list_my_workspaces(db, user_id)


def get_workspace(
    db: Session, workspace_id: str | UUID, user_id: str | UUID
) -> tuple[Workspace, str]:
    return workspace_store.get_workspace_with_role(db, workspace_id, user_id)


def list_members(db: Session, workspace_id: str | UUID) -> list[tuple[WorkspaceMember, User]]:
    return workspace_store.list_members_info(db, workspace_id)


def add_member_by_email(
    db: Session,
    workspace_id: str | UUID,
    email: str,
    role: WorkspaceRole | str,
) -> UUID:
    """Add the user registered under email with the given role.

    Raises InvalidRoleError (before touching storage), UserNotFoundError
    or AlreadyMemberError. Returns the added user's id.
    """
    email = normalize_email(email)
    role = parse_role(role)
    user_id = workspace_store.find_user_id_by_email(db, email)
    workspace_store.add_member_by_user_id(db, workspace_id, user_id, role)
    return user_id


def update_member_role(
    db: Session,
    workspace_id: str | UUID,
    actor_user_id: str | UUID,
    target_user_id: str | UUID,
    new_role: WorkspaceRole | str,
) -> None:
    new_role = parse_role(new_role)
    workspace_store.update_member_role_safe(
        db, workspace_id, actor_user_id, target_user_id, new_role
    )


def remove_member(
    db: Session,
    workspace_id: str | UUID,
    actor_user_id: str | UUID,
    target_user_id: str | UUID,
) -> None:
    workspace_store.remove_member_safe(db, workspace_id, actor_user_id, target_user_id)
