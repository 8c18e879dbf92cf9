"""Workspace store: persistence of workspaces and memberships.

Provides the atomic primitives the workspace service composes:
- workspace creation together with its owner membership (one transaction)
- role lookups that distinguish "not a member" from "no such workspace"
- guarded role updates and removals that keep at least one owner

Guarded mutations lock every membership row of the workspace
(SELECT ... FOR UPDATE) before reading the target role and counting owners,
so concurrent mutations of the same workspace serialize.
"""

from __future__ import annotations

import logging
import uuid
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.session import transaction
from app.models import User, Workspace, WorkspaceMember
from app.services.auth import normalize_email
from app.services.roles import WorkspaceRole, coerce_role, parse_role
from app.services.workspace_errors import (
    AlreadyMemberError,
    CannotSelfDemoteError,
    LastOwnerError,
    MemberNotFoundError,
    UserNotFoundError,
    WorkspaceNotFoundError,
    WorkspaceValidationError,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _as_uuid(value: str | UUID) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value).strip())


def _is_unique_violation(exc: IntegrityError) -> bool:
    return getattr(exc.orig, "sqlstate", None) == UNIQUE_VIOLATION


def create_workspace_with_owner(
    db: Session,
    creator_id: str | UUID,
    name: str,
    currency: str | None = None,
) -> Workspace:
    """Create a workspace and its creator's owner membership atomically.

    Blank currency falls back to DEFAULT_CURRENCY. Raises
    WorkspaceValidationError for a blank name or a non 3-letter currency.
    Either both rows are committed or neither is.
    """
    name = (name or "").strip()
    if not name:
        raise WorkspaceValidationError("name is required")
    currency = (currency or "").strip().upper() or get_settings().default_currency
    if len(currency) != 3 or not currency.isalpha():
        raise WorkspaceValidationError("default_currency must be a 3-letter code")

    creator = _as_uuid(creator_id)
    with transaction(db):
        workspace = Workspace(
            id=uuid.uuid4(),
            name=name,
            default_currency=currency,
            created_by=creator,
        )
        db.add(workspace)
        db.flush()
        db.add(
            WorkspaceMember(
                workspace_id=workspace.id,
                user_id=creator,
                role=WorkspaceRole.OWNER.value,
            )
        )
        db.flush()

    logger.info("Workspace created workspace_id=%s owner=%s", workspace.id, creator)
    return workspace


def get_user_role(db: Session, workspace_id: str | UUID, user_id: str | UUID) -> str | None:
    """Return the stored role string, or None if the user is not a member.

    None does not mean the workspace exists; use workspace_exists for that.
    The raw value is returned so callers can detect corrupted data.
    """
    return (
        db.query(WorkspaceMember.role)
        .filter(
            WorkspaceMember.workspace_id == _as_uuid(workspace_id),
            WorkspaceMember.user_id == _as_uuid(user_id),
        )
        .scalar()
    )


def workspace_exists(db: Session, workspace_id: str | UUID) -> bool:
    return (
        db.query(Workspace.id).filter(Workspace.id == _as_uuid(workspace_id)).first()
        is not None
    )


def get_workspace(db: Session, workspace_id: str | UUID) -> Workspace:
    """Return the workspace or raise WorkspaceNotFoundError."""
    workspace = db.query(Workspace).filter(Workspace.id == _as_uuid(workspace_id)).first()
    if workspace is None:
        raise WorkspaceNotFoundError("workspace not found")
    return workspace


def get_workspace_with_role(
    db: Session, workspace_id: str | UUID, user_id: str | UUID
) -> tuple[Workspace, str]:
    """Return (workspace, role) for a member; WorkspaceNotFoundError otherwise."""
    row = (
        db.query(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .filter(
            Workspace.id == _as_uuid(workspace_id),
            WorkspaceMember.user_id == _as_uuid(user_id),
        )
        .first()
    )
    if row is None:
        raise WorkspaceNotFoundError("workspace not found")
    return row[0], row[1]


def list_my_workspaces(db: Session, user_id: str | UUID) -> list[tuple[Workspace, str]]:
    """Workspaces the user belongs to with their role, newest first."""
    rows = (
        db.query(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .filter(WorkspaceMember.user_id == _as_uuid(user_id))
        .order_by(Workspace.created_at.desc())
        .all()
    )
    return [(workspace, role) for workspace, role in rows]


def list_members(db: Session, workspace_id: str | UUID) -> list[WorkspaceMember]:
    """Membership rows ordered by created_at ascending."""
    return (
        db.query(WorkspaceMember)
        .filter(WorkspaceMember.workspace_id == _as_uuid(workspace_id))
        .order_by(WorkspaceMember.created_at.asc())
        .all()
    )


def list_members_info(
    db: Session, workspace_id: str | UUID
) -> list[tuple[WorkspaceMember, User]]:
    """Membership rows joined with their users, ordered by created_at ascending."""
    rows = (
        db.query(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .filter(WorkspaceMember.workspace_id == _as_uuid(workspace_id))
        .order_by(WorkspaceMember.created_at.asc())
        .all()
    )
    return [(member, user) for member, user in rows]


def find_user_id_by_email(db: Session, email: str) -> UUID:
    """Resolve a (normalized) email to a user id or raise UserNotFoundError."""
    user_id = db.query(User.id).filter(User.email == normalize_email(email)).scalar()
    if user_id is None:
        raise UserNotFoundError("user not found")
    return user_id


def add_member_by_user_id(
    db: Session,
    workspace_id: str | UUID,
    user_id: str | UUID,
    role: WorkspaceRole | str,
) -> None:
    """Insert a membership row; AlreadyMemberError if one exists."""
    role = parse_role(role)
    ws = _as_uuid(workspace_id)
    uid = _as_uuid(user_id)
    try:
        with transaction(db):
            existing = (
                db.query(WorkspaceMember.user_id)
                .filter(WorkspaceMember.workspace_id == ws, WorkspaceMember.user_id == uid)
                .first()
            )
            if existing is not None:
                raise AlreadyMemberError("user is already a member")
            db.add(WorkspaceMember(workspace_id=ws, user_id=uid, role=role.value))
            db.flush()
    except IntegrityError as e:
        # Concurrent insert of the same (workspace, user)
        if _is_unique_violation(e):
            raise AlreadyMemberError("user is already a member") from e
        raise

    logger.info("Member added workspace_id=%s user_id=%s role=%s", ws, uid, role.value)


def _lock_workspace_members(db: Session, workspace_id: UUID) -> dict[UUID, WorkspaceMember]:
    rows = (
        db.query(WorkspaceMember)
        .filter(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.user_id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {m.user_id: m for m in rows}


def _count_owners(db: Session, workspace_id: UUID) -> int:
    return (
        db.query(func.count())
        .select_from(WorkspaceMember)
        .filter(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.role == WorkspaceRole.OWNER.value,
        )
        .scalar()
    )


def update_member_role_safe(
    db: Session,
    workspace_id: str | UUID,
    actor_user_id: str | UUID,
    target_user_id: str | UUID,
    new_role: WorkspaceRole | str,
    *,
    timeout_ms: int | None = None,
) -> None:
    """Change a member's role while keeping at least one owner.

    Raises MemberNotFoundError, CannotSelfDemoteError (an owner lowering
    their own role) or LastOwnerError (demoting the only owner). owner -> owner
    is an allowed no-op. Nothing is written unless every guard passes.
    """
    new_role = parse_role(new_role)
    ws = _as_uuid(workspace_id)
    actor = _as_uuid(actor_user_id)
    target = _as_uuid(target_user_id)

    with transaction(db, timeout_ms=timeout_ms):
        member = _lock_workspace_members(db, ws).get(target)
        if member is None:
            raise MemberNotFoundError("member not found")
        previous = member.role
        current = coerce_role(previous)

        if actor == target and current is WorkspaceRole.OWNER and new_role is not WorkspaceRole.OWNER:
            logger.info("Self-demotion rejected workspace_id=%s user_id=%s", ws, actor)
            raise CannotSelfDemoteError("owner cannot change own role")

        if current is WorkspaceRole.OWNER and new_role is not WorkspaceRole.OWNER:
            if _count_owners(db, ws) <= 1:
                logger.info("Last owner demotion rejected workspace_id=%s user_id=%s", ws, target)
                raise LastOwnerError("cannot demote last owner")

        updated = (
            db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == ws, WorkspaceMember.user_id == target)
            .update({WorkspaceMember.role: new_role.value})
        )
        if updated == 0:
            raise MemberNotFoundError("member not found")

    logger.info(
        "Member role changed workspace_id=%s user_id=%s %s -> %s by %s",
        ws,
        target,
        previous,
        new_role.value,
        actor,
    )


def remove_member_safe(
    db: Session,
    workspace_id: str | UUID,
    actor_user_id: str | UUID,
    target_user_id: str | UUID,
    *,
    timeout_ms: int | None = None,
) -> None:
    """Delete a membership unless it belongs to the workspace's only owner.

    Raises MemberNotFoundError or LastOwnerError. Removing the last viewer or
    member is allowed even if it leaves the workspace without members.
    """
    ws = _as_uuid(workspace_id)
    actor = _as_uuid(actor_user_id)
    target = _as_uuid(target_user_id)

    with transaction(db, timeout_ms=timeout_ms):
        member = _lock_workspace_members(db, ws).get(target)
        if member is None:
            raise MemberNotFoundError("member not found")

        if coerce_role(member.role) is WorkspaceRole.OWNER:
            if _count_owners(db, ws) <= 1:
                logger.info("Last owner removal rejected workspace_id=%s user_id=%s", ws, target)
                raise LastOwnerError("cannot remove last owner")

        deleted = (
            db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == ws, WorkspaceMember.user_id == target)
            .delete()
        )
        if deleted == 0:
            raise MemberNotFoundError("member not found")

    logger.info("Member removed workspace_id=%s user_id=%s by %s", ws, target, actor)
