"""Workspace and membership API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.api.deps import (
    WorkspaceContext,
    get_db,
    require_auth,
    require_owner,
    require_viewer,
)
from app.models.user import User
from app.schemas.workspace import (
    AddMemberRequest,
    MemberInfo,
    MemberListResponse,
    UpdateMemberRoleRequest,
    WorkspaceCreateRequest,
    WorkspaceListItem,
    WorkspaceListResponse,
    WorkspaceRead,
    WorkspaceWithRoleResponse,
)
from app.services import workspace_service
from app.services.workspace_errors import (
    AlreadyMemberError,
    CannotSelfDemoteError,
    InvalidRoleError,
    LastOwnerError,
    MemberNotFoundError,
    UserNotFoundError,
    WorkspaceError,
    WorkspaceNotFoundError,
    WorkspaceValidationError,
)

router = APIRouter()


def _http_error(exc: WorkspaceError) -> HTTPException:
    """Map an expected workspace outcome to its HTTP status."""
    if isinstance(exc, InvalidRoleError):
        return HTTPException(
            status_code=422,
            detail={"message": "Invalid role", "role": exc.value},
        )
    if isinstance(exc, WorkspaceValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, WorkspaceNotFoundError):
        return HTTPException(status_code=404, detail="Workspace not found")
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=404, detail="User not found")
    if isinstance(exc, MemberNotFoundError):
        return HTTPException(status_code=404, detail="Member not found")
    if isinstance(exc, AlreadyMemberError):
        return HTTPException(status_code=409, detail="User is already a member")
    if isinstance(exc, CannotSelfDemoteError):
        return HTTPException(status_code=409, detail="Owner cannot change own role")
    if isinstance(exc, LastOwnerError):
        return HTTPException(status_code=409, detail="Cannot remove or demote the last owner")
    return HTTPException(status_code=409, detail=str(exc))


@router.post("", status_code=201, response_model=WorkspaceWithRoleResponse)
def api_create_workspace(
    data: WorkspaceCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
) -> WorkspaceWithRoleResponse:
    """Create a workspace; the caller becomes its owner."""
    try:
        workspace, role = workspace_service.create_workspace(
            db, user.id, data.name, data.default_currency
        )
    except WorkspaceError as e:
        raise _http_error(e) from None
    return WorkspaceWithRoleResponse(
        workspace=WorkspaceRead.model_validate(workspace),
        role=role.value,
    )


@router.get("", response_model=WorkspaceListResponse)
def api_list_my_workspaces(
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
) -> WorkspaceListResponse:
    """List workspaces the caller belongs to, newest first."""
    rows = workspace_service.list_my_workspaces(db, user.id)
    return WorkspaceListResponse(
        workspaces=[
            WorkspaceListItem(
                id=workspace.id,
                name=workspace.name,
                role=role,
                created_at=workspace.created_at,
            )
            for workspace, role in rows
        ]
    )


@router.get("/{workspace_id}", response_model=WorkspaceWithRoleResponse)
def api_get_workspace(
    ctx: WorkspaceContext = Depends(require_viewer),
    db: Session = Depends(get_db),
) -> WorkspaceWithRoleResponse:
    """Return the workspace and the caller's role in it."""
    try:
        workspace, role = workspace_service.get_workspace(db, ctx.workspace_id, ctx.user.id)
    except WorkspaceError as e:
        raise _http_error(e) from None
    return WorkspaceWithRoleResponse(
        workspace=WorkspaceRead.model_validate(workspace),
        role=role,
    )


@router.get("/{workspace_id}/members", response_model=MemberListResponse)
def api_list_members(
    ctx: WorkspaceContext = Depends(require_viewer),
    db: Session = Depends(get_db),
) -> MemberListResponse:
    """List members with email and name, oldest membership first."""
    rows = workspace_service.list_members(db, ctx.workspace_id)
    return MemberListResponse(
        members=[
            MemberInfo(
                user_id=member.user_id,
                email=user.email,
                name=user.name,
                role=member.role,
                created_at=member.created_at,
            )
            for member, user in rows
        ]
    )


@router.post("/{workspace_id}/members", status_code=201)
def api_add_member(
    data: AddMemberRequest,
    ctx: WorkspaceContext = Depends(require_owner),
    db: Session = Depends(get_db),
) -> dict:
    """Add a registered user to the workspace by email."""
    try:
        user_id = workspace_service.add_member_by_email(
            db, ctx.workspace_id, data.email, data.role
        )
    except WorkspaceError as e:
        raise _http_error(e) from None
    return {"user_id": str(user_id), "role": data.role.strip()}


@router.patch("/{workspace_id}/members/{user_id}", status_code=204)
def api_update_member_role(
    user_id: UUID,
    data: UpdateMemberRoleRequest,
    ctx: WorkspaceContext = Depends(require_owner),
    db: Session = Depends(get_db),
) -> Response:
    """Change a member's role. The last owner cannot be demoted."""
    try:
        workspace_service.update_member_role(
            db, ctx.workspace_id, ctx.user.id, user_id, data.role
        )
    except WorkspaceError as e:
        raise _http_error(e) from None
    return Response(status_code=204)


@router.delete("/{workspace_id}/members/{user_id}", status_code=204)
def api_remove_member(
    user_id: UUID,
    ctx: WorkspaceContext = Depends(require_owner),
    db: Session = Depends(get_db),
) -> Response:
    """Remove a member. The last owner cannot be removed."""
    try:
        workspace_service.remove_member(db, ctx.workspace_id, ctx.user.id, user_id)
    except WorkspaceError as e:
        raise _http_error(e) from None
    return Response(status_code=204)
