"""Pydantic schemas for request/response validation."""

from app.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordResetRequestResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
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

__all__ = [
    "AddMemberRequest",
    "LoginRequest",
    "LogoutRequest",
    "MemberInfo",
    "MemberListResponse",
    "PasswordResetConfirm",
    "PasswordResetRequest",
    "PasswordResetRequestResponse",
    "RefreshRequest",
    "RegisterRequest",
    "TokenResponse",
    "UpdateMemberRoleRequest",
    "UserRead",
    "WorkspaceCreateRequest",
    "WorkspaceListItem",
    "WorkspaceListResponse",
    "WorkspaceRead",
    "WorkspaceWithRoleResponse",
]
