"""Workspace and membership schemas for request/response validation."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WorkspaceCreateRequest(BaseModel):
    """Schema for creating a workspace. Blank currency uses the server default."""

    name: str = Field(..., max_length=255)
    default_currency: str | None = Field(None, max_length=8)


class AddMemberRequest(BaseModel):
    """Schema for adding a member by email. Role is validated by the service."""

    email: str = Field(..., min_length=1, max_length=320)
    role: str


class UpdateMemberRoleRequest(BaseModel):
    role: str


class WorkspaceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    default_currency: str
    created_by: UUID
    created_at: datetime


class WorkspaceWithRoleResponse(BaseModel):
    """A workspace together with the caller's role in it."""

    workspace: WorkspaceRead
    role: str


class WorkspaceListItem(BaseModel):
    id: UUID
    name: str
    role: str
    created_at: datetime


class WorkspaceListResponse(BaseModel):
    workspaces: list[WorkspaceListItem]


class MemberInfo(BaseModel):
    """A member row joined with the user's email and name."""

    user_id: UUID
    email: str
    name: str | None
    role: str
    created_at: datetime


class MemberListResponse(BaseModel):
    members: list[MemberInfo]
