"""Authentication schemas."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    email: str = Field(..., min_length=3, max_length=320, pattern=r"^\s*[^@\s]+@[^@\s]+\s*$")
    password: str = Field(..., min_length=8)
    name: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """Schema for login credentials."""

    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    """Schema for reading user info (response)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None = None


class TokenResponse(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    user: UserRead | None = None


class RefreshRequest(BaseModel):
    """Schema for exchanging a refresh token."""

    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Schema for logout; the refresh token, when given, is revoked."""

    refresh_token: str | None = None


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=320)


class PasswordResetRequestResponse(BaseModel):
    detail: str
    reset_token: str | None = None


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
