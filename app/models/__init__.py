"""SQLAlchemy models."""

from app.models.auth_token import PasswordResetToken, RefreshToken
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_member import WorkspaceMember

__all__ = [
    "PasswordResetToken",
    "RefreshToken",
    "User",
    "Workspace",
    "WorkspaceMember",
]
