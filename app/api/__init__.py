"""API routes."""

from app.api.auth import router as auth_router
from app.api.workspaces import router as workspaces_router

__all__ = ["auth_router", "workspaces_router"]
