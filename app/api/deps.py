"""Shared FastAPI dependencies for API routes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, Path, Request, status
from sqlalchemy.orm import Session

from app.db.session import get_db  # re-export
from app.models.user import User
from app.services import workspace_store
from app.services.auth import get_user_from_token
from app.services.roles import WorkspaceRole, coerce_role, role_at_least

logger = logging.getLogger(__name__)

__all__ = [
    "get_db",
    "get_current_user",
    "require_auth",
    "parse_uuid_param_or_422",
    "WorkspaceContext",
    "require_workspace_role",
    "require_viewer",
    "require_member",
    "require_owner",
]


def parse_uuid_param_or_422(value: str | None, param_name: str) -> UUID:
    """Parse value as a UUID; raise HTTPException 422 if missing or malformed."""
    if not value or not value.strip():
        raise HTTPException(
            status_code=422,
            detail={"message": f"Invalid {param_name}", param_name: "required"},
        )
    try:
        return UUID(value.strip())
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=422,
            detail={"message": f"Invalid {param_name}", param_name: "must be a valid UUID"},
        ) from None


# Cookie name for browser sessions
AUTH_COOKIE = "access_token"


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None),
) -> User | None:
    """Return the authenticated user or None.

    Checks (in order):
    1. Authorization: Bearer <token> header
    2. access_token cookie
    """
    token: str | None = None

    if authorization:
        scheme, _, credentials = authorization.strip().partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            token = credentials.strip()

    # Fall back to cookie
    if token is None and access_token:
        token = access_token

    if token is None:
        return None

    return get_user_from_token(db, token)


def require_auth(
    request: Request,
    user: User | None = Depends(get_current_user),
) -> User:
    """Dependency that requires authentication; 401 otherwise."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


@dataclass(frozen=True)
class WorkspaceContext:
    """Workspace id and role resolved by the RBAC gate for this request.

    Handlers read the workspace only from here, never from the raw path.
    """

    workspace_id: UUID
    role: WorkspaceRole
    user: User


def require_workspace_role(
    min_role: WorkspaceRole,
) -> Callable[..., WorkspaceContext]:
    """Build a dependency admitting members whose role is at least min_role.

    Outcomes: 401 no identity, 422 malformed workspace id, 404 unknown
    workspace, 403 not a member or insufficient role, 500 corrupted role.
    The gate only reads; it attaches the context to request.state.workspace.
    """

    def dependency(
        request: Request,
        workspace_id: str = Path(...),
        db: Session = Depends(get_db),
        user: User | None = Depends(get_current_user),
    ) -> WorkspaceContext:
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
            )

        ws_id = parse_uuid_param_or_422(workspace_id, "workspace_id")

        raw_role = workspace_store.get_user_role(db, ws_id, user.id)
        if raw_role is None:
            if not workspace_store.workspace_exists(db, ws_id):
                raise HTTPException(status_code=404, detail="Workspace not found")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "Not a workspace member", "required": min_role.value},
            )

        actual = coerce_role(raw_role)
        if actual is None:
            logger.error(
                "Unrecognized stored role %r workspace_id=%s user_id=%s",
                raw_role,
                ws_id,
                user.id,
            )
            raise HTTPException(status_code=500, detail="Internal server error")

        if not role_at_least(actual, min_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": "Insufficient role",
                    "required": min_role.value,
                    "actual": actual.value,
                },
            )

        ctx = WorkspaceContext(workspace_id=ws_id, role=actual, user=user)
        request.state.workspace = ctx
        return ctx

    dependency.__name__ = f"require_workspace_{min_role.value}"
    return dependency


require_viewer = require_workspace_role(WorkspaceRole.VIEWER)
require_member = require_workspace_role(WorkspaceRole.MEMBER)
require_owner = require_workspace_role(WorkspaceRole.OWNER)
