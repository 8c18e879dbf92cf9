"""WorkspaceMember model: a user's role inside a workspace."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base

if TYPE_CHECKING:
    from app.models.workspace import Workspace


class WorkspaceMember(Base):
    """User membership in a workspace (many-to-many with a role).

    The composite primary key allows at most one role per (workspace, user).
    """

    __tablename__ = "workspace_members"

    __table_args__ = (
        CheckConstraint(
            "role IN ('owner', 'member', 'viewer')",
            name="ck_workspace_members_role",
        ),
        Index("ix_workspace_members_workspace_role", "workspace_id", "role"),
        Index("ix_workspace_members_user_id", "user_id"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    workspace: Mapped[Workspace] = relationship("Workspace", back_populates="members")
