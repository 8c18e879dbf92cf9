"""Workspace store tests against PostgreSQL: creation, lookups and guards."""

from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models import Workspace, WorkspaceMember
from app.services import workspace_store
from app.services.roles import WorkspaceRole
from app.services.workspace_errors import (
    AlreadyMemberError,
    CannotSelfDemoteError,
    LastOwnerError,
    MemberNotFoundError,
    UserNotFoundError,
    WorkspaceNotFoundError,
    WorkspaceValidationError,
)


def _roles(db: Session, workspace_id) -> dict:
    return {m.user_id: m.role for m in workspace_store.list_members(db, workspace_id)}


class TestCreateWorkspaceWithOwner:
    def test_creates_workspace_and_owner_membership(self, db: Session, make_user) -> None:
        creator = make_user()
        ws = workspace_store.create_workspace_with_owner(db, creator.id, "  Family  ", "eur")

        assert ws.name == "Family"
        assert ws.default_currency == "EUR"
        assert ws.created_by == creator.id
        assert _roles(db, ws.id) == {creator.id: "owner"}

    def test_blank_currency_defaults_to_uah(self, db: Session, make_user) -> None:
        creator = make_user()
        ws = workspace_store.create_workspace_with_owner(db, creator.id, "Home", "  ")
        assert ws.default_currency == "UAH"

    def test_blank_name_rejected(self, db: Session, make_user) -> None:
        creator = make_user()
        with pytest.raises(WorkspaceValidationError):
            workspace_store.create_workspace_with_owner(db, creator.id, "   ", "UAH")
        assert db.query(Workspace).filter(Workspace.created_by == creator.id).count() == 0

    def test_invalid_currency_rejected(self, db: Session, make_user) -> None:
        creator = make_user()
        with pytest.raises(WorkspaceValidationError):
            workspace_store.create_workspace_with_owner(db, creator.id, "Home", "EURO")

    def test_failure_before_owner_insert_persists_nothing(self, db: Session, make_user) -> None:
        """A failure between the two inserts leaves neither row behind."""
        creator = make_user()
        with patch(
            "app.services.workspace_store.WorkspaceMember",
            side_effect=RuntimeError("injected"),
        ):
            with pytest.raises(RuntimeError, match="injected"):
                workspace_store.create_workspace_with_owner(db, creator.id, "Atomic", "UAH")

        assert db.query(Workspace).filter(Workspace.name == "Atomic").count() == 0
        assert db.query(WorkspaceMember).filter(WorkspaceMember.user_id == creator.id).count() == 0


class TestLookups:
    def test_get_user_role_absent_vs_present(self, db: Session, make_user) -> None:
        owner, stranger = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")

        assert workspace_store.get_user_role(db, ws.id, owner.id) == "owner"
        assert workspace_store.get_user_role(db, ws.id, stranger.id) is None
        assert workspace_store.workspace_exists(db, ws.id) is True

    def test_unknown_workspace(self, db: Session, make_user) -> None:
        user = make_user()
        missing = uuid.uuid4()
        assert workspace_store.get_user_role(db, missing, user.id) is None
        assert workspace_store.workspace_exists(db, missing) is False
        with pytest.raises(WorkspaceNotFoundError):
            workspace_store.get_workspace(db, missing)

    def test_find_user_id_by_email_normalizes(self, db: Session, make_user) -> None:
        user = make_user(email="casey@example.com")
        assert workspace_store.find_user_id_by_email(db, "  CASEY@example.com ") == user.id
        with pytest.raises(UserNotFoundError):
            workspace_store.find_user_id_by_email(db, "nobody@example.com")

    def test_list_members_in_creation_order(self, db: Session, make_user) -> None:
        owner, second, third = make_user(), make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, second.id, WorkspaceRole.VIEWER)
        workspace_store.add_member_by_user_id(db, ws.id, third.id, WorkspaceRole.MEMBER)

        members = workspace_store.list_members(db, ws.id)
        assert [m.user_id for m in members] == [owner.id, second.id, third.id]

        info = workspace_store.list_members_info(db, ws.id)
        assert [u.email for _, u in info] == [owner.email, second.email, third.email]

    def test_list_my_workspaces_newest_first(self, db: Session, make_user) -> None:
        user = make_user()
        first = workspace_store.create_workspace_with_owner(db, user.id, "First")
        second = workspace_store.create_workspace_with_owner(db, user.id, "Second")
        rows = workspace_store.list_my_workspaces(db, user.id)
        assert [(w.id, role) for w, role in rows] == [(second.id, "owner"), (first.id, "owner")]

    def test_get_workspace_with_role_requires_membership(self, db: Session, make_user) -> None:
        owner, stranger = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace, role = workspace_store.get_workspace_with_role(db, ws.id, owner.id)
        assert (workspace.id, role) == (ws.id, "owner")
        with pytest.raises(WorkspaceNotFoundError):
            workspace_store.get_workspace_with_role(db, ws.id, stranger.id)


class TestAddMember:
    def test_duplicate_membership_raises_already_member(self, db: Session, make_user) -> None:
        owner, other = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, other.id, "member")

        with pytest.raises(AlreadyMemberError):
            workspace_store.add_member_by_user_id(db, ws.id, other.id, "viewer")
        assert _roles(db, ws.id)[other.id] == "member"

    def test_owner_re_add_raises_already_member(self, db: Session, make_user) -> None:
        owner = make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        with pytest.raises(AlreadyMemberError):
            workspace_store.add_member_by_user_id(db, ws.id, owner.id, "owner")


class TestUpdateMemberRoleSafe:
    def test_promote_and_demote_non_owner(self, db: Session, make_user) -> None:
        owner, other = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, other.id, "viewer")

        workspace_store.update_member_role_safe(db, ws.id, owner.id, other.id, "owner")
        assert _roles(db, ws.id)[other.id] == "owner"
        workspace_store.update_member_role_safe(db, ws.id, owner.id, other.id, "viewer")
        assert _roles(db, ws.id)[other.id] == "viewer"

    def test_unknown_target_raises_member_not_found(self, db: Session, make_user) -> None:
        owner, stranger = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        with pytest.raises(MemberNotFoundError):
            workspace_store.update_member_role_safe(db, ws.id, owner.id, stranger.id, "viewer")

    def test_sole_owner_self_demotion_is_rejected(self, db: Session, make_user) -> None:
        owner, viewer = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, viewer.id, "viewer")

        with pytest.raises(CannotSelfDemoteError):
            workspace_store.update_member_role_safe(db, ws.id, owner.id, owner.id, "viewer")
        assert _roles(db, ws.id)[owner.id] == "owner"

    def test_self_demotion_rejected_even_with_second_owner(self, db: Session, make_user) -> None:
        owner, co_owner = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, co_owner.id, "owner")

        with pytest.raises(CannotSelfDemoteError):
            workspace_store.update_member_role_safe(db, ws.id, owner.id, owner.id, "member")
        assert _roles(db, ws.id) == {owner.id: "owner", co_owner.id: "owner"}

    def test_demoting_last_owner_by_other_actor_raises_last_owner(
        self, db: Session, make_user
    ) -> None:
        owner, member = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, member.id, "member")

        with pytest.raises(LastOwnerError):
            workspace_store.update_member_role_safe(db, ws.id, member.id, owner.id, "member")
        assert _roles(db, ws.id)[owner.id] == "owner"

    def test_demoting_one_of_two_owners_succeeds(self, db: Session, make_user) -> None:
        owner, co_owner = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, co_owner.id, "owner")

        workspace_store.update_member_role_safe(db, ws.id, owner.id, co_owner.id, "viewer")
        assert _roles(db, ws.id) == {owner.id: "owner", co_owner.id: "viewer"}

    def test_owner_to_owner_is_a_no_op(self, db: Session, make_user) -> None:
        owner = make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.update_member_role_safe(db, ws.id, owner.id, owner.id, "owner")
        assert _roles(db, ws.id) == {owner.id: "owner"}

    def test_statement_deadline_rolls_back(self, db: Session, make_user) -> None:
        """A deadline hit inside the guarded transaction leaves the role unchanged."""
        owner, other = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, other.id, "viewer")

        real_count = workspace_store._count_owners

        def slow_count(session, workspace_id):
            from sqlalchemy import text

            session.execute(text("SELECT pg_sleep(0.5)"))
            return real_count(session, workspace_id)

        workspace_store.update_member_role_safe(db, ws.id, owner.id, other.id, "owner")
        with patch("app.services.workspace_store._count_owners", side_effect=slow_count):
            with pytest.raises(OperationalError):
                workspace_store.update_member_role_safe(
                    db, ws.id, owner.id, other.id, "member", timeout_ms=100
                )
        assert _roles(db, ws.id)[other.id] == "owner"


class TestRemoveMemberSafe:
    def test_remove_sole_owner_raises_last_owner(self, db: Session, make_user) -> None:
        owner, viewer = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, viewer.id, "viewer")

        with pytest.raises(LastOwnerError):
            workspace_store.remove_member_safe(db, ws.id, owner.id, owner.id)
        assert _roles(db, ws.id)[owner.id] == "owner"

    def test_remove_unknown_member_raises_member_not_found(self, db: Session, make_user) -> None:
        owner, stranger = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        with pytest.raises(MemberNotFoundError):
            workspace_store.remove_member_safe(db, ws.id, owner.id, stranger.id)

    def test_remove_viewer(self, db: Session, make_user) -> None:
        owner, viewer = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, owner.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, viewer.id, "viewer")

        workspace_store.remove_member_safe(db, ws.id, owner.id, viewer.id)
        assert _roles(db, ws.id) == {owner.id: "owner"}
        assert workspace_store.get_user_role(db, ws.id, viewer.id) is None

    def test_owner_leaves_when_another_owner_remains(self, db: Session, make_user) -> None:
        a, b = make_user(), make_user()
        ws = workspace_store.create_workspace_with_owner(db, a.id, "Home")
        workspace_store.add_member_by_user_id(db, ws.id, b.id, "owner")

        workspace_store.remove_member_safe(db, ws.id, a.id, a.id)
        assert _roles(db, ws.id) == {b.id: "owner"}

        with pytest.raises(LastOwnerError):
            workspace_store.remove_member_safe(db, ws.id, b.id, b.id)
        assert _roles(db, ws.id) == {b.id: "owner"}
