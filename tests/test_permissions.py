"""
Tests for the access policy.
The policy functions are pure, so no database is involved.
"""
import pytest

from teamtasks.auth import permissions
from teamtasks.exceptions import ForbiddenError, ValidationError

ADMIN = {"id": 1, "role": "admin"}
CREATOR = {"id": 2, "role": "member"}
ASSIGNEE = {"id": 3, "role": "member"}
TEAMMATE = {"id": 4, "role": "member"}
OUTSIDER = {"id": 5, "role": "member"}

TASK = {"id": 10, "team_id": 7, "created_by": 2, "assigned_to": 3}
UNASSIGNED_TASK = {"id": 11, "team_id": 7, "created_by": 2, "assigned_to": None}


class TestCanViewTask:
    """Tests for can_view_task."""

    def test_admin_can_view_any_task(self):
        assert permissions.can_view_task(ADMIN, TASK, is_team_member=False)

    def test_team_member_can_view(self):
        assert permissions.can_view_task(TEAMMATE, TASK, is_team_member=True)

    def test_assignee_outside_team_can_view(self):
        assert permissions.can_view_task(ASSIGNEE, TASK, is_team_member=False)

    def test_creator_outside_team_can_view(self):
        assert permissions.can_view_task(CREATOR, TASK, is_team_member=False)

    def test_outsider_cannot_view(self):
        assert not permissions.can_view_task(OUTSIDER, TASK, is_team_member=False)


class TestCanEditTask:
    """Tests for can_edit_task."""

    def test_admin_creator_and_assignee_can_edit(self):
        assert permissions.can_edit_task(ADMIN, TASK)
        assert permissions.can_edit_task(CREATOR, TASK)
        assert permissions.can_edit_task(ASSIGNEE, TASK)

    def test_team_membership_alone_does_not_grant_edit(self):
        assert not permissions.can_edit_task(TEAMMATE, TASK)

    def test_unassigned_task_is_not_editable_by_user_with_matching_none(self):
        # An unassigned task must not match an actor through assigned_to=None
        actor = {"id": None, "role": "member"}
        assert not permissions.can_edit_task(actor, UNASSIGNED_TASK)


class TestCanDeleteTask:
    """Tests for can_delete_task."""

    def test_admin_and_creator_can_delete(self):
        assert permissions.can_delete_task(ADMIN, TASK)
        assert permissions.can_delete_task(CREATOR, TASK)

    def test_assignee_can_edit_but_not_delete(self):
        assert permissions.can_edit_task(ASSIGNEE, TASK)
        assert not permissions.can_delete_task(ASSIGNEE, TASK)

    def test_delete_is_never_wider_than_edit(self):
        for actor in (ADMIN, CREATOR, ASSIGNEE, TEAMMATE, OUTSIDER):
            if permissions.can_delete_task(actor, TASK):
                assert permissions.can_edit_task(actor, TASK)


class TestTeamRules:
    """Tests for team management and membership checks."""

    def test_only_admin_manages_teams(self):
        assert permissions.can_manage_team(ADMIN)
        assert not permissions.can_manage_team(CREATOR)

    def test_admin_bypasses_membership(self):
        def is_member(team_id, user_id):
            raise AssertionError("membership must not be looked up for admins")

        permissions.require_team_membership(ADMIN, 7, is_member)

    def test_member_passes_membership_check(self):
        calls = []

        def is_member(team_id, user_id):
            calls.append((team_id, user_id))
            return True

        permissions.require_team_membership(TEAMMATE, 7, is_member)
        assert calls == [(7, 4)]

    def test_non_member_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            permissions.require_team_membership(OUTSIDER, 7, lambda team_id, user_id: False)


class TestAssignmentRules:
    """Tests for assignee membership and role elevation."""

    def test_member_must_assign_team_member(self):
        with pytest.raises(ValidationError, match="Assigned user must be a team member"):
            permissions.check_assignee_membership(CREATOR, assignee_is_member=False)

    def test_member_may_assign_team_member(self):
        permissions.check_assignee_membership(CREATOR, assignee_is_member=True)

    def test_admin_may_assign_anyone(self):
        permissions.check_assignee_membership(ADMIN, assignee_is_member=False)

    def test_anonymous_cannot_request_admin_role(self):
        with pytest.raises(ForbiddenError):
            permissions.check_role_assignment(None, "admin")

    def test_member_cannot_request_admin_role(self):
        with pytest.raises(ForbiddenError):
            permissions.check_role_assignment(CREATOR, "admin")

    def test_admin_can_grant_admin_role(self):
        permissions.check_role_assignment(ADMIN, "admin")

    def test_member_role_needs_no_privileges(self):
        permissions.check_role_assignment(None, "member")


def test_can_view_user_admin_or_self():
    assert permissions.can_view_user(ADMIN, 99)
    assert permissions.can_view_user(CREATOR, 2)
    assert not permissions.can_view_user(CREATOR, 3)
