"""
Tests for TaskService against a temporary SQLite database.

Every mutation is checked together with the history entries it leaves behind.
"""
import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from teamtasks.database import TaskDatabase
from teamtasks.exceptions import (
    ForbiddenError,
    TaskNotFoundError,
    TeamNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from teamtasks.services.task_service import TaskService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    temp_dir = tempfile.mkdtemp()
    db = TaskDatabase(os.path.join(temp_dir, "test.db"))
    yield db
    shutil.rmtree(temp_dir)


@pytest.fixture
def task_service(temp_db):
    return TaskService(temp_db)


@pytest.fixture
def actors(temp_db):
    """Admin plus three members; alice and bob share a team, carol is outside it."""
    admin_id = temp_db.users.create("Admin", "admin@example.com", "hash", "admin")
    alice_id = temp_db.users.create("Alice", "alice@example.com", "hash")
    bob_id = temp_db.users.create("Bob", "bob@example.com", "hash")
    carol_id = temp_db.users.create("Carol", "carol@example.com", "hash")
    team_id = temp_db.teams.create("Backend", None, admin_id)
    temp_db.teams.add_member(team_id, alice_id)
    temp_db.teams.add_member(team_id, bob_id)
    return {
        "admin": temp_db.users.get_by_id(admin_id),
        "alice": temp_db.users.get_by_id(alice_id),
        "bob": temp_db.users.get_by_id(bob_id),
        "carol": temp_db.users.get_by_id(carol_id),
        "team_id": team_id,
    }


@pytest.fixture
def task(task_service, actors):
    """A task created by alice and assigned to bob."""
    return task_service.create_task(
        {"title": "Write migrations", "team_id": actors["team_id"], "assigned_to": actors["bob"]["id"]},
        actors["alice"]
    )


def history_fields(db, task_id):
    """Fields of a task's history entries, oldest first."""
    return [entry["field_changed"] for entry in reversed(db.history.get_by_task(task_id))]


class TestCreateTask:
    """Tests for create_task."""

    def test_create_task_success(self, task_service, actors, temp_db):
        # Execute
        result = task_service.create_task(
            {"title": "  Set up CI  ", "team_id": actors["team_id"], "priority": "high"},
            actors["alice"]
        )

        # Verify
        assert result["title"] == "Set up CI"
        assert result["status"] == "pending"
        assert result["priority"] == "high"
        assert result["created_by"] == actors["alice"]["id"]
        assert result["is_overdue"] is False
        assert result["days_remaining"] is None

        entries = temp_db.history.get_by_task(result["id"])
        assert len(entries) == 1
        assert entries[0]["field_changed"] == "created"
        assert entries[0]["old_value"] is None
        assert entries[0]["new_value"] == "Task created"
        assert entries[0]["change_reason"] == "Initial task creation"
        assert entries[0]["user_id"] == actors["alice"]["id"]

    def test_create_task_blank_description(self, task_service, actors):
        result = task_service.create_task(
            {"title": "Write docs", "team_id": actors["team_id"], "description": "   "}, actors["alice"]
        )
        assert result["description"] is None

    def test_create_task_defaults(self, task_service, actors):
        result = task_service.create_task({"title": "Defaults", "team_id": actors["team_id"]}, actors["admin"])
        assert result["status"] == "pending"
        assert result["priority"] == "medium"
        assert result["assigned_to"] is None

    def test_create_task_short_title(self, task_service, actors, temp_db):
        with pytest.raises(ValidationError):
            task_service.create_task({"title": "ab", "team_id": actors["team_id"]}, actors["alice"])
        assert temp_db.tasks.count() == 0

    def test_create_task_unknown_team(self, task_service, actors):
        with pytest.raises(TeamNotFoundError):
            task_service.create_task({"title": "Orphan", "team_id": 999}, actors["admin"])

    def test_create_task_outside_team_forbidden(self, task_service, actors, temp_db):
        with pytest.raises(ForbiddenError):
            task_service.create_task({"title": "Sneaky", "team_id": actors["team_id"]}, actors["carol"])
        assert temp_db.tasks.count() == 0
        assert temp_db.history.recent() == []

    def test_member_cannot_assign_outsider(self, task_service, actors, temp_db):
        with pytest.raises(ValidationError, match="team member"):
            task_service.create_task(
                {"title": "Outsourced", "team_id": actors["team_id"], "assigned_to": actors["carol"]["id"]},
                actors["alice"]
            )
        assert temp_db.tasks.count() == 0

    def test_admin_can_assign_outsider(self, task_service, actors):
        result = task_service.create_task(
            {"title": "Outsourced", "team_id": actors["team_id"], "assigned_to": actors["carol"]["id"]},
            actors["admin"]
        )
        assert result["assigned_to"] == actors["carol"]["id"]

    def test_unknown_assignee(self, task_service, actors):
        with pytest.raises(UserNotFoundError):
            task_service.create_task(
                {"title": "Ghost work", "team_id": actors["team_id"], "assigned_to": 999},
                actors["admin"]
            )

    def test_past_due_date_is_overdue(self, task_service, actors):
        due = datetime.now(timezone.utc) - timedelta(days=2, hours=1)
        result = task_service.create_task(
            {"title": "Late", "team_id": actors["team_id"], "due_date": due.isoformat()},
            actors["alice"]
        )
        assert result["is_overdue"] is True
        assert result["days_remaining"] == -2


class TestGetAndListTasks:
    """Tests for get_task and list_tasks."""

    def test_get_task_includes_history_and_edit_flag(self, task_service, actors, task):
        result = task_service.get_task(task["id"], actors["bob"])
        assert result["can_edit"] is True
        assert [entry["formatted_change"] for entry in result["history"]] == ["Created: Task created"]

    def test_team_member_can_view_but_not_edit(self, task_service, actors, temp_db, task):
        # Setup: a teammate who is neither creator nor assignee
        dave_id = temp_db.users.create("Dave", "dave@example.com", "hash")
        temp_db.teams.add_member(actors["team_id"], dave_id)

        # Execute
        result = task_service.get_task(task["id"], temp_db.users.get_by_id(dave_id))

        # Verify
        assert result["can_edit"] is False

    def test_outsider_cannot_view(self, task_service, actors, task):
        with pytest.raises(ForbiddenError):
            task_service.get_task(task["id"], actors["carol"])

    def test_get_missing_task(self, task_service, actors):
        with pytest.raises(TaskNotFoundError):
            task_service.get_task(404, actors["admin"])

    def test_list_tasks_scoped_for_members(self, task_service, actors, task):
        assert task_service.list_tasks(actors["carol"])["total"] == 0
        result = task_service.list_tasks(actors["bob"])
        assert result["total"] == 1
        assert result["tasks"][0]["id"] == task["id"]
        assert "is_overdue" in result["tasks"][0]

    def test_list_tasks_filters(self, task_service, actors, task):
        assert task_service.list_tasks(actors["admin"], {"status": "completed"})["total"] == 0
        assert task_service.list_tasks(actors["admin"], {"status": "pending", "priority": None})["total"] == 1

    def test_list_tasks_invalid_filter(self, task_service, actors):
        with pytest.raises(ValidationError):
            task_service.list_tasks(actors["admin"], {"status": "done"})


class TestUpdateTask:
    """Tests for update_task."""

    def test_one_entry_per_changed_field(self, task_service, actors, temp_db, task):
        # Execute
        result = task_service.update_task(
            task["id"],
            {"title": "Write schema migrations", "priority": "high", "status": "pending"},
            actors["alice"]
        )

        # Verify
        assert result["title"] == "Write schema migrations"
        assert result["priority"] == "high"
        entries = temp_db.history.get_by_task(task["id"])
        changes = {entry["field_changed"]: entry for entry in entries}
        assert set(changes) == {"created", "title", "priority"}
        assert changes["title"]["old_value"] == "Write migrations"
        assert changes["title"]["new_value"] == "Write schema migrations"
        assert changes["title"]["change_reason"] == "Field title updated"
        assert changes["priority"]["change_reason"] == "Field priority updated"

    def test_noop_update_records_nothing(self, task_service, actors, temp_db, task):
        before = temp_db.tasks.get_by_id(task["id"])
        result = task_service.update_task(task["id"], {"title": "Write migrations"}, actors["alice"])
        assert result["updated_at"] == before["updated_at"]
        assert history_fields(temp_db, task["id"]) == ["created"]

    def test_description_is_trimmed(self, task_service, actors, temp_db, task):
        result = task_service.update_task(task["id"], {"description": "  Add indexes  "}, actors["alice"])
        assert result["description"] == "Add indexes"
        entry = temp_db.history.get_by_task(task["id"])[0]
        assert entry["new_value"] == "Add indexes"

    def test_blank_description_is_stored_as_null(self, task_service, actors, temp_db, task):
        # Setup
        task_service.update_task(task["id"], {"description": "Add indexes"}, actors["alice"])

        # Execute
        result = task_service.update_task(task["id"], {"description": "   "}, actors["alice"])

        # Verify
        assert result["description"] is None
        assert history_fields(temp_db, task["id"]) == ["created", "description", "description"]

    def test_whitespace_description_on_empty_task_records_nothing(self, task_service, actors, temp_db, task):
        task_service.update_task(task["id"], {"description": "  "}, actors["alice"])
        assert history_fields(temp_db, task["id"]) == ["created"]

    def test_empty_update_rejected(self, task_service, actors, task):
        with pytest.raises(ValidationError):
            task_service.update_task(task["id"], {}, actors["alice"])

    def test_unknown_field_rejected(self, task_service, actors, task):
        with pytest.raises(ValidationError, match="team_id"):
            task_service.update_task(task["id"], {"team_id": 2}, actors["alice"])

    def test_teammate_cannot_update(self, task_service, actors, temp_db, task):
        dave_id = temp_db.users.create("Dave", "dave@example.com", "hash")
        temp_db.teams.add_member(actors["team_id"], dave_id)
        with pytest.raises(ForbiddenError):
            task_service.update_task(task["id"], {"title": "Hijacked"}, temp_db.users.get_by_id(dave_id))
        assert temp_db.tasks.get_by_id(task["id"])["title"] == "Write migrations"

    def test_update_assignee_to_outsider_rolls_back(self, task_service, actors, temp_db, task):
        with pytest.raises(ValidationError):
            task_service.update_task(
                task["id"], {"title": "Renamed", "assigned_to": actors["carol"]["id"]}, actors["alice"]
            )
        assert temp_db.tasks.get_by_id(task["id"])["title"] == "Write migrations"
        assert history_fields(temp_db, task["id"]) == ["created"]

    def test_clear_due_date(self, task_service, actors, temp_db, task):
        task_service.update_task(task["id"], {"due_date": "2030-01-01T00:00:00Z"}, actors["alice"])
        result = task_service.update_task(task["id"], {"due_date": None}, actors["alice"])
        assert result["due_date"] is None
        assert history_fields(temp_db, task["id"]) == ["created", "due_date", "due_date"]


class TestAssignTask:
    """Tests for assign_task."""

    def test_assign_records_entry(self, task_service, actors, temp_db, task):
        result = task_service.assign_task(task["id"], actors["alice"]["id"], actors["bob"])
        assert result["assigned_to"] == actors["alice"]["id"]
        entry = temp_db.history.get_by_task(task["id"])[0]
        assert entry["field_changed"] == "assigned_to"
        assert entry["old_value"] == str(actors["bob"]["id"])
        assert entry["new_value"] == str(actors["alice"]["id"])
        assert entry["change_reason"] == "Task reassigned"

    def test_reassigning_same_user_still_records(self, task_service, actors, temp_db, task):
        task_service.assign_task(task["id"], actors["bob"]["id"], actors["alice"])
        assert history_fields(temp_db, task["id"]) == ["created", "assigned_to"]

    def test_assign_outsider_as_member(self, task_service, actors, task):
        with pytest.raises(ValidationError):
            task_service.assign_task(task["id"], actors["carol"]["id"], actors["alice"])

    def test_outsider_cannot_assign(self, task_service, actors, task):
        with pytest.raises(ForbiddenError):
            task_service.assign_task(task["id"], actors["carol"]["id"], actors["carol"])


class TestChangeStatus:
    """Tests for change_status."""

    def test_status_change_default_reason(self, task_service, actors, temp_db, task):
        result = task_service.change_status(task["id"], "completed", actors["bob"])
        assert result["status"] == "completed"
        entry = temp_db.history.get_by_task(task["id"])[0]
        assert (entry["old_value"], entry["new_value"]) == ("pending", "completed")
        assert entry["change_reason"] == "Status changed from pending to completed"

    def test_status_change_custom_reason(self, task_service, actors, temp_db, task):
        task_service.change_status(task["id"], "in_progress", actors["bob"], reason="Started today")
        assert temp_db.history.get_by_task(task["id"])[0]["change_reason"] == "Started today"

    def test_same_status_still_records(self, task_service, actors, temp_db, task):
        task_service.change_status(task["id"], "pending", actors["bob"])
        assert history_fields(temp_db, task["id"]) == ["created", "status"]

    def test_invalid_status(self, task_service, actors, temp_db, task):
        with pytest.raises(ValidationError):
            task_service.change_status(task["id"], "archived", actors["bob"])
        assert history_fields(temp_db, task["id"]) == ["created"]

    def test_completed_task_is_not_overdue(self, task_service, actors):
        due = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        created = task_service.create_task(
            {"title": "Late", "team_id": actors["team_id"], "due_date": due}, actors["admin"]
        )
        assert created["is_overdue"] is True
        result = task_service.change_status(created["id"], "completed", actors["admin"])
        assert result["is_overdue"] is False


class TestDeleteTask:
    """Tests for delete_task."""

    def test_assignee_cannot_delete(self, task_service, actors, task):
        with pytest.raises(ForbiddenError):
            task_service.delete_task(task["id"], actors["bob"])

    def test_creator_deletes_and_history_remains(self, task_service, actors, temp_db, task):
        task_service.delete_task(task["id"], actors["alice"])
        assert temp_db.tasks.get_by_id(task["id"]) is None
        assert history_fields(temp_db, task["id"]) == ["created"]

    def test_delete_missing_task(self, task_service, actors):
        with pytest.raises(TaskNotFoundError):
            task_service.delete_task(123, actors["admin"])
