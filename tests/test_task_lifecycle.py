"""
Tests for task lifecycle helpers: validation, due dates, change detection
and history wording.
"""
from datetime import datetime, date, timedelta, timezone

import pytest

from teamtasks.exceptions import ValidationError
from teamtasks.services import task_lifecycle as lifecycle

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


class TestValidation:
    """Tests for field validators."""

    def test_title_is_stripped(self):
        assert lifecycle.validate_title("  Fix login  ") == "Fix login"

    def test_title_too_short(self):
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.validate_title(" ab ")
        assert exc_info.value.field == "title"

    def test_title_missing(self):
        with pytest.raises(ValidationError):
            lifecycle.validate_title(None)
        with pytest.raises(ValidationError):
            lifecycle.validate_title("   ")

    def test_description_normalized(self):
        assert lifecycle.normalize_description("  Details \n") == "Details"
        assert lifecycle.normalize_description("   ") is None
        assert lifecycle.normalize_description(None) is None

    def test_status_values(self):
        for status in ("pending", "in_progress", "completed"):
            assert lifecycle.validate_status(status) == status
        with pytest.raises(ValidationError, match="Invalid status"):
            lifecycle.validate_status("done")

    def test_priority_values(self):
        for priority in ("high", "medium", "low"):
            assert lifecycle.validate_priority(priority) == priority
        with pytest.raises(ValidationError, match="Invalid priority"):
            lifecycle.validate_priority("urgent")


class TestParseDueDate:
    """Tests for due date normalization."""

    def test_empty_values_clear_due_date(self):
        assert lifecycle.parse_due_date(None) is None
        assert lifecycle.parse_due_date("") is None

    def test_zulu_suffix(self):
        assert lifecycle.parse_due_date("2024-05-01T12:00:00Z") == "2024-05-01T12:00:00+00:00"

    def test_naive_string_is_utc(self):
        assert lifecycle.parse_due_date("2024-05-01T12:00:00") == "2024-05-01T12:00:00+00:00"

    def test_offset_is_converted_to_utc(self):
        assert lifecycle.parse_due_date("2024-05-01T12:00:00+02:00") == "2024-05-01T10:00:00+00:00"

    def test_date_object(self):
        assert lifecycle.parse_due_date(date(2024, 5, 1)) == "2024-05-01T00:00:00+00:00"

    def test_invalid_string(self):
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.parse_due_date("next tuesday")
        assert exc_info.value.field == "due_date"


class TestDueDateArithmetic:
    """Tests for is_overdue and days_remaining."""

    def test_no_due_date(self):
        task = {"status": "pending", "due_date": None}
        assert lifecycle.is_overdue(task, NOW) is False
        assert lifecycle.days_remaining(task, NOW) is None

    def test_past_due_date_is_overdue(self):
        task = {"status": "in_progress", "due_date": (NOW - timedelta(days=2)).isoformat()}
        assert lifecycle.is_overdue(task, NOW) is True
        assert lifecycle.days_remaining(task, NOW) == -2

    def test_completed_task_is_never_overdue(self):
        task = {"status": "completed", "due_date": (NOW - timedelta(days=2)).isoformat()}
        assert lifecycle.is_overdue(task, NOW) is False

    def test_partial_days_round_up(self):
        task = {"status": "pending", "due_date": (NOW + timedelta(days=2, hours=1)).isoformat()}
        assert lifecycle.is_overdue(task, NOW) is False
        assert lifecycle.days_remaining(task, NOW) == 3

    def test_due_now_is_not_overdue(self):
        task = {"status": "pending", "due_date": NOW.isoformat()}
        assert lifecycle.is_overdue(task, NOW) is False
        assert lifecycle.days_remaining(task, NOW) == 0


class TestComputeChanges:
    """Tests for change detection."""

    def test_only_differing_fields_are_reported(self):
        # Setup
        task = {"title": "Old", "description": None, "status": "pending",
                "priority": "medium", "assigned_to": 2, "due_date": None}

        # Execute
        changes = lifecycle.compute_changes(task, {"title": "New", "status": "pending", "priority": "high"})

        # Verify
        assert changes == [("title", "Old", "New"), ("priority", "medium", "high")]

    def test_assignee_compared_as_integer(self):
        task = {"assigned_to": 3}
        assert lifecycle.compute_changes(task, {"assigned_to": "3"}) == []

    def test_due_date_compared_after_normalization(self):
        task = {"due_date": "2024-05-01T12:00:00+00:00"}
        assert lifecycle.compute_changes(task, {"due_date": "2024-05-01T12:00:00Z"}) == []

    def test_clearing_a_value_is_a_change(self):
        task = {"description": "Something"}
        assert lifecycle.compute_changes(task, {"description": None}) == [("description", "Something", None)]

    def test_changes_follow_field_order(self):
        task = {"title": "Old", "due_date": None, "status": "pending"}
        changes = lifecycle.compute_changes(task, {"due_date": "2024-01-01", "status": "completed", "title": "New"})
        assert [field for field, _, _ in changes] == ["title", "status", "due_date"]


class TestFormatting:
    """Tests for history wording."""

    def test_reasons(self):
        assert lifecycle.field_update_reason("title") == "Field title updated"
        assert lifecycle.status_change_reason("pending", "completed") == "Status changed from pending to completed"

    def test_format_created_entry(self):
        entry = {"field_changed": "created", "old_value": None, "new_value": "Task created"}
        assert lifecycle.format_change(entry) == "Created: Task created"

    def test_format_change_with_empty_old_value(self):
        entry = {"field_changed": "description", "old_value": None, "new_value": "Details"}
        assert lifecycle.format_change(entry) == "Description: empty -> Details"

    def test_format_status_change(self):
        entry = {"field_changed": "status", "old_value": "pending", "new_value": "completed"}
        assert lifecycle.format_change(entry) == "Status: pending -> completed"

    def test_unknown_field_uses_raw_name(self):
        entry = {"field_changed": "labels", "old_value": "a", "new_value": ""}
        assert lifecycle.format_change(entry) == "labels: a -> empty"
