"""
Task lifecycle rules: field validation, change detection, due-date
arithmetic and the wording of history entries.

Nothing here touches storage; TaskService composes these helpers inside
its transactions.
"""
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from teamtasks.database import TaskStatus, TaskPriority
from teamtasks.exceptions import ValidationError

# Fields update() may change, in the order history entries are written
MUTABLE_FIELDS = ("title", "description", "status", "priority", "assigned_to", "due_date")

TITLE_MIN_LENGTH = 3

CREATED_FIELD = "created"
CREATED_VALUE = "Task created"
CREATED_REASON = "Initial task creation"
REASSIGNED_REASON = "Task reassigned"

STATUS_VALUES = tuple(s.value for s in TaskStatus)
PRIORITY_VALUES = tuple(p.value for p in TaskPriority)

FIELD_LABELS = {
    CREATED_FIELD: "Created",
    "title": "Title",
    "description": "Description",
    "status": "Status",
    "priority": "Priority",
    "assigned_to": "Assignee",
    "due_date": "Due date",
}

SECONDS_PER_DAY = 86400


def field_update_reason(field: str) -> str:
    return f"Field {field} updated"


def status_change_reason(old_status: Optional[str], new_status: str) -> str:
    return f"Status changed from {old_status} to {new_status}"


def validate_title(title: Any) -> str:
    """Strip and check the minimum length."""
    if title is None or not str(title).strip():
        raise ValidationError("Title is required", field="title")
    title = str(title).strip()
    if len(title) < TITLE_MIN_LENGTH:
        raise ValidationError(
            f"Title must be at least {TITLE_MIN_LENGTH} characters long", field="title", value=title
        )
    return title


def normalize_description(description: Any) -> Optional[str]:
    """Strip surrounding whitespace; blank descriptions are stored as NULL."""
    if description is None:
        return None
    description = str(description).strip()
    return description or None


def validate_status(status: Any) -> str:
    if status not in STATUS_VALUES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(STATUS_VALUES)}",
            field="status", value=status
        )
    return status


def validate_priority(priority: Any) -> str:
    if priority not in PRIORITY_VALUES:
        raise ValidationError(
            f"Invalid priority '{priority}'. Must be one of: {', '.join(PRIORITY_VALUES)}",
            field="priority", value=priority
        )
    return priority


def _to_utc(moment: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_due_date(value: Any) -> Optional[str]:
    """
    Normalize a due date to an ISO-8601 UTC string.

    Accepts datetimes, dates and ISO strings ('2024-05-01', '2024-05-01T12:00:00Z', ...).
    None and empty strings clear the due date.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("Invalid due date", field="due_date", value=value)
    return _to_utc(moment).isoformat()


def _due_datetime(task: Dict[str, Any]) -> Optional[datetime]:
    due = task.get("due_date")
    if not due:
        return None
    if isinstance(due, datetime):
        return _to_utc(due)
    return _to_utc(datetime.fromisoformat(str(due).replace("Z", "+00:00")))


def _now(now: Optional[datetime]) -> datetime:
    return _to_utc(now) if now is not None else datetime.now(timezone.utc)


def is_overdue(task: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """True when a due date exists, lies strictly in the past and the task is not completed."""
    due = _due_datetime(task)
    if due is None:
        return False
    return due < _now(now) and task.get("status") != TaskStatus.COMPLETED.value


def days_remaining(task: Dict[str, Any], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until the due date, rounded up. Negative once overdue; None without a due date."""
    due = _due_datetime(task)
    if due is None:
        return None
    return math.ceil((due - _now(now)).total_seconds() / SECONDS_PER_DAY)


def _comparable(field: str, value: Any) -> Any:
    if value is None:
        return None
    if field == "assigned_to":
        return int(value)
    if field == "due_date":
        return parse_due_date(value)
    return value


def compute_changes(task: Dict[str, Any], updates: Dict[str, Any]) -> List[Tuple[str, Any, Any]]:
    """
    Diff supplied values against the stored task.

    Args:
        task: Current task row
        updates: Already validated field -> new value mapping

    Returns:
        (field, old_value, new_value) for every mutable field whose value differs,
        in MUTABLE_FIELDS order
    """
    changes = []
    for field in MUTABLE_FIELDS:
        if field not in updates:
            continue
        old_value = task.get(field)
        new_value = updates[field]
        if _comparable(field, old_value) != _comparable(field, new_value):
            changes.append((field, old_value, new_value))
    return changes


def format_change(entry: Dict[str, Any]) -> str:
    """Human-readable one-liner for a history entry, e.g. 'Status: pending -> completed'."""
    field = entry.get("field_changed")
    label = FIELD_LABELS.get(field, field)
    if field == CREATED_FIELD:
        return f"{label}: {entry.get('new_value') or CREATED_VALUE}"
    old_value = entry.get("old_value")
    new_value = entry.get("new_value")
    old_text = old_value if old_value not in (None, "") else "empty"
    new_text = new_value if new_value not in (None, "") else "empty"
    return f"{label}: {old_text} -> {new_text}"
