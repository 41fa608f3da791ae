"""
History service - read access and retention for the task history ledger.

Entries are written only by TaskService, inside the same transaction as
the mutation they describe.
"""
import os
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Dict, Any, List

from teamtasks.auth import permissions
from teamtasks.database import TaskDatabase
from teamtasks.exceptions import TaskNotFoundError, TeamNotFoundError, ValidationError
from teamtasks.services.task_lifecycle import format_change
from teamtasks.storage.base import utc_timestamp

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = int(os.getenv("HISTORY_RETENTION_DAYS", "365"))


def with_formatted_change(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach a human-readable 'formatted_change' to each entry."""
    for entry in entries:
        entry["formatted_change"] = format_change(entry)
    return entries


def parse_date_bound(value: Optional[str], field: str, end_of_day: bool = False) -> Optional[str]:
    """
    Normalize a stats date bound to a UTC timestamp string.

    A bare date (YYYY-MM-DD) covers the whole day: the start of it as a lower
    bound, the last second of it as an upper bound.

    Raises:
        ValidationError: If the value is not an ISO date or datetime
    """
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        if len(text) == 10:
            moment = datetime.combine(date.fromisoformat(text), time.max if end_of_day else time.min)
        else:
            moment = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD or an ISO datetime", field=field, value=value)
    return utc_timestamp(moment)


def _date_range(start_date: Optional[str], end_date: Optional[str]):
    start = parse_date_bound(start_date, "start_date")
    end = parse_date_bound(end_date, "end_date", end_of_day=True)
    if start and end and start > end:
        raise ValidationError("end_date must not be before start_date", field="end_date", value=end_date)
    return start, end


class HistoryService:
    """Service for history queries, statistics and retention."""

    def __init__(self, db: TaskDatabase):
        self.db = db

    def get_task_history(
        self,
        task_id: int,
        actor: Dict[str, Any],
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """History of one task, newest first. Visible to whoever may view the task."""
        task = self.db.tasks.get_by_id(task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        is_member = self.db.teams.is_member(task["team_id"], actor["id"])
        permissions.require(permissions.can_view_task(actor, task, is_member))
        return {
            "task_id": task_id,
            "history": with_formatted_change(self.db.history.get_by_task(task_id, limit, offset)),
            "total": self.db.history.count_by_task(task_id),
            "limit": limit,
            "offset": offset,
        }

    def get_actor_history(self, user_id: int, actor: Dict[str, Any], limit: int = 50, offset: int = 0):
        permissions.require_admin(actor)
        return with_formatted_change(self.db.history.get_by_actor(user_id, limit, offset))

    def get_field_history(self, field: str, actor: Dict[str, Any], limit: int = 50, offset: int = 0):
        permissions.require_admin(actor)
        return with_formatted_change(self.db.history.get_by_field(field, limit, offset))

    def get_team_history(self, team_id: int, actor: Dict[str, Any], limit: int = 50, offset: int = 0):
        if not self.db.teams.exists(team_id):
            raise TeamNotFoundError(team_id)
        permissions.require_team_membership(actor, team_id, self.db.teams.is_member)
        return with_formatted_change(self.db.history.get_by_team(team_id, limit, offset))

    def recent_activity(self, actor: Dict[str, Any], limit: int = 50):
        """Admins see every change; members see changes to tasks of their teams."""
        member_id = None if permissions.is_admin(actor) else actor["id"]
        return with_formatted_change(self.db.history.recent(limit, member_id=member_id))

    def get_actor_stats(
        self,
        user_id: int,
        actor: Dict[str, Any],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ):
        """Change counts of a user grouped by field and day (admin only)."""
        permissions.require_admin(actor)
        start_date, end_date = _date_range(start_date, end_date)
        return self.db.history.activity_stats_by_actor(user_id, start_date, end_date)

    def get_team_stats(
        self,
        team_id: int,
        actor: Dict[str, Any],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ):
        """Change counts for a team grouped by field, day and actor (members and admins)."""
        if not self.db.teams.exists(team_id):
            raise TeamNotFoundError(team_id)
        permissions.require_team_membership(actor, team_id, self.db.teams.is_member)
        start_date, end_date = _date_range(start_date, end_date)
        return self.db.history.activity_stats_by_team(team_id, start_date, end_date)

    def purge(self, days: Optional[int] = None, actor: Optional[Dict[str, Any]] = None) -> int:
        """
        Delete history older than ``days`` (default HISTORY_RETENTION_DAYS, 365).

        Args:
            days: Retention window in days
            actor: Caller; must be an admin when given. Maintenance jobs pass None.

        Returns:
            Number of entries deleted
        """
        if actor is not None:
            permissions.require_admin(actor)
        days = DEFAULT_RETENTION_DAYS if days is None else days
        if days < 0:
            raise ValidationError("days must not be negative", field="days", value=days)
        cutoff = utc_timestamp(datetime.now(timezone.utc) - timedelta(days=days))
        deleted = self.db.history.purge_older_than(cutoff)
        logger.info(f"History retention purge removed {deleted} entries (older than {days} days)")
        return deleted
