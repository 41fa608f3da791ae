"""
Repository for the task history ledger.

The ledger is append-only: there is no update and no per-entry delete.
Entries are removed only by purge_older_than().
"""
import logging
from typing import Optional, List, Dict, Any

from teamtasks.storage.base import BaseRepository, utc_timestamp

logger = logging.getLogger(__name__)

# LEFT JOINs keep entries whose task or actor has since been deleted
HISTORY_SELECT = """
    SELECT h.id, h.task_id, h.user_id, h.field_changed, h.old_value, h.new_value,
           h.change_reason, h.changed_at,
           u.name AS user_name, u.email AS user_email,
           t.title AS task_title, t.team_id
    FROM task_history h
    LEFT JOIN users u ON u.id = h.user_id
    LEFT JOIN tasks t ON t.id = h.task_id
"""

HISTORY_ORDER = " ORDER BY h.changed_at DESC, h.id DESC"


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class HistoryRepository(BaseRepository):
    """Repository for history entries."""

    def append(
        self,
        task_id: int,
        user_id: int,
        field_changed: str,
        old_value: Any = None,
        new_value: Any = None,
        change_reason: Optional[str] = None,
        conn=None
    ) -> int:
        """Append one entry. Values are stored as text."""
        with self._cursor(conn) as cursor:
            entry_id = self._execute_insert(cursor, """
                INSERT INTO task_history (task_id, user_id, field_changed, old_value, new_value,
                                          change_reason, changed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (task_id, user_id, field_changed, _as_text(old_value), _as_text(new_value),
                  change_reason, utc_timestamp()))
        logger.debug(f"History entry {entry_id}: task {task_id} {field_changed} by user {user_id}")
        return entry_id

    def get_by_task(self, task_id: int, limit: int = 50, offset: int = 0, conn=None) -> List[Dict[str, Any]]:
        return self._fetch_all(
            HISTORY_SELECT + " WHERE h.task_id = ?" + HISTORY_ORDER + " LIMIT ? OFFSET ?",
            (task_id, limit, offset), conn=conn
        )

    def count_by_task(self, task_id: int) -> int:
        return self._fetch_count(
            "SELECT COUNT(*) AS count FROM task_history WHERE task_id = ?", (task_id,)
        )

    def get_by_actor(self, user_id: int, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        return self._fetch_all(
            HISTORY_SELECT + " WHERE h.user_id = ?" + HISTORY_ORDER + " LIMIT ? OFFSET ?",
            (user_id, limit, offset)
        )

    def get_by_field(self, field_changed: str, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        return self._fetch_all(
            HISTORY_SELECT + " WHERE h.field_changed = ?" + HISTORY_ORDER + " LIMIT ? OFFSET ?",
            (field_changed, limit, offset)
        )

    def get_by_team(self, team_id: int, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        """Entries of tasks currently in the team (joined through the task)."""
        return self._fetch_all(
            HISTORY_SELECT + " WHERE t.team_id = ?" + HISTORY_ORDER + " LIMIT ? OFFSET ?",
            (team_id, limit, offset)
        )

    def recent(self, limit: int = 50, member_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Latest entries across tasks, with team names.

        Args:
            limit: Maximum rows
            member_id: Restrict to tasks of teams this user belongs to
        """
        query = """
            SELECT h.id, h.task_id, h.user_id, h.field_changed, h.old_value, h.new_value,
                   h.change_reason, h.changed_at,
                   u.name AS user_name, t.title AS task_title, t.team_id, tm.name AS team_name
            FROM task_history h
            LEFT JOIN users u ON u.id = h.user_id
            LEFT JOIN tasks t ON t.id = h.task_id
            LEFT JOIN teams tm ON tm.id = t.team_id
        """
        params: tuple = ()
        if member_id is not None:
            query += " WHERE t.team_id IN (SELECT team_id FROM team_members WHERE user_id = ?)"
            params = (member_id,)
        return self._fetch_all(query + HISTORY_ORDER + " LIMIT ?", params + (limit,))

    def _date_bounds(self, start_date: Optional[str], end_date: Optional[str]):
        clauses = []
        params: list = []
        if start_date:
            clauses.append("h.changed_at >= ?")
            params.append(start_date)
        if end_date:
            clauses.append("h.changed_at <= ?")
            params.append(end_date)
        return clauses, params

    def activity_stats_by_actor(
        self,
        user_id: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Change counts of one actor grouped by field and day."""
        clauses, params = self._date_bounds(start_date, end_date)
        where = " AND ".join(["h.user_id = ?"] + clauses)
        return self._fetch_all(f"""
            SELECT h.field_changed, DATE(h.changed_at) AS change_date, COUNT(*) AS change_count
            FROM task_history h
            WHERE {where}
            GROUP BY h.field_changed, DATE(h.changed_at)
            ORDER BY change_date DESC, change_count DESC
        """, tuple([user_id] + params))

    def activity_stats_by_team(
        self,
        team_id: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Change counts for a team's tasks grouped by field, day and actor."""
        clauses, params = self._date_bounds(start_date, end_date)
        where = " AND ".join(["t.team_id = ?"] + clauses)
        return self._fetch_all(f"""
            SELECT h.field_changed, DATE(h.changed_at) AS change_date,
                   h.user_id, u.name AS user_name, COUNT(*) AS change_count
            FROM task_history h
            JOIN tasks t ON t.id = h.task_id
            LEFT JOIN users u ON u.id = h.user_id
            WHERE {where}
            GROUP BY h.field_changed, DATE(h.changed_at), h.user_id, u.name
            ORDER BY change_date DESC, change_count DESC
        """, tuple([team_id] + params))

    def purge_older_than(self, cutoff: str) -> int:
        """
        Delete entries recorded before the cutoff timestamp.

        Args:
            cutoff: UTC timestamp string ('YYYY-MM-DD HH:MM:SS')

        Returns:
            Number of entries deleted
        """
        deleted = self._execute("DELETE FROM task_history WHERE changed_at < ?", (cutoff,))
        logger.info(f"Purged {deleted} history entries older than {cutoff}")
        return deleted
