"""
Repository for tasks.
"""
import logging
from typing import Optional, List, Dict, Any, Tuple

from teamtasks.storage.base import BaseRepository, utc_timestamp

logger = logging.getLogger(__name__)

TASK_SELECT = """
    SELECT t.id, t.title, t.description, t.status, t.priority,
           t.assigned_to, t.team_id, t.created_by, t.due_date,
           t.created_at, t.updated_at,
           a.name AS assigned_to_name,
           c.name AS created_by_name,
           tm.name AS team_name
    FROM tasks t
    LEFT JOIN users a ON a.id = t.assigned_to
    LEFT JOIN users c ON c.id = t.created_by
    LEFT JOIN teams tm ON tm.id = t.team_id
"""

# Columns the task service may write through update_fields()
UPDATABLE_COLUMNS = ("title", "description", "status", "priority", "assigned_to", "due_date")

FILTER_COLUMNS = ("status", "priority", "assigned_to", "team_id", "created_by")


class TaskRepository(BaseRepository):
    """Repository for task operations."""

    def create(
        self,
        title: str,
        team_id: int,
        created_by: int,
        description: Optional[str] = None,
        status: str = "pending",
        priority: str = "medium",
        assigned_to: Optional[int] = None,
        due_date: Optional[str] = None,
        conn=None
    ) -> int:
        """Insert a task and return its ID."""
        now = utc_timestamp()
        with self._cursor(conn) as cursor:
            task_id = self._execute_insert(cursor, """
                INSERT INTO tasks (title, description, status, priority,
                                   assigned_to, team_id, created_by, due_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (title, description, status, priority, assigned_to, team_id, created_by, due_date, now, now))
        logger.info(f"Created task {task_id} in team {team_id}")
        return task_id

    def get_by_id(self, task_id: int, conn=None, for_update: bool = False) -> Optional[Dict[str, Any]]:
        """
        Get a task by ID.

        Args:
            task_id: Task ID
            conn: Optional connection of an open transaction
            for_update: Lock the row until the transaction ends (PostgreSQL).
                SQLite transactions already hold the write lock from BEGIN IMMEDIATE.
        """
        if for_update and self.db_type == "postgresql":
            # FOR UPDATE cannot be combined with the outer joins of TASK_SELECT
            with self._cursor(conn) as cursor:
                self._execute_with_logging(
                    cursor, "SELECT id FROM tasks WHERE id = ? FOR UPDATE", (task_id,)
                )
                if cursor.fetchone() is None:
                    return None
        return self._fetch_one(TASK_SELECT + " WHERE t.id = ?", (task_id,), conn=conn)

    def update_fields(self, task_id: int, fields: Dict[str, Any], conn=None) -> bool:
        """Write the given columns and bump updated_at."""
        unknown = set(fields) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update task columns: {', '.join(sorted(unknown))}")
        if not fields:
            return False
        assignments = ", ".join(f"{column} = ?" for column in fields)
        updated = self._execute(
            f"UPDATE tasks SET {assignments}, updated_at = ? WHERE id = ?",
            tuple(fields.values()) + (utc_timestamp(), task_id), conn=conn
        )
        return updated > 0

    def delete(self, task_id: int, conn=None) -> bool:
        """Delete a task. Its history rows are left in place."""
        deleted = self._execute("DELETE FROM tasks WHERE id = ?", (task_id,), conn=conn)
        if deleted:
            logger.info(f"Deleted task {task_id}")
        return deleted > 0

    def _where(
        self,
        filters: Dict[str, Any],
        visible_to_user: Optional[int]
    ) -> Tuple[str, list]:
        clauses = []
        params: list = []
        for column in FILTER_COLUMNS:
            value = filters.get(column)
            if value is not None:
                clauses.append(f"t.{column} = ?")
                params.append(value)
        if visible_to_user is not None:
            clauses.append("""(
                t.team_id IN (SELECT team_id FROM team_members WHERE user_id = ?)
                OR t.assigned_to = ?
                OR t.created_by = ?
            )""")
            params.extend([visible_to_user] * 3)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params

    def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        visible_to_user: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        List tasks, newest first.

        Args:
            filters: Equality filters on status, priority, assigned_to, team_id, created_by
            visible_to_user: Restrict to tasks of the user's teams, or assigned to
                or created by the user
            limit: Maximum rows
            offset: Rows to skip
        """
        where, params = self._where(filters or {}, visible_to_user)
        return self._fetch_all(
            TASK_SELECT + where + " ORDER BY t.created_at DESC, t.id DESC LIMIT ? OFFSET ?",
            tuple(params) + (limit, offset)
        )

    def count(
        self,
        filters: Optional[Dict[str, Any]] = None,
        visible_to_user: Optional[int] = None
    ) -> int:
        where, params = self._where(filters or {}, visible_to_user)
        return self._fetch_count("SELECT COUNT(*) AS count FROM tasks t" + where, tuple(params))

    def list_for_assignee(
        self,
        user_id: int,
        status: Optional[str] = None,
        team_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """Tasks assigned to a user."""
        filters = {"assigned_to": user_id, "status": status, "team_id": team_id}
        return self.list(filters, limit=limit, offset=offset)

    def count_for_assignee(self, user_id: int) -> int:
        return self.count({"assigned_to": user_id})
