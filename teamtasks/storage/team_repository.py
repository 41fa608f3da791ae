"""
Repository for teams and team membership.

Membership primitives here are unconditional; business rules such as
"members with open tasks cannot be removed" live in TeamService.
"""
import logging
from typing import Optional, List, Dict, Any

from teamtasks.exceptions import DuplicateError
from teamtasks.storage.base import BaseRepository, utc_timestamp

logger = logging.getLogger(__name__)

TEAM_COLUMNS = """
    t.id, t.name, t.description, t.created_by, t.created_at, t.updated_at,
    u.name AS created_by_name,
    (SELECT COUNT(*) FROM team_members tm WHERE tm.team_id = t.id) AS member_count
"""


class TeamRepository(BaseRepository):
    """Repository for team operations."""

    def create(
        self,
        name: str,
        description: Optional[str],
        created_by: int,
        conn=None
    ) -> int:
        """
        Create a team and add its creator as the first member.

        Pass a transaction connection to make both inserts atomic.
        """
        now = utc_timestamp()
        with self._cursor(conn) as cursor:
            team_id = self._execute_insert(cursor, """
                INSERT INTO teams (name, description, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
            """, (name, description, created_by, now, now))
            self._execute_insert(cursor, """
                INSERT INTO team_members (team_id, user_id, joined_at)
                VALUES (?, ?, ?)
            """, (team_id, created_by, now))
        logger.info(f"Created team {team_id}: {name} (creator {created_by})")
        return team_id

    def get_by_id(self, team_id: int, conn=None) -> Optional[Dict[str, Any]]:
        return self._fetch_one(f"""
            SELECT {TEAM_COLUMNS}
            FROM teams t
            LEFT JOIN users u ON u.id = t.created_by
            WHERE t.id = ?
        """, (team_id,), conn=conn)

    def exists(self, team_id: int, conn=None) -> bool:
        row = self._fetch_one("SELECT id FROM teams WHERE id = ?", (team_id,), conn=conn)
        return row is not None

    def list(self, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        """List all teams, newest first."""
        return self._fetch_all(f"""
            SELECT {TEAM_COLUMNS}
            FROM teams t
            LEFT JOIN users u ON u.id = t.created_by
            ORDER BY t.created_at DESC, t.id DESC
            LIMIT ? OFFSET ?
        """, (limit, offset))

    def count(self) -> int:
        return self._fetch_count("SELECT COUNT(*) AS count FROM teams")

    def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """Teams the user belongs to, with the membership's join date."""
        return self._fetch_all(f"""
            SELECT {TEAM_COLUMNS}, m.joined_at
            FROM teams t
            JOIN team_members m ON m.team_id = t.id
            LEFT JOIN users u ON u.id = t.created_by
            WHERE m.user_id = ?
            ORDER BY t.name
        """, (user_id,))

    def update(self, team_id: int, fields: Dict[str, Any], conn=None) -> bool:
        """Update name and/or description."""
        unknown = set(fields) - {"name", "description"}
        if unknown:
            raise ValueError(f"Cannot update team columns: {', '.join(sorted(unknown))}")
        if not fields:
            return False
        assignments = ", ".join(f"{column} = ?" for column in fields)
        updated = self._execute(
            f"UPDATE teams SET {assignments}, updated_at = ? WHERE id = ?",
            tuple(fields.values()) + (utc_timestamp(), team_id), conn=conn
        )
        if updated:
            logger.info(f"Updated team {team_id}: {', '.join(fields)}")
        return updated > 0

    def delete(self, team_id: int, conn=None) -> bool:
        """Delete a team. Memberships and tasks cascade."""
        deleted = self._execute("DELETE FROM teams WHERE id = ?", (team_id,), conn=conn)
        if deleted:
            logger.info(f"Deleted team {team_id}")
        return deleted > 0

    def count_unfinished_tasks(self, team_id: int, conn=None) -> int:
        return self._fetch_count(
            "SELECT COUNT(*) AS count FROM tasks WHERE team_id = ? AND status != 'completed'",
            (team_id,), conn=conn
        )

    # Membership

    def is_member(self, team_id: int, user_id: int, conn=None) -> bool:
        """Pure existence check on the (team, user) pair."""
        row = self._fetch_one(
            "SELECT id FROM team_members WHERE team_id = ? AND user_id = ?",
            (team_id, user_id), conn=conn
        )
        return row is not None

    def add_member(self, team_id: int, user_id: int, conn=None) -> int:
        """
        Add a user to a team.

        Raises:
            DuplicateError: If the user is already a member
        """
        with self._cursor(conn) as cursor:
            self._execute_with_logging(
                cursor,
                "SELECT id FROM team_members WHERE team_id = ? AND user_id = ?",
                (team_id, user_id)
            )
            if cursor.fetchone():
                raise DuplicateError("Team member", "user_id", user_id,
                                     message="User is already a member of this team")
            try:
                membership_id = self._execute_insert(cursor, """
                    INSERT INTO team_members (team_id, user_id, joined_at)
                    VALUES (?, ?, ?)
                """, (team_id, user_id, utc_timestamp()))
            except self.adapter.integrity_error as e:
                raise DuplicateError("Team member", "user_id", user_id,
                                     message="User is already a member of this team") from e
        logger.info(f"Added user {user_id} to team {team_id}")
        return membership_id

    def remove_member(self, team_id: int, user_id: int, conn=None) -> bool:
        """Remove a membership unconditionally. Returns False if there was none."""
        removed = self._execute(
            "DELETE FROM team_members WHERE team_id = ? AND user_id = ?",
            (team_id, user_id), conn=conn
        )
        if removed:
            logger.info(f"Removed user {user_id} from team {team_id}")
        return removed > 0

    def list_members(self, team_id: int, conn=None) -> List[Dict[str, Any]]:
        return self._fetch_all("""
            SELECT u.id, u.name, u.email, u.role, m.joined_at
            FROM team_members m
            JOIN users u ON u.id = m.user_id
            WHERE m.team_id = ?
            ORDER BY m.joined_at, u.id
        """, (team_id,), conn=conn)

    def count_unfinished_tasks_for_member(self, team_id: int, user_id: int, conn=None) -> int:
        return self._fetch_count("""
            SELECT COUNT(*) AS count FROM tasks
            WHERE team_id = ? AND assigned_to = ? AND status != 'completed'
        """, (team_id, user_id), conn=conn)

    def stats(self, team_id: int) -> Dict[str, int]:
        """Task counts by status plus member activity for one team."""
        row = self._fetch_one("""
            SELECT
                COUNT(*) AS total_tasks,
                COALESCE(SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END), 0) AS pending_tasks,
                COALESCE(SUM(CASE WHEN status = 'in_progress' THEN 1 ELSE 0 END), 0) AS in_progress_tasks,
                COALESCE(SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END), 0) AS completed_tasks,
                COUNT(DISTINCT assigned_to) AS active_members
            FROM tasks
            WHERE team_id = ?
        """, (team_id,))
        stats = {key: int(value or 0) for key, value in (row or {}).items()}
        stats["total_members"] = self._fetch_count(
            "SELECT COUNT(*) AS count FROM team_members WHERE team_id = ?", (team_id,)
        )
        return stats
