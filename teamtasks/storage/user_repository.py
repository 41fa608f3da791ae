"""
Repository for user accounts.
"""
import logging
from typing import Optional, List, Dict, Any

from teamtasks.exceptions import DuplicateError
from teamtasks.storage.base import BaseRepository, utc_timestamp

logger = logging.getLogger(__name__)

PUBLIC_USER_COLUMNS = "id, name, email, role, created_at, updated_at"


class UserRepository(BaseRepository):
    """Repository for user operations."""

    def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = "member",
        conn=None
    ) -> int:
        """
        Create a user and return its ID.

        The email must already be normalized; uniqueness is enforced by the schema.
        """
        now = utc_timestamp()
        with self._cursor(conn) as cursor:
            try:
                user_id = self._execute_insert(cursor, """
                    INSERT INTO users (name, email, password_hash, role, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (name, email, password_hash, role, now, now))
            except self.adapter.integrity_error as e:
                raise DuplicateError("User", "email", email) from e
        logger.info(f"Created user {user_id} ({role})")
        return user_id

    def get_by_id(self, user_id: int, conn=None) -> Optional[Dict[str, Any]]:
        """Get a user by ID (without the password hash)."""
        return self._fetch_one(
            f"SELECT {PUBLIC_USER_COLUMNS} FROM users WHERE id = ?",
            (user_id,), conn=conn
        )

    def get_by_email(self, email: str, include_password: bool = False, conn=None) -> Optional[Dict[str, Any]]:
        """Get a user by normalized email, optionally including the password hash."""
        columns = PUBLIC_USER_COLUMNS + (", password_hash" if include_password else "")
        return self._fetch_one(
            f"SELECT {columns} FROM users WHERE email = ?",
            (email,), conn=conn
        )

    def list(
        self,
        role: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """List users ordered by name, optionally filtered by role."""
        query = f"SELECT {PUBLIC_USER_COLUMNS} FROM users"
        params: list = []
        if role:
            query += " WHERE role = ?"
            params.append(role)
        query += " ORDER BY name LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        return self._fetch_all(query, tuple(params))

    def count(self, role: Optional[str] = None) -> int:
        """Count users, optionally filtered by role."""
        if role:
            return self._fetch_count("SELECT COUNT(*) AS count FROM users WHERE role = ?", (role,))
        return self._fetch_count("SELECT COUNT(*) AS count FROM users")

    def update(self, user_id: int, fields: Dict[str, Any], conn=None) -> bool:
        """
        Update the given columns of a user.

        Args:
            user_id: User ID
            fields: Column -> value mapping (name, email, password_hash, role)

        Returns:
            True if a row was updated
        """
        allowed = {"name", "email", "password_hash", "role"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update user columns: {', '.join(sorted(unknown))}")
        if not fields:
            return False

        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = tuple(fields.values()) + (utc_timestamp(), user_id)
        try:
            updated = self._execute(
                f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                params, conn=conn
            )
        except self.adapter.integrity_error as e:
            raise DuplicateError("User", "email", fields.get("email")) from e
        if updated:
            logger.info(f"Updated user {user_id}: {', '.join(fields)}")
        return updated > 0

    def delete(self, user_id: int, conn=None) -> bool:
        """Delete a user. Memberships and sessions cascade; assignments are cleared."""
        deleted = self._execute("DELETE FROM users WHERE id = ?", (user_id,), conn=conn)
        if deleted:
            logger.info(f"Deleted user {user_id}")
        return deleted > 0

    def count_created_tasks(self, user_id: int, conn=None) -> int:
        """Number of tasks the user created."""
        return self._fetch_count(
            "SELECT COUNT(*) AS count FROM tasks WHERE created_by = ?",
            (user_id,), conn=conn
        )
