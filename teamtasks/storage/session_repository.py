"""
Repository for login sessions (opaque bearer tokens).
"""
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple

from teamtasks.storage.base import BaseRepository, utc_timestamp

logger = logging.getLogger(__name__)


class SessionRepository(BaseRepository):
    """Repository for session tokens."""

    @staticmethod
    def _generate_session_token() -> str:
        """Generate a secure random session token."""
        return secrets.token_urlsafe(32)

    def create(self, user_id: int, expires_hours: int = 168) -> Tuple[str, datetime]:
        """
        Create a new session for a user.

        Args:
            user_id: User ID
            expires_hours: Hours until the session expires (default 7 days)

        Returns:
            Tuple of (session_token, expires_at datetime in UTC)
        """
        session_token = self._generate_session_token()
        expires_at = datetime.now(timezone.utc) + timedelta(hours=expires_hours)

        with self._cursor() as cursor:
            self._execute_insert(cursor, """
                INSERT INTO user_sessions (user_id, session_token, expires_at, created_at)
                VALUES (?, ?, ?, ?)
            """, (user_id, session_token, utc_timestamp(expires_at), utc_timestamp()))
        logger.info(f"Created session for user {user_id}")
        return session_token, expires_at

    def get_valid(self, session_token: str) -> Optional[Dict[str, Any]]:
        """Get an unexpired session by token and record its use."""
        now = utc_timestamp()
        with self._cursor() as cursor:
            self._execute_with_logging(cursor, """
                SELECT id, user_id, session_token, expires_at, created_at, last_used_at
                FROM user_sessions
                WHERE session_token = ? AND expires_at > ?
            """, (session_token, now))
            row = cursor.fetchone()
            if not row:
                return None
            session = dict(row)
            self._execute_with_logging(
                cursor,
                "UPDATE user_sessions SET last_used_at = ? WHERE id = ?",
                (now, session["id"])
            )
        return session

    def delete(self, session_token: str) -> bool:
        """Delete a session (logout)."""
        return self._execute(
            "DELETE FROM user_sessions WHERE session_token = ?", (session_token,)
        ) > 0

    def clean_expired(self) -> int:
        """Delete expired sessions. Returns number of deleted sessions."""
        deleted = self._execute(
            "DELETE FROM user_sessions WHERE expires_at <= ?", (utc_timestamp(),)
        )
        if deleted > 0:
            logger.info(f"Cleaned up {deleted} expired sessions")
        return deleted
