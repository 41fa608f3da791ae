"""
Authentication service - registration, login and session tokens.
"""
import os
import logging
from typing import Optional, Dict, Any

from teamtasks.auth.passwords import verify_password
from teamtasks.database import TaskDatabase
from teamtasks.exceptions import AuthenticationError
from teamtasks.services.user_service import UserService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Service for authentication business logic."""

    def __init__(self, db: TaskDatabase, session_expires_hours: Optional[int] = None):
        """
        Args:
            db: TaskDatabase instance
            session_expires_hours: Token lifetime; defaults to SESSION_EXPIRES_HOURS (168)
        """
        self.db = db
        self.users = UserService(db)
        if session_expires_hours is None:
            session_expires_hours = int(os.getenv("SESSION_EXPIRES_HOURS", "168"))
        self.session_expires_hours = session_expires_hours

    def _issue_token(self, user: Dict[str, Any]) -> Dict[str, Any]:
        token, expires_at = self.db.sessions.create(user["id"], self.session_expires_hours)
        return {
            "user": user,
            "token": token,
            "token_type": "bearer",
            "expires_at": expires_at.isoformat(),
        }

    def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
        actor: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create an account and log it in. Returns user, token and expiry."""
        user = self.users.create_user(name, email, password, role=role, actor=actor)
        return self._issue_token(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Exchange credentials for a session token.

        Raises:
            AuthenticationError: Unknown email or wrong password (same message for both)
        """
        email = (email or "").strip().lower()
        user = self.db.users.get_by_email(email, include_password=True)
        if not user or not verify_password(password or "", user["password_hash"]):
            logger.info("Failed login attempt", extra={"email": email})
            raise AuthenticationError(INVALID_CREDENTIALS)
        user.pop("password_hash", None)
        logger.info(f"User {user['id']} logged in")
        return self._issue_token(user)

    def authenticate(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Resolve a bearer token to its user.

        Raises:
            AuthenticationError: Missing, unknown or expired token, or deleted user
        """
        if not token:
            raise AuthenticationError("Authentication token required")
        session = self.db.sessions.get_valid(token)
        if not session:
            raise AuthenticationError("Invalid or expired token")
        user = self.db.users.get_by_id(session["user_id"])
        if not user:
            raise AuthenticationError("User no longer exists")
        return user

    def logout(self, token: str) -> bool:
        """Revoke a session token."""
        revoked = self.db.sessions.delete(token)
        if revoked:
            logger.info("Session revoked")
        return revoked
