"""
User service - business logic for accounts and profiles.
"""
import re
import logging
from typing import Optional, Dict, Any

from teamtasks.auth import permissions
from teamtasks.auth.passwords import hash_password
from teamtasks.database import TaskDatabase
from teamtasks.exceptions import (
    ConflictError,
    DuplicateError,
    ForbiddenError,
    UserNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 6
RECENT_TASKS_LIMIT = 5


def normalize_email(email: Optional[str]) -> str:
    """Trim, lower-case and shape-check an email address."""
    email = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address", field="email", value=email)
    return email


def validate_password(password: Optional[str]) -> str:
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long", field="password"
        )
    return password


def validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required", field="name")
    return name


def validate_role(role: Optional[str]) -> str:
    if role not in permissions.ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(permissions.ROLES)}",
            field="role", value=role
        )
    return role


class UserService:
    """Service for user business logic."""

    def __init__(self, db: TaskDatabase):
        self.db = db

    def _require_user(self, user_id: int, conn=None) -> Dict[str, Any]:
        user = self.db.users.get_by_id(user_id, conn=conn)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
        actor: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a user account.

        Args:
            name: Display name
            email: Email address (normalized before storage)
            password: Plain text password (hashed with bcrypt)
            role: 'admin' or 'member' (default member)
            actor: Authenticated caller, if any. Only admins may create admins.

        Raises:
            ValidationError: Bad name, email, password or role
            ForbiddenError: Non-admin asking for the admin role
            DuplicateError: Email already registered
        """
        role = validate_role(role or permissions.ROLE_MEMBER)
        permissions.check_role_assignment(actor, role)
        name = validate_name(name)
        email = normalize_email(email)
        validate_password(password)

        if self.db.users.get_by_email(email):
            raise DuplicateError("User", "email", email)

        user_id = self.db.users.create(name, email, hash_password(password), role)
        logger.info(
            f"User {user_id} registered",
            extra={"user_id": user_id, "role": role, "created_by": actor["id"] if actor else None}
        )
        return self._require_user(user_id)

    def get_user(self, user_id: int, actor: Dict[str, Any]) -> Dict[str, Any]:
        """User with teams, assigned task count and recent assigned tasks (admin or self)."""
        permissions.require(permissions.can_view_user(actor, user_id))
        user = self._require_user(user_id)
        user["teams"] = self.db.teams.list_for_user(user_id)
        user["tasks_count"] = self.db.tasks.count_for_assignee(user_id)
        user["recent_tasks"] = self.db.tasks.list_for_assignee(user_id, limit=RECENT_TASKS_LIMIT)
        return user

    def list_users(
        self,
        actor: Dict[str, Any],
        role: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Paginated user list (admin only)."""
        permissions.require_admin(actor)
        if role is not None:
            validate_role(role)
        return {
            "users": self.db.users.list(role=role, limit=limit, offset=offset),
            "total": self.db.users.count(role=role),
            "limit": limit,
            "offset": offset,
        }

    def _collect_changes(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if data.get("name") is not None:
            fields["name"] = validate_name(data["name"])
        if data.get("email") is not None:
            email = normalize_email(data["email"])
            existing = self.db.users.get_by_email(email)
            if existing and existing["id"] != user_id:
                raise DuplicateError("User", "email", email)
            fields["email"] = email
        if data.get("password") is not None:
            fields["password_hash"] = hash_password(validate_password(data["password"]))
        if data.get("role") is not None:
            fields["role"] = validate_role(data["role"])
        return fields

    def update_user(self, user_id: int, data: Dict[str, Any], actor: Dict[str, Any]) -> Dict[str, Any]:
        """Admin update of any user, including the role."""
        permissions.require_admin(actor)
        self._require_user(user_id)
        fields = self._collect_changes(user_id, data)
        if not fields:
            raise ValidationError("Provide at least one field to update")
        self.db.users.update(user_id, fields)
        return self._require_user(user_id)

    def update_profile(self, actor: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        """Self-service update of name, email and password. Role changes are rejected."""
        if data.get("role") is not None:
            raise ForbiddenError("Role cannot be changed through the profile")
        fields = self._collect_changes(actor["id"], data)
        if not fields:
            raise ValidationError("Provide at least one field to update")
        self.db.users.update(actor["id"], fields)
        return self.get_user(actor["id"], actor)

    def delete_user(self, user_id: int, actor: Dict[str, Any]) -> None:
        """
        Delete a user (admin only).

        Raises:
            ForbiddenError: Deleting your own account
            ConflictError: The user created tasks, which must keep their creator
        """
        permissions.require_admin(actor)
        if actor["id"] == user_id:
            raise ForbiddenError("You cannot delete your own account")
        with self.db.transaction() as conn:
            self._require_user(user_id, conn=conn)
            created = self.db.users.count_created_tasks(user_id, conn=conn)
            if created:
                raise ConflictError(
                    f"User created {created} task(s) and cannot be deleted",
                    context={"user_id": user_id, "created_tasks": created}
                )
            self.db.users.delete(user_id, conn=conn)
        logger.info(f"User {user_id} deleted by {actor['id']}")

    def get_user_tasks(
        self,
        user_id: int,
        actor: Dict[str, Any],
        status: Optional[str] = None,
        team_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ):
        """Tasks assigned to a user (admin or self)."""
        permissions.require(permissions.can_view_user(actor, user_id))
        self._require_user(user_id)
        return self.db.tasks.list_for_assignee(user_id, status=status, team_id=team_id,
                                               limit=limit, offset=offset)

    def get_user_teams(self, user_id: int, actor: Dict[str, Any]):
        """Teams a user belongs to (admin or self)."""
        permissions.require(permissions.can_view_user(actor, user_id))
        self._require_user(user_id)
        return self.db.teams.list_for_user(user_id)
