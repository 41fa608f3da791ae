"""
Team service - business logic for teams and membership.
"""
import logging
from typing import Optional, Dict, Any, List

from teamtasks.auth import permissions
from teamtasks.database import TaskDatabase
from teamtasks.exceptions import (
    ConflictError,
    NotFoundError,
    TeamNotFoundError,
    UserNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TEAM_NAME_MIN_LENGTH = 2
RECENT_TASKS_LIMIT = 5


def validate_team_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if len(name) < TEAM_NAME_MIN_LENGTH:
        raise ValidationError(
            f"Team name must be at least {TEAM_NAME_MIN_LENGTH} characters long", field="name"
        )
    return name


class TeamService:
    """Service for team business logic."""

    def __init__(self, db: TaskDatabase):
        self.db = db

    def _require_team(self, team_id: int, conn=None) -> Dict[str, Any]:
        team = self.db.teams.get_by_id(team_id, conn=conn)
        if not team:
            raise TeamNotFoundError(team_id)
        return team

    def _require_view(self, team_id: int, actor: Dict[str, Any]) -> Dict[str, Any]:
        team = self._require_team(team_id)
        permissions.require_team_membership(actor, team_id, self.db.teams.is_member)
        return team

    def is_member(self, team_id: int, user_id: int) -> bool:
        return self.db.teams.is_member(team_id, user_id)

    def create_team(
        self,
        name: str,
        description: Optional[str],
        actor: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Create a team (admin only). The creator becomes its first member."""
        permissions.require(permissions.can_manage_team(actor), "Only administrators can create teams")
        name = validate_team_name(name)
        with self.db.transaction() as conn:
            team_id = self.db.teams.create(name, description, actor["id"], conn=conn)
        logger.info(f"Team {team_id} created by {actor['id']}", extra={"team_id": team_id})
        return self._require_team(team_id)

    def get_team(self, team_id: int, actor: Dict[str, Any]) -> Dict[str, Any]:
        """Team with members, task count, recent tasks and stats (members and admins)."""
        team = self._require_view(team_id, actor)
        team["members"] = self.db.teams.list_members(team_id)
        team["tasks_count"] = self.db.tasks.count({"team_id": team_id})
        team["recent_tasks"] = self.db.tasks.list({"team_id": team_id}, limit=RECENT_TASKS_LIMIT)
        team["stats"] = self.db.teams.stats(team_id)
        return team

    def list_teams(self, actor: Dict[str, Any], limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """Admins page through all teams; members get the teams they belong to."""
        if permissions.is_admin(actor):
            return {
                "teams": self.db.teams.list(limit=limit, offset=offset),
                "total": self.db.teams.count(),
                "limit": limit,
                "offset": offset,
            }
        teams = self.db.teams.list_for_user(actor["id"])
        return {"teams": teams, "total": len(teams), "limit": len(teams), "offset": 0}

    def update_team(self, team_id: int, data: Dict[str, Any], actor: Dict[str, Any]) -> Dict[str, Any]:
        """Update name and/or description (admin only)."""
        permissions.require(permissions.can_manage_team(actor), "Only administrators can edit teams")
        self._require_team(team_id)
        fields: Dict[str, Any] = {}
        if data.get("name") is not None:
            fields["name"] = validate_team_name(data["name"])
        if "description" in data:
            fields["description"] = data["description"]
        if not fields:
            raise ValidationError("Provide at least one field to update")
        self.db.teams.update(team_id, fields)
        return self._require_team(team_id)

    def delete_team(self, team_id: int, actor: Dict[str, Any]) -> None:
        """
        Delete a team (admin only).

        Raises:
            ConflictError: The team still has tasks that are not completed
        """
        permissions.require(permissions.can_manage_team(actor), "Only administrators can delete teams")
        with self.db.transaction() as conn:
            self._require_team(team_id, conn=conn)
            unfinished = self.db.teams.count_unfinished_tasks(team_id, conn=conn)
            if unfinished:
                raise ConflictError(
                    f"Team has {unfinished} unfinished task(s) and cannot be deleted",
                    context={"team_id": team_id, "unfinished_tasks": unfinished}
                )
            self.db.teams.delete(team_id, conn=conn)
        logger.info(f"Team {team_id} deleted by {actor['id']}")

    def list_members(self, team_id: int, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._require_view(team_id, actor)
        return self.db.teams.list_members(team_id)

    def add_member(self, team_id: int, user_id: int, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Add a user to a team (admin only) and return the member list.

        Raises:
            TeamNotFoundError / UserNotFoundError: Unknown team or user
            DuplicateError: Already a member
        """
        permissions.require(permissions.can_manage_team(actor), "Only administrators can manage team members")
        with self.db.transaction() as conn:
            self._require_team(team_id, conn=conn)
            if not self.db.users.get_by_id(user_id, conn=conn):
                raise UserNotFoundError(user_id)
            self.db.teams.add_member(team_id, user_id, conn=conn)
        return self.db.teams.list_members(team_id)

    def remove_member(self, team_id: int, user_id: int, actor: Dict[str, Any]) -> None:
        """
        Remove a user from a team (admin only).

        Raises:
            NotFoundError: The user is not a member
            ConflictError: The user still holds unfinished tasks in this team
        """
        permissions.require(permissions.can_manage_team(actor), "Only administrators can manage team members")
        with self.db.transaction() as conn:
            self._require_team(team_id, conn=conn)
            if not self.db.teams.is_member(team_id, user_id, conn=conn):
                raise NotFoundError("Team member", user_id,
                                    message="User is not a member of this team")
            active = self.db.teams.count_unfinished_tasks_for_member(team_id, user_id, conn=conn)
            if active:
                raise ConflictError(
                    f"User has {active} unfinished task(s) in this team and cannot be removed",
                    context={"team_id": team_id, "user_id": user_id, "active_tasks": active}
                )
            self.db.teams.remove_member(team_id, user_id, conn=conn)
        logger.info(f"User {user_id} removed from team {team_id} by {actor['id']}")

    def list_team_tasks(
        self,
        team_id: int,
        actor: Dict[str, Any],
        status: Optional[str] = None,
        assigned_to: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        self._require_view(team_id, actor)
        filters = {"team_id": team_id, "status": status, "assigned_to": assigned_to}
        return {
            "tasks": self.db.tasks.list(filters, limit=limit, offset=offset),
            "total": self.db.tasks.count(filters),
            "limit": limit,
            "offset": offset,
        }

    def get_stats(self, team_id: int, actor: Dict[str, Any]) -> Dict[str, int]:
        self._require_view(team_id, actor)
        return self.db.teams.stats(team_id)
