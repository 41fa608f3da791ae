"""
Access policy for users, teams and tasks.

Every role check in the service goes through this module. The predicates
are pure functions over plain dicts:

    actor = {"id": 3, "role": "member"}
    task  = {"id": 9, "team_id": 2, "assigned_to": 3, "created_by": 1, ...}

The require_* helpers raise ForbiddenError (or ValidationError for the
assignee rule) instead of returning a boolean.
"""
import logging
from typing import Any, Callable, Dict, Optional

from teamtasks.exceptions import ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_ADMIN, ROLE_MEMBER)


def is_admin(actor: Optional[Dict[str, Any]]) -> bool:
    return bool(actor) and actor.get("role") == ROLE_ADMIN


def _is_assignee(actor: Dict[str, Any], task: Dict[str, Any]) -> bool:
    return task.get("assigned_to") is not None and task.get("assigned_to") == actor.get("id")


def _is_creator(actor: Dict[str, Any], task: Dict[str, Any]) -> bool:
    return task.get("created_by") == actor.get("id")


def can_view_task(actor: Dict[str, Any], task: Dict[str, Any], is_team_member: bool) -> bool:
    """Admin, member of the task's team, assignee or creator."""
    return is_admin(actor) or is_team_member or _is_assignee(actor, task) or _is_creator(actor, task)


def can_edit_task(actor: Dict[str, Any], task: Dict[str, Any]) -> bool:
    """
    Admin, assignee or creator.

    Governs update, reassignment and status changes alike. Team membership
    alone does not grant edit rights.
    """
    return is_admin(actor) or _is_assignee(actor, task) or _is_creator(actor, task)


def can_delete_task(actor: Dict[str, Any], task: Dict[str, Any]) -> bool:
    """Admin or creator. Narrower than can_edit_task: the assignee may not delete."""
    return is_admin(actor) or _is_creator(actor, task)


def can_manage_team(actor: Dict[str, Any]) -> bool:
    """Creating, editing and deleting teams and managing members is admin-only."""
    return is_admin(actor)


def can_view_user(actor: Dict[str, Any], user_id: int) -> bool:
    return is_admin(actor) or actor.get("id") == user_id


def require(condition: bool, message: str = "Access denied") -> None:
    """Raise ForbiddenError unless condition holds."""
    if not condition:
        raise ForbiddenError(message)


def require_admin(actor: Dict[str, Any], message: str = "Admin privileges required") -> None:
    require(is_admin(actor), message)


def require_team_membership(
    actor: Dict[str, Any],
    team_id: int,
    is_member: Callable[[int, int], bool],
    message: str = "You are not a member of this team"
) -> None:
    """
    Admins bypass; everyone else must belong to the team.

    Args:
        actor: Authenticated user
        team_id: Team to check
        is_member: Membership lookup taking (team_id, user_id)
    """
    if is_admin(actor):
        return
    if not is_member(team_id, actor["id"]):
        logger.info(f"User {actor['id']} denied: not a member of team {team_id}")
        raise ForbiddenError(message, context={"team_id": team_id})


def check_assignee_membership(actor: Dict[str, Any], assignee_is_member: bool) -> None:
    """
    A non-admin may only assign tasks to current members of the task's team.
    Admins may assign any existing user.
    """
    if is_admin(actor):
        return
    if not assignee_is_member:
        raise ValidationError("Assigned user must be a team member", field="assigned_to")


def check_role_assignment(actor: Optional[Dict[str, Any]], requested_role: Optional[str]) -> None:
    """Only an authenticated admin may create an admin account or grant the admin role."""
    if requested_role == ROLE_ADMIN and not is_admin(actor):
        raise ForbiddenError("Only administrators can create or promote administrators")
