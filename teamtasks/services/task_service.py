"""
Task service - business logic for task operations.

Every mutation runs in one transaction together with the history entries
it produces, with the task row locked for the duration:

- create appends exactly one 'created' entry
- update appends one entry per field whose value actually changed
- assign_to and change_status always append an entry, even when the
  value is unchanged
"""
import logging
from typing import Optional, Dict, Any

from teamtasks.auth import permissions
from teamtasks.database import TaskDatabase, TaskStatus, TaskPriority
from teamtasks.exceptions import (
    TaskNotFoundError,
    TeamNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from teamtasks.monitoring import task_mutations_total, history_entries_total
from teamtasks.services import task_lifecycle as lifecycle
from teamtasks.services.history_service import with_formatted_change

logger = logging.getLogger(__name__)

TASK_HISTORY_PREVIEW = 50


def present_task(task: Dict[str, Any]) -> Dict[str, Any]:
    """Attach derived due-date fields to a task row."""
    task["is_overdue"] = lifecycle.is_overdue(task)
    task["days_remaining"] = lifecycle.days_remaining(task)
    return task


class TaskService:
    """Service for task business logic."""

    def __init__(self, db: TaskDatabase):
        self.db = db

    # Helpers

    def _lock_task(self, task_id: int, conn) -> Dict[str, Any]:
        task = self.db.tasks.get_by_id(task_id, conn=conn, for_update=True)
        if not task:
            raise TaskNotFoundError(task_id)
        return task

    def _check_assignee(self, actor: Dict[str, Any], team_id: int, user_id: int, conn) -> None:
        if not self.db.users.get_by_id(user_id, conn=conn):
            raise UserNotFoundError(user_id)
        permissions.check_assignee_membership(
            actor, self.db.teams.is_member(team_id, user_id, conn=conn)
        )

    def _record(self, conn, task_id: int, actor: Dict[str, Any], field: str,
                old_value: Any, new_value: Any, reason: str) -> None:
        self.db.history.append(task_id, actor["id"], field, old_value, new_value, reason, conn=conn)
        history_entries_total.labels(field=field).inc()

    def _validate_updates(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(updates) - set(lifecycle.MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        validated: Dict[str, Any] = {}
        for field, value in updates.items():
            if field == "title":
                validated[field] = lifecycle.validate_title(value)
            elif field == "status":
                validated[field] = lifecycle.validate_status(value)
            elif field == "priority":
                validated[field] = lifecycle.validate_priority(value)
            elif field == "description":
                validated[field] = lifecycle.normalize_description(value)
            elif field == "due_date":
                validated[field] = lifecycle.parse_due_date(value)
            else:
                validated[field] = value
        return validated

    # Operations

    def create_task(self, data: Dict[str, Any], actor: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a task and its 'created' history entry.

        Args:
            data: title, team_id and optionally description, status, priority,
                assigned_to, due_date
            actor: Authenticated user

        Returns:
            The stored task with derived fields

        Raises:
            ValidationError: Bad title, status, priority or due date, missing team,
                or (non-admin) assignee outside the team
            TeamNotFoundError / UserNotFoundError: Unknown team or assignee
            ForbiddenError: Non-admin creating a task in a team they are not in
        """
        title = lifecycle.validate_title(data.get("title"))
        team_id = data.get("team_id")
        if team_id is None:
            raise ValidationError("Team is required", field="team_id")
        status = lifecycle.validate_status(data.get("status") or TaskStatus.PENDING.value)
        priority = lifecycle.validate_priority(data.get("priority") or TaskPriority.MEDIUM.value)
        due_date = lifecycle.parse_due_date(data.get("due_date"))
        assigned_to = data.get("assigned_to")

        with self.db.transaction() as conn:
            if not self.db.teams.exists(team_id, conn=conn):
                raise TeamNotFoundError(team_id)
            permissions.require_team_membership(
                actor, team_id,
                lambda t, u: self.db.teams.is_member(t, u, conn=conn),
                "You must be a member of the team to create tasks in it"
            )
            if assigned_to is not None:
                self._check_assignee(actor, team_id, assigned_to, conn)

            task_id = self.db.tasks.create(
                title=title,
                team_id=team_id,
                created_by=actor["id"],
                description=lifecycle.normalize_description(data.get("description")),
                status=status,
                priority=priority,
                assigned_to=assigned_to,
                due_date=due_date,
                conn=conn,
            )
            self._record(conn, task_id, actor, lifecycle.CREATED_FIELD,
                         None, lifecycle.CREATED_VALUE, lifecycle.CREATED_REASON)
            task = self.db.tasks.get_by_id(task_id, conn=conn)

        task_mutations_total.labels(operation="create").inc()
        logger.info(f"Task {task_id} created by user {actor['id']}",
                    extra={"task_id": task_id, "team_id": team_id})
        return present_task(task)

    def get_task(self, task_id: int, actor: Dict[str, Any]) -> Dict[str, Any]:
        """Task with its latest history, edit permission and due-date fields."""
        task = self.db.tasks.get_by_id(task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        is_member = self.db.teams.is_member(task["team_id"], actor["id"])
        permissions.require(permissions.can_view_task(actor, task, is_member))
        present_task(task)
        task["can_edit"] = permissions.can_edit_task(actor, task)
        task["history"] = with_formatted_change(
            self.db.history.get_by_task(task_id, limit=TASK_HISTORY_PREVIEW)
        )
        return task

    def list_tasks(
        self,
        actor: Dict[str, Any],
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        List tasks visible to the actor.

        Admins see everything; members see tasks of their teams plus tasks
        assigned to or created by them.
        """
        filters = {key: value for key, value in (filters or {}).items() if value is not None}
        if "status" in filters:
            lifecycle.validate_status(filters["status"])
        if "priority" in filters:
            lifecycle.validate_priority(filters["priority"])
        visible_to = None if permissions.is_admin(actor) else actor["id"]
        tasks = self.db.tasks.list(filters, visible_to_user=visible_to, limit=limit, offset=offset)
        return {
            "tasks": [present_task(task) for task in tasks],
            "total": self.db.tasks.count(filters, visible_to_user=visible_to),
            "limit": limit,
            "offset": offset,
        }

    def update_task(self, task_id: int, updates: Dict[str, Any], actor: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update.

        Only fields present in ``updates`` are considered. Each field whose
        value differs from the stored one is written and gets one history
        entry; if nothing differs the task is returned untouched.

        Raises:
            ValidationError: Empty update, bad values, or assignee outside the team
            TaskNotFoundError: Unknown task
            ForbiddenError: Actor is not admin, assignee or creator
        """
        if not updates:
            raise ValidationError("Provide at least one field to update")
        validated = self._validate_updates(updates)

        with self.db.transaction() as conn:
            task = self._lock_task(task_id, conn)
            permissions.require(permissions.can_edit_task(actor, task),
                                "You do not have permission to edit this task")
            if validated.get("assigned_to") is not None:
                self._check_assignee(actor, task["team_id"], validated["assigned_to"], conn)

            changes = lifecycle.compute_changes(task, validated)
            if not changes:
                logger.debug(f"Update of task {task_id} changed nothing")
                return present_task(task)

            self.db.tasks.update_fields(
                task_id, {field: new_value for field, _, new_value in changes}, conn=conn
            )
            for field, old_value, new_value in changes:
                self._record(conn, task_id, actor, field, old_value, new_value,
                             lifecycle.field_update_reason(field))
            task = self.db.tasks.get_by_id(task_id, conn=conn)

        task_mutations_total.labels(operation="update").inc()
        logger.info(f"Task {task_id} updated by user {actor['id']}: {', '.join(f for f, _, _ in changes)}",
                    extra={"task_id": task_id})
        return present_task(task)

    def assign_task(self, task_id: int, user_id: int, actor: Dict[str, Any]) -> Dict[str, Any]:
        """Reassign a task. Always records an 'assigned_to' entry."""
        with self.db.transaction() as conn:
            task = self._lock_task(task_id, conn)
            permissions.require(permissions.can_edit_task(actor, task),
                                "You do not have permission to assign this task")
            self._check_assignee(actor, task["team_id"], user_id, conn)
            self.db.tasks.update_fields(task_id, {"assigned_to": user_id}, conn=conn)
            self._record(conn, task_id, actor, "assigned_to", task["assigned_to"], user_id,
                         lifecycle.REASSIGNED_REASON)
            task = self.db.tasks.get_by_id(task_id, conn=conn)

        task_mutations_total.labels(operation="assign").inc()
        logger.info(f"Task {task_id} assigned to user {user_id} by user {actor['id']}",
                    extra={"task_id": task_id})
        return present_task(task)

    def change_status(
        self,
        task_id: int,
        new_status: str,
        actor: Dict[str, Any],
        reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """Set the status. Always records a 'status' entry; the reason defaults to the transition."""
        new_status = lifecycle.validate_status(new_status)
        with self.db.transaction() as conn:
            task = self._lock_task(task_id, conn)
            permissions.require(permissions.can_edit_task(actor, task),
                                "You do not have permission to change the status of this task")
            old_status = task["status"]
            self.db.tasks.update_fields(task_id, {"status": new_status}, conn=conn)
            self._record(conn, task_id, actor, "status", old_status, new_status,
                         reason or lifecycle.status_change_reason(old_status, new_status))
            task = self.db.tasks.get_by_id(task_id, conn=conn)

        task_mutations_total.labels(operation="status").inc()
        logger.info(f"Task {task_id} status {old_status} -> {new_status} by user {actor['id']}",
                    extra={"task_id": task_id})
        return present_task(task)

    def delete_task(self, task_id: int, actor: Dict[str, Any]) -> None:
        """Delete a task (admin or creator). Its history is kept."""
        with self.db.transaction() as conn:
            task = self._lock_task(task_id, conn)
            permissions.require(permissions.can_delete_task(actor, task),
                                "Only the creator or an administrator can delete this task")
            self.db.tasks.delete(task_id, conn=conn)

        task_mutations_total.labels(operation="delete").inc()
        logger.info(f"Task {task_id} deleted by user {actor['id']}", extra={"task_id": task_id})
