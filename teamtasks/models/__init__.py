"""
Pydantic request models.
"""
from teamtasks.models.user_models import RegisterRequest, LoginRequest, ProfileUpdate, UserUpdate
from teamtasks.models.team_models import TeamCreate, TeamUpdate, AddTeamMemberRequest
from teamtasks.models.task_models import TaskCreate, TaskUpdate, AssignTaskRequest, StatusChangeRequest

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "ProfileUpdate",
    "UserUpdate",
    "TeamCreate",
    "TeamUpdate",
    "AddTeamMemberRequest",
    "TaskCreate",
    "TaskUpdate",
    "AssignTaskRequest",
    "StatusChangeRequest",
]
