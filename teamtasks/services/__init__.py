"""
Service layer - business logic independent of the HTTP framework.
"""
from teamtasks.services.auth_service import AuthService
from teamtasks.services.history_service import HistoryService
from teamtasks.services.task_service import TaskService
from teamtasks.services.team_service import TeamService
from teamtasks.services.user_service import UserService

__all__ = [
    "AuthService",
    "HistoryService",
    "TaskService",
    "TeamService",
    "UserService",
]
