"""
Storage layer - repositories for users, teams, tasks, history and sessions.
"""
from teamtasks.storage.user_repository import UserRepository
from teamtasks.storage.team_repository import TeamRepository
from teamtasks.storage.task_repository import TaskRepository
from teamtasks.storage.history_repository import HistoryRepository
from teamtasks.storage.session_repository import SessionRepository

__all__ = [
    "UserRepository",
    "TeamRepository",
    "TaskRepository",
    "HistoryRepository",
    "SessionRepository",
]
