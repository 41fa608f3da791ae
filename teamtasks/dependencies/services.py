"""
Service container for dependency injection.
Centralizes service initialization and provides access to all services.
"""
import os
import logging
from typing import Optional

from teamtasks.database import TaskDatabase
from teamtasks.services import AuthService, HistoryService, TaskService, TeamService, UserService

logger = logging.getLogger(__name__)

# Global service instance
_service_instance: Optional['ServiceContainer'] = None


class ServiceContainer:
    """Container for the database handle and every service built on it."""

    def __init__(self, db: Optional[TaskDatabase] = None):
        """
        Args:
            db: Database to use. When omitted it is built from DB_TYPE and
                TEAMTASKS_DB_PATH (or the DB_HOST/DB_NAME/... PostgreSQL settings).
        """
        if db is None:
            db_type = os.getenv("DB_TYPE", "sqlite").lower()
            db_path = None if db_type == "postgresql" else os.getenv("TEAMTASKS_DB_PATH", "./data/teamtasks.db")
            db = TaskDatabase(db_path, db_type=db_type)
        self.db = db

        self.auth_service = AuthService(db)
        self.user_service = UserService(db)
        self.team_service = TeamService(db)
        self.task_service = TaskService(db)
        self.history_service = HistoryService(db)

        if os.getenv("SEED_DATABASE", "false").lower() == "true":
            from teamtasks.seeds import seed_database
            seed_database(db)


def get_services() -> ServiceContainer:
    """Get the global service container instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ServiceContainer()
        logger.info("Service container initialized")
    return _service_instance


def set_services(container: Optional[ServiceContainer]) -> None:
    """Replace the global container (tests and the CLI use this)."""
    global _service_instance
    _service_instance = container


def get_db() -> TaskDatabase:
    """Get the database instance from the service container."""
    return get_services().db
