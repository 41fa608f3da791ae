"""
Database schema and management for the team task service.
"""
import os
import time
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Optional, Tuple

from opentelemetry import trace

from teamtasks.db_adapter import get_database_adapter
from teamtasks.tracing import trace_span, add_span_attribute
from teamtasks.storage import (
    UserRepository,
    TeamRepository,
    TaskRepository,
    HistoryRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)

# Query performance threshold (seconds) - queries slower than this will be logged
QUERY_SLOW_THRESHOLD = float(os.getenv("DB_QUERY_SLOW_THRESHOLD", "0.1"))
# Enable query logging (can be set via environment variable)
ENABLE_QUERY_LOGGING = os.getenv("DB_ENABLE_QUERY_LOGGING", "true").lower() == "true"


class TaskStatus(Enum):
    """Task status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(Enum):
    """Task priority enumeration."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UserRole(Enum):
    """User role enumeration."""
    ADMIN = "admin"
    MEMBER = "member"


class TaskDatabase:
    """Database for team task management - supports both SQLite and PostgreSQL."""

    def __init__(self, db_path: Optional[str] = None, db_type: Optional[str] = None):
        """
        Initialize database connection and create schema if needed.

        Args:
            db_path: Database path (for SQLite) or connection string (for PostgreSQL).
                     If None, uses environment variables.
            db_type: 'sqlite' or 'postgresql'. Defaults to the DB_TYPE environment variable.
        """
        db_type = (db_type or os.getenv("DB_TYPE", "sqlite")).lower()

        if db_path is None:
            if db_type == "postgresql":
                db_host = os.getenv("DB_HOST", "localhost")
                db_port = os.getenv("DB_PORT", "5432")
                db_name = os.getenv("DB_NAME", "teamtasks")
                db_user = os.getenv("DB_USER", "postgres")
                db_password = os.getenv("DB_PASSWORD", "")

                if db_password:
                    self.db_path = f"host={db_host} port={db_port} dbname={db_name} user={db_user} password={db_password}"
                else:
                    self.db_path = f"host={db_host} port={db_port} dbname={db_name} user={db_user}"
            else:
                self.db_path = os.getenv("TEAMTASKS_DB_PATH", "./data/teamtasks.db")
        else:
            self.db_path = db_path

        self.db_type = db_type
        self.adapter = get_database_adapter(self.db_path, db_type)

        if db_type == "sqlite":
            self._ensure_db_directory()

        self._init_schema()

        repository_args = (
            self.db_type,
            self._get_connection,
            self.adapter,
            self._execute_insert,
            self._execute_with_logging,
        )
        self.users = UserRepository(*repository_args)
        self.teams = TeamRepository(*repository_args)
        self.tasks = TaskRepository(*repository_args)
        self.history = HistoryRepository(*repository_args)
        self.sessions = SessionRepository(*repository_args)

    def _ensure_db_directory(self):
        """Ensure database directory exists (SQLite only)."""
        db_dir = os.path.dirname(os.path.abspath(self.db_path))
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _get_connection(self):
        """Get database connection using adapter."""
        return self.adapter.connect()

    @contextmanager
    def transaction(self):
        """
        Run a unit of work on a single connection.

        Commits when the block exits normally, rolls back on any exception
        and always releases the connection. Repository methods accept the
        yielded connection through their ``conn`` argument.
        """
        conn = self._get_connection()
        try:
            self.adapter.begin(conn)
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.adapter.close(conn)

    def _execute_with_logging(self, cursor, query: str, params: Tuple = None):
        """
        Execute a query with performance logging and tracing.

        Args:
            cursor: Database cursor
            query: SQL query string
            params: Query parameters

        Returns:
            Cursor after execution
        """
        query_type = "unknown"
        query_upper = query.strip().upper()
        for candidate in ("SELECT", "INSERT", "UPDATE", "DELETE", "CREATE"):
            if query_upper.startswith(candidate):
                query_type = candidate.lower()
                break

        # Extract table name if possible (simple heuristic)
        table_name = "unknown"
        for keyword in ["FROM", "INTO", "UPDATE", "EXISTS"]:
            if keyword in query_upper:
                parts = query_upper.split(keyword, 1)
                if len(parts) > 1 and parts[1].split():
                    table_name = parts[1].split()[0].strip().lower()
                    break

        start_time = time.time()
        with trace_span(
            f"db.{query_type}",
            attributes={
                "db.system": self.db_type,
                "db.statement.type": query_type,
                "db.sql.table": table_name,
                "db.operation": query_type,
            },
            kind=trace.SpanKind.CLIENT
        ):
            try:
                result = self.adapter.execute(cursor, query, params)
                duration = time.time() - start_time

                add_span_attribute("db.duration_ms", duration * 1000)

                if ENABLE_QUERY_LOGGING:
                    query_preview = query.strip()[:200]
                    if duration >= QUERY_SLOW_THRESHOLD:
                        logger.warning(
                            f"Slow query: {duration:.4f}s - {query_preview}",
                            extra={"duration": duration, "params_count": len(params) if params else 0}
                        )
                        add_span_attribute("db.slow_query", True)
                    else:
                        logger.debug(f"Query executed in {duration:.4f}s - {query_preview}")

                return result
            except Exception:
                duration = time.time() - start_time
                logger.error(
                    f"Query failed after {duration:.4f}s: {query.strip()[:200]}",
                    exc_info=True
                )
                raise

    def _normalize_sql(self, query: str) -> str:
        """Normalize SQL query for the current database backend."""
        return self.adapter.normalize_query(query)

    def _execute_insert(self, cursor, query: str, params: Tuple = None) -> int:
        """
        Execute an INSERT query and return the inserted ID.
        Works for both SQLite (lastrowid) and PostgreSQL (RETURNING).
        """
        if self.db_type == "postgresql":
            if "RETURNING" not in query.upper():
                query = query.rstrip().rstrip(';')
                query += " RETURNING id"

            self._execute_with_logging(cursor, query, params)
            result = cursor.fetchone()
            if result:
                if hasattr(result, 'keys'):
                    return result['id']
                return result[0]
            return None

        self._execute_with_logging(cursor, query, params)
        return cursor.lastrowid

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            self._execute_with_logging(cursor, """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'member'
                        CHECK(role IN ('admin', 'member')),
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            self._execute_with_logging(cursor, """
                CREATE TABLE IF NOT EXISTS teams (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            self._execute_with_logging(cursor, """
                CREATE TABLE IF NOT EXISTS team_members (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    team_id INTEGER NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    joined_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(team_id, user_id)
                )
            """)

            # created_by has no ON DELETE action: users who created tasks
            # cannot be deleted (checked in the user service as well)
            self._execute_with_logging(cursor, """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK(status IN ('pending', 'in_progress', 'completed')),
                    priority TEXT NOT NULL DEFAULT 'medium'
                        CHECK(priority IN ('high', 'medium', 'low')),
                    assigned_to INTEGER REFERENCES users(id) ON DELETE SET NULL,
                    team_id INTEGER NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
                    created_by INTEGER NOT NULL REFERENCES users(id),
                    due_date TEXT,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # No foreign keys: history outlives the tasks and users it mentions
            self._execute_with_logging(cursor, """
                CREATE TABLE IF NOT EXISTS task_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    field_changed TEXT NOT NULL,
                    old_value TEXT,
                    new_value TEXT,
                    change_reason TEXT,
                    changed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            self._execute_with_logging(cursor, """
                CREATE TABLE IF NOT EXISTS user_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    session_token TEXT NOT NULL UNIQUE,
                    expires_at TIMESTAMP NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    last_used_at TIMESTAMP
                )
            """)

            for index_sql in (
                "CREATE INDEX IF NOT EXISTS idx_team_members_user ON team_members(user_id)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_team ON tasks(team_id)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks(assigned_to)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_created_by ON tasks(created_by)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)",
                "CREATE INDEX IF NOT EXISTS idx_task_history_task ON task_history(task_id)",
                "CREATE INDEX IF NOT EXISTS idx_task_history_user ON task_history(user_id)",
                "CREATE INDEX IF NOT EXISTS idx_task_history_field ON task_history(field_changed)",
                "CREATE INDEX IF NOT EXISTS idx_task_history_changed_at ON task_history(changed_at)",
                "CREATE INDEX IF NOT EXISTS idx_user_sessions_token ON user_sessions(session_token)",
            ):
                self._execute_with_logging(cursor, index_sql)

            conn.commit()
            logger.info(f"Database schema initialized ({self.db_type})")
        finally:
            self.adapter.close(conn)
