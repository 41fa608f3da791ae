"""
Database adapters for SQLite and PostgreSQL.

The database layer only talks to the adapter interface, so the same
repository code runs against either backend.
"""
import re
import sqlite3
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)


class DatabaseType(Enum):
    """Supported database backends."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class BaseDatabaseAdapter(ABC):
    """Interface every database adapter implements."""

    db_type: DatabaseType

    def __init__(self, dsn: str):
        self.dsn = dsn

    @abstractmethod
    def connect(self):
        """Open a new connection."""

    @abstractmethod
    def begin(self, conn) -> None:
        """Start an explicit write transaction on the connection."""

    def execute(self, cursor, query: str, params: Optional[Tuple] = None):
        """Execute a query after normalizing it for this backend."""
        query = self.normalize_query(query)
        if params is None:
            cursor.execute(query)
        else:
            cursor.execute(query, params)
        return cursor

    def normalize_query(self, query: str) -> str:
        return query

    def close(self, conn) -> None:
        if conn is not None:
            conn.close()


class SQLiteAdapter(BaseDatabaseAdapter):
    """SQLite adapter (default backend)."""

    db_type = DatabaseType.SQLITE
    integrity_error = sqlite3.IntegrityError

    def connect(self):
        # Autocommit mode: transactions are opened explicitly with begin()
        conn = sqlite3.connect(self.dsn, timeout=30.0, isolation_level=None,
                               check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def begin(self, conn) -> None:
        # Take the write lock up front so concurrent writers serialize
        conn.execute("BEGIN IMMEDIATE")


class PostgreSQLAdapter(BaseDatabaseAdapter):
    """PostgreSQL adapter backed by psycopg2."""

    db_type = DatabaseType.POSTGRESQL

    _PLACEHOLDER = re.compile(r"\?")

    @property
    def integrity_error(self):
        import psycopg2
        return psycopg2.IntegrityError

    def connect(self):
        import psycopg2
        from psycopg2.extras import RealDictCursor
        return psycopg2.connect(self.dsn, cursor_factory=RealDictCursor)

    def begin(self, conn) -> None:
        # psycopg2 opens a transaction implicitly on the first statement
        conn.autocommit = False

    def normalize_query(self, query: str) -> str:
        query = self._PLACEHOLDER.sub("%s", query)
        query = query.replace("INTEGER PRIMARY KEY AUTOINCREMENT", "SERIAL PRIMARY KEY")
        return query


def get_database_adapter(db_path: str, db_type: Optional[str] = None) -> BaseDatabaseAdapter:
    """
    Build the adapter matching the configured backend.

    Args:
        db_path: SQLite file path, or a libpq connection string for PostgreSQL
        db_type: 'sqlite' or 'postgresql'; inferred from db_path when omitted
    """
    if db_type is None:
        db_type = "postgresql" if "dbname=" in db_path or db_path.startswith("postgres") else "sqlite"
    db_type = db_type.lower()
    if db_type == DatabaseType.POSTGRESQL.value:
        logger.info("Using PostgreSQL database adapter")
        return PostgreSQLAdapter(db_path)
    if db_type != DatabaseType.SQLITE.value:
        raise ValueError(f"Unsupported database type: {db_type}")
    logger.debug(f"Using SQLite database adapter ({db_path})")
    return SQLiteAdapter(db_path)
