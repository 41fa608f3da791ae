"""
Shared plumbing for repositories.
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment (default: now) the way CURRENT_TIMESTAMP stores it, in UTC."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.strftime(TIMESTAMP_FORMAT)


def row_to_dict(row) -> Optional[Dict[str, Any]]:
    """Convert a sqlite3.Row / RealDictRow to a plain dict with string timestamps."""
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if isinstance(value, datetime):
            result[key] = value.strftime(TIMESTAMP_FORMAT)
        elif isinstance(value, date):
            result[key] = value.isoformat()
    return result


class BaseRepository:
    """Base class holding the callables every repository receives from TaskDatabase."""

    def __init__(
        self,
        db_type: str,
        get_connection: Callable[[], Any],
        adapter: Any,
        execute_insert: Callable[[Any, str, tuple], int],
        execute_with_logging: Callable[[Any, str, tuple], Any]
    ):
        """
        Args:
            db_type: Database type ('sqlite' or 'postgresql')
            get_connection: Function to get database connection
            adapter: Database adapter (for closing connections)
            execute_insert: Function to execute INSERT queries and return ID
            execute_with_logging: Function to execute queries with logging
        """
        self.db_type = db_type
        self._get_connection = get_connection
        self.adapter = adapter
        self._execute_insert = execute_insert
        self._execute_with_logging = execute_with_logging

    @contextmanager
    def _cursor(self, conn=None):
        """
        Yield a cursor on ``conn``, or on a fresh connection that is committed
        and closed afterwards when no connection was passed in.
        """
        should_close = conn is None
        if should_close:
            conn = self._get_connection()
        try:
            cursor = conn.cursor()
            yield cursor
            if should_close:
                conn.commit()
        finally:
            if should_close:
                self.adapter.close(conn)

    def _fetch_one(self, query: str, params: tuple = (), conn=None) -> Optional[Dict[str, Any]]:
        with self._cursor(conn) as cursor:
            self._execute_with_logging(cursor, query, params)
            return row_to_dict(cursor.fetchone())

    def _fetch_all(self, query: str, params: tuple = (), conn=None):
        with self._cursor(conn) as cursor:
            self._execute_with_logging(cursor, query, params)
            return [row_to_dict(row) for row in cursor.fetchall()]

    def _fetch_count(self, query: str, params: tuple = (), conn=None) -> int:
        row = self._fetch_one(query, params, conn=conn)
        return int(row["count"]) if row else 0

    def _execute(self, query: str, params: tuple = (), conn=None) -> int:
        """Execute a write statement and return the affected row count."""
        with self._cursor(conn) as cursor:
            self._execute_with_logging(cursor, query, params)
            return cursor.rowcount
