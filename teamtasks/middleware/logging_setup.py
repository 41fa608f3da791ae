"""
Logging configuration and setup.
"""
import os
import logging

from teamtasks.monitoring import get_request_id

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s'


class RequestIDFilter(logging.Filter):
    """Logging filter to add the current request ID to log records."""

    def filter(self, record):
        if not getattr(record, 'request_id', None):
            record.request_id = get_request_id() or '-'
        return True


class SafeFormatter(logging.Formatter):
    """Formatter that handles a missing request_id gracefully."""

    def format(self, record):
        if not hasattr(record, 'request_id'):
            record.request_id = '-'
        return super().format(record)


def setup_logging(level: str = None) -> None:
    """Configure root logging with request IDs. Level defaults to LOG_LEVEL (INFO)."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    handler = logging.StreamHandler()
    handler.addFilter(RequestIDFilter())
    handler.setFormatter(SafeFormatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        handlers=[handler],
        force=True
    )
