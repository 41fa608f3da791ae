"""
Exception handlers for the application.
"""
import sqlite3
import logging

import psycopg2
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from teamtasks.exceptions import ServiceError, AuthenticationError, status_code_for
from teamtasks.monitoring import get_request_id

logger = logging.getLogger(__name__)


def _with_request_id(response: JSONResponse, request_id: str) -> JSONResponse:
    if request_id != '-':
        response.headers["X-Request-ID"] = request_id
    return response


async def service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Map typed service errors to their HTTP status codes."""
    request_id = get_request_id() or '-'
    status_code = status_code_for(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        f"{type(exc).__name__} in {request.method} {request.url.path}: {exc.message}",
        extra={"request_id": request_id, "status_code": status_code}
    )
    content = {
        "error": type(exc).__name__,
        "message": exc.message,
        "path": request.url.path,
        "request_id": request_id,
    }
    if exc.context:
        content["context"] = exc.context
    response = JSONResponse(status_code=status_code, content=content)
    if isinstance(exc, AuthenticationError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return _with_request_id(response, request_id)


async def database_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for storage driver errors (SQLite and PostgreSQL)."""
    request_id = get_request_id() or '-'
    logger.error(
        f"Database error in {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"request_id": request_id, "error_type": type(exc).__name__}
    )
    return _with_request_id(JSONResponse(
        status_code=500,
        content={
            "error": "Database error",
            "message": "A database operation failed. Please try again or contact support if the issue persists.",
            "path": request.url.path,
            "request_id": request_id,
        }
    ), request_id)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with clear messages."""
    request_id = get_request_id() or '-'
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(f"{field}: {error['msg']}")

    logger.warning(
        f"Validation error in {request.method} {request.url.path}: {', '.join(errors)}",
        extra={"request_id": request_id}
    )
    return _with_request_id(JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "One or more fields failed validation",
            "errors": errors,
            "path": request.url.path,
            "request_id": request_id,
        }
    ), request_id)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions."""
    request_id = get_request_id() or '-'
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"request_id": request_id, "exception_type": type(exc).__name__}
    )
    return _with_request_id(JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again or contact support if the issue persists.",
            "path": request.url.path,
            "request_id": request_id,
        }
    ), request_id)


def setup_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(ServiceError, service_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(sqlite3.Error, database_exception_handler)
    app.add_exception_handler(psycopg2.Error, database_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
