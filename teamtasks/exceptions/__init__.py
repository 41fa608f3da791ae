"""
Standard exceptions for the team task service.

Services raise these; the HTTP layer converts them with to_http_exception()
or the handlers registered in teamtasks.exceptions.handlers. Storage driver
errors (sqlite3.Error, psycopg2.Error) are never wrapped here and propagate
unchanged.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class ServiceError(Exception):
    """Base class for all service-level errors."""

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for logging and API responses."""
        result: Dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
        }
        if self.request_id:
            result["request_id"] = self.request_id
        if self.context:
            result["context"] = self.context
        if self.original_error is not None:
            result["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error),
            }
        return result


class NotFoundError(ServiceError):
    """A referenced resource does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any,
        message: Optional[str] = None,
        request_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        context = dict(context or {})
        context.update({"resource_type": resource_type, "resource_id": self.resource_id})
        super().__init__(
            message or f"{resource_type} with ID '{self.resource_id}' not found",
            request_id=request_id,
            context=context,
        )


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: int, **kwargs):
        self.task_id = task_id
        super().__init__("Task", task_id, **kwargs)


class TeamNotFoundError(NotFoundError):
    def __init__(self, team_id: int, **kwargs):
        self.team_id = team_id
        super().__init__("Team", team_id, **kwargs)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int, **kwargs):
        self.user_id = user_id
        super().__init__("User", user_id, **kwargs)


class ValidationError(ServiceError):
    """Input failed a business validation rule."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        request_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.field = field
        self.value = value
        context = dict(context or {})
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)
        super().__init__(message, request_id=request_id, context=context)


class ConflictError(ServiceError):
    """The operation conflicts with the current state of a resource."""


class DuplicateError(ConflictError):
    """A uniqueness constraint would be violated."""

    def __init__(
        self,
        resource_type: str,
        field: str,
        value: Any,
        message: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        self.resource_type = resource_type
        self.field = field
        self.value = value
        super().__init__(
            message or f"{resource_type} with {field} '{value}' already exists",
            request_id=request_id,
            context={"resource_type": resource_type, "field": field, "value": str(value)},
        )


class ForbiddenError(ServiceError):
    """The authenticated actor is not allowed to perform the operation."""

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(message, **kwargs)


class AuthenticationError(ServiceError):
    """Missing, invalid or expired credentials."""

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


_STATUS_CODES = (
    (NotFoundError, 404),
    (ValidationError, 422),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (AuthenticationError, 401),
)


def status_code_for(exc: ServiceError, default_status_code: int = 500) -> int:
    """HTTP status code for a service error."""
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return default_status_code


def to_http_exception(
    exc: ServiceError,
    include_context: bool = True,
    default_status_code: int = 500,
) -> HTTPException:
    """Convert a service error into a FastAPI HTTPException."""
    detail: Dict[str, Any] = {
        "error": exc.__class__.__name__,
        "message": exc.message,
    }
    if exc.request_id:
        detail["request_id"] = exc.request_id
    if include_context and exc.context:
        detail["context"] = exc.context
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return HTTPException(
        status_code=status_code_for(exc, default_status_code),
        detail=detail,
        headers=headers,
    )


__all__ = [
    "ServiceError",
    "NotFoundError",
    "TaskNotFoundError",
    "TeamNotFoundError",
    "UserNotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "ForbiddenError",
    "AuthenticationError",
    "status_code_for",
    "to_http_exception",
]
