"""
Authentication dependencies for FastAPI.

Clients send the session token from /api/auth/login as
``Authorization: Bearer <token>``.
"""
import logging
from typing import Optional, Dict, Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from teamtasks.auth import permissions
from teamtasks.dependencies.services import get_services
from teamtasks.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[str]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials


def get_current_user(token: Optional[str] = Depends(get_bearer_token)) -> Dict[str, Any]:
    """
    Resolve the bearer token to the authenticated user.

    Raises:
        AuthenticationError: Missing, invalid or expired token (401)
    """
    return get_services().auth_service.authenticate(token)


def optional_current_user(token: Optional[str] = Depends(get_bearer_token)) -> Optional[Dict[str, Any]]:
    """Authenticated user if a valid token was sent, otherwise None."""
    if not token:
        return None
    try:
        return get_services().auth_service.authenticate(token)
    except AuthenticationError:
        logger.debug("Ignoring invalid token on optionally authenticated endpoint")
        return None


def require_admin_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Authenticated admin, else ForbiddenError (403)."""
    permissions.require_admin(user)
    return user
