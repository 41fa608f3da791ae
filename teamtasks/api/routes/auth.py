"""
Authentication API routes (register, login, profile, logout).
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from teamtasks.auth.dependencies import get_bearer_token, get_current_user, optional_current_user
from teamtasks.dependencies.services import get_services
from teamtasks.models import LoginRequest, ProfileUpdate, RegisterRequest

router = APIRouter(prefix="/api/auth", tags=["auth"])

logger = logging.getLogger(__name__)


@router.post("/register", status_code=201)
def register(
    payload: RegisterRequest,
    actor: Optional[Dict[str, Any]] = Depends(optional_current_user)
) -> Dict[str, Any]:
    """Create an account. Only an authenticated admin may create another admin."""
    return get_services().auth_service.register(
        payload.name, payload.email, payload.password, role=payload.role, actor=actor
    )


@router.post("/login")
def login(payload: LoginRequest) -> Dict[str, Any]:
    """Exchange email and password for a bearer token."""
    return get_services().auth_service.login(payload.email, payload.password)


@router.get("/profile")
def get_profile(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """The caller's profile with teams and recent tasks."""
    return get_services().user_service.get_user(user["id"], user)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Update name, email or password of the caller."""
    return get_services().user_service.update_profile(user, payload.model_dump(exclude_unset=True))


@router.get("/verify")
def verify_token(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Check that the bearer token is valid."""
    return {"valid": True, "user": user}


@router.post("/logout")
def logout(
    user: Dict[str, Any] = Depends(get_current_user),
    token: Optional[str] = Depends(get_bearer_token)
) -> Dict[str, Any]:
    """Revoke the bearer token."""
    get_services().auth_service.logout(token)
    return {"success": True}
