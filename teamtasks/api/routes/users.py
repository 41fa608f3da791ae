"""
User management API routes.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from teamtasks.auth.dependencies import get_current_user, require_admin_user
from teamtasks.dependencies.services import get_services
from teamtasks.models import RegisterRequest, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: Dict[str, Any] = Depends(require_admin_user)
) -> Dict[str, Any]:
    """List users (admin only)."""
    return get_services().user_service.list_users(admin, role=role, limit=limit, offset=offset)


@router.post("", status_code=201)
def create_user(
    payload: RegisterRequest,
    admin: Dict[str, Any] = Depends(require_admin_user)
) -> Dict[str, Any]:
    """Create a user with any role (admin only)."""
    return get_services().user_service.create_user(
        payload.name, payload.email, payload.password, role=payload.role, actor=admin
    )


@router.get("/{user_id}")
def get_user(
    user_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Get a user with teams and recent tasks (admin or self)."""
    return get_services().user_service.get_user(user_id, user)


@router.put("/{user_id}")
def update_user(
    payload: UserUpdate,
    user_id: int = Path(..., gt=0),
    admin: Dict[str, Any] = Depends(require_admin_user)
) -> Dict[str, Any]:
    """Update a user, including the role (admin only)."""
    return get_services().user_service.update_user(user_id, payload.model_dump(exclude_unset=True), admin)


@router.delete("/{user_id}")
def delete_user(
    user_id: int = Path(..., gt=0),
    admin: Dict[str, Any] = Depends(require_admin_user)
) -> Dict[str, Any]:
    """Delete a user (admin only, never yourself)."""
    get_services().user_service.delete_user(user_id, admin)
    return {"success": True, "user_id": user_id}


@router.get("/{user_id}/tasks")
def get_user_tasks(
    user_id: int = Path(..., gt=0),
    status: Optional[str] = Query(None),
    team_id: Optional[int] = Query(None, gt=0),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Tasks assigned to a user (admin or self)."""
    return get_services().user_service.get_user_tasks(
        user_id, user, status=status, team_id=team_id, limit=limit, offset=offset
    )


@router.get("/{user_id}/teams")
def get_user_teams(
    user_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Teams a user belongs to (admin or self)."""
    return get_services().user_service.get_user_teams(user_id, user)
