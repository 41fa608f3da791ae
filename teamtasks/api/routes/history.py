"""
History reporting API routes (admin reports, team stats and retention).
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from teamtasks.auth.dependencies import get_current_user
from teamtasks.dependencies.services import get_services

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/users/{user_id}")
def get_user_history(
    user_id: int = Path(..., gt=0),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Changes made by a user (admin only)."""
    return get_services().history_service.get_actor_history(user_id, user, limit=limit, offset=offset)


@router.get("/users/{user_id}/stats")
def get_user_stats(
    user_id: int = Path(..., gt=0),
    start_date: Optional[str] = Query(None, description="Inclusive lower bound (YYYY-MM-DD or ISO datetime)"),
    end_date: Optional[str] = Query(None, description="Inclusive upper bound (YYYY-MM-DD or ISO datetime)"),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    return get_services().history_service.get_actor_stats(user_id, user, start_date, end_date)


@router.get("/fields/{field}")
def get_field_history(
    field: str = Path(...),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Changes to one field across all tasks (admin only)."""
    return get_services().history_service.get_field_history(field, user, limit=limit, offset=offset)


@router.get("/teams/{team_id}/stats")
def get_team_stats(
    team_id: int = Path(..., gt=0),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    return get_services().history_service.get_team_stats(team_id, user, start_date, end_date)


@router.delete("")
def purge_history(
    days: Optional[int] = Query(None, ge=0, description="Delete entries older than this many days"),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Retention purge (admin only)."""
    deleted = get_services().history_service.purge(days, actor=user)
    return {"success": True, "deleted": deleted}
