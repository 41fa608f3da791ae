"""
Team API routes (teams, membership, team tasks, stats and history).
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from teamtasks.auth.dependencies import get_current_user
from teamtasks.dependencies.services import get_services
from teamtasks.models import AddTeamMemberRequest, TeamCreate, TeamUpdate

router = APIRouter(prefix="/api/teams", tags=["teams"])


@router.get("")
def list_teams(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Admins see all teams; members see their own."""
    return get_services().team_service.list_teams(user, limit=limit, offset=offset)


@router.post("", status_code=201)
def create_team(
    payload: TeamCreate,
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Create a team (admin only). The creator joins it automatically."""
    return get_services().team_service.create_team(payload.name, payload.description, user)


@router.get("/{team_id}")
def get_team(
    team_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().team_service.get_team(team_id, user)


@router.put("/{team_id}")
def update_team(
    payload: TeamUpdate,
    team_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().team_service.update_team(team_id, payload.model_dump(exclude_unset=True), user)


@router.delete("/{team_id}")
def delete_team(
    team_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Delete a team with no unfinished tasks (admin only)."""
    get_services().team_service.delete_team(team_id, user)
    return {"success": True, "team_id": team_id}


@router.get("/{team_id}/members")
def list_members(
    team_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    return get_services().team_service.list_members(team_id, user)


@router.post("/{team_id}/members", status_code=201)
def add_member(
    payload: AddTeamMemberRequest,
    team_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Add a member (admin only). Returns the updated member list."""
    return get_services().team_service.add_member(team_id, payload.user_id, user)


@router.delete("/{team_id}/members/{user_id}")
def remove_member(
    team_id: int = Path(..., gt=0),
    user_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Remove a member without unfinished tasks in the team (admin only)."""
    get_services().team_service.remove_member(team_id, user_id, user)
    return {"success": True, "team_id": team_id, "user_id": user_id}


@router.get("/{team_id}/tasks")
def list_team_tasks(
    team_id: int = Path(..., gt=0),
    status: Optional[str] = Query(None),
    assigned_to: Optional[int] = Query(None, gt=0),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().team_service.list_team_tasks(
        team_id, user, status=status, assigned_to=assigned_to, limit=limit, offset=offset
    )


@router.get("/{team_id}/stats")
def get_team_stats(
    team_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, int]:
    return get_services().team_service.get_stats(team_id, user)


@router.get("/{team_id}/history")
def get_team_history(
    team_id: int = Path(..., gt=0),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Change history of the team's tasks, newest first."""
    return get_services().history_service.get_team_history(team_id, user, limit=limit, offset=offset)
