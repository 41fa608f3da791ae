"""
Task API routes.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from teamtasks.auth.dependencies import get_current_user
from teamtasks.dependencies.services import get_services
from teamtasks.models import AssignTaskRequest, StatusChangeRequest, TaskCreate, TaskUpdate

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
def list_tasks(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    assigned_to: Optional[int] = Query(None, gt=0),
    team_id: Optional[int] = Query(None, gt=0),
    created_by: Optional[int] = Query(None, gt=0),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """List the tasks visible to the caller, newest first."""
    filters = {
        "status": status,
        "priority": priority,
        "assigned_to": assigned_to,
        "team_id": team_id,
        "created_by": created_by,
    }
    return get_services().task_service.list_tasks(user, filters, limit=limit, offset=offset)


@router.post("", status_code=201)
def create_task(
    payload: TaskCreate,
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().task_service.create_task(payload.model_dump(), user)


# Declared before /{task_id} so the literal path wins
@router.get("/recent-activity")
def recent_activity(
    limit: int = Query(50, ge=1, le=500),
    user: Dict[str, Any] = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    """Latest changes: everything for admins, the caller's teams for members."""
    return get_services().history_service.recent_activity(user, limit=limit)


@router.get("/{task_id}")
def get_task(
    task_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Task with history, can_edit, is_overdue and days_remaining."""
    return get_services().task_service.get_task(task_id, user)


@router.put("/{task_id}")
def update_task(
    payload: TaskUpdate,
    task_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Partial update; only the fields sent are considered."""
    return get_services().task_service.update_task(task_id, payload.model_dump(exclude_unset=True), user)


@router.delete("/{task_id}")
def delete_task(
    task_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    get_services().task_service.delete_task(task_id, user)
    return {"success": True, "task_id": task_id}


@router.post("/{task_id}/assign")
def assign_task(
    payload: AssignTaskRequest,
    task_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().task_service.assign_task(task_id, payload.user_id, user)


@router.post("/{task_id}/status")
def change_status(
    payload: StatusChangeRequest,
    task_id: int = Path(..., gt=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().task_service.change_status(task_id, payload.status, user, reason=payload.reason)


@router.get("/{task_id}/history")
def get_task_history(
    task_id: int = Path(..., gt=0),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    return get_services().history_service.get_task_history(task_id, user, limit=limit, offset=offset)
