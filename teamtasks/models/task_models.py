"""
Pydantic models for task-related requests.

Business rules (title length, enum values, team membership) are enforced
by TaskService so that every entry point shares them; these models only
describe the payload shapes.
"""
from typing import Optional
from pydantic import BaseModel, Field


class TaskCreate(BaseModel):
    """Request model for creating a task."""
    title: str = Field(..., description="Task title (at least 3 characters)")
    team_id: int = Field(..., description="Owning team ID", gt=0)
    description: Optional[str] = Field(None, description="Task description")
    status: Optional[str] = Field(None, description="pending, in_progress or completed (default pending)")
    priority: Optional[str] = Field(None, description="high, medium or low (default medium)")
    assigned_to: Optional[int] = Field(None, description="Assignee user ID", gt=0)
    due_date: Optional[str] = Field(None, description="Due date (ISO 8601)")


class TaskUpdate(BaseModel):
    """
    Request model for a partial task update.

    Only fields present in the payload are considered; an explicit null
    clears description, assigned_to or due_date.
    """
    title: Optional[str] = Field(None, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: Optional[str] = Field(None, description="Task status")
    priority: Optional[str] = Field(None, description="Task priority")
    assigned_to: Optional[int] = Field(None, description="Assignee user ID", gt=0)
    due_date: Optional[str] = Field(None, description="Due date (ISO 8601)")


class AssignTaskRequest(BaseModel):
    """Request model for reassigning a task."""
    user_id: int = Field(..., description="User ID to assign", gt=0)


class StatusChangeRequest(BaseModel):
    """Request model for changing a task's status."""
    status: str = Field(..., description="New status")
    reason: Optional[str] = Field(None, description="Optional reason recorded in the history")
