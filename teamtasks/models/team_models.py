"""
Pydantic models for team requests.
"""
from typing import Optional
from pydantic import BaseModel, Field


class TeamCreate(BaseModel):
    """Request model for creating a team."""
    name: str = Field(..., description="Team name (at least 2 characters)")
    description: Optional[str] = Field(None, description="Team description")


class TeamUpdate(BaseModel):
    """Request model for updating a team. At least one field is required."""
    name: Optional[str] = Field(None, description="Team name (at least 2 characters)")
    description: Optional[str] = Field(None, description="Team description")


class AddTeamMemberRequest(BaseModel):
    """Request model for adding a member to a team."""
    user_id: int = Field(..., description="User ID to add", gt=0)
