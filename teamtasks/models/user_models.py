"""
Pydantic models for authentication and user management requests.
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class _EmailNormalizingModel(BaseModel):

    @field_validator('email', check_fields=False)
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        """Trim and lower-case the email address."""
        if v is None:
            return v
        return v.strip().lower()


class RegisterRequest(_EmailNormalizingModel):
    """Request model for registering (or admin-creating) a user."""
    name: str = Field(..., description="Display name", min_length=1)
    email: str = Field(..., description="Email address (case-insensitive, unique)")
    password: str = Field(..., description="Password (at least 6 characters)")
    role: Optional[str] = Field(None, description="Role: admin or member (default member)")

    @field_validator('name')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name cannot be empty or contain only whitespace")
        return v.strip()


class LoginRequest(_EmailNormalizingModel):
    """Request model for logging in."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class ProfileUpdate(_EmailNormalizingModel):
    """Request model for updating the caller's own profile. The role cannot be changed here."""
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    password: Optional[str] = Field(None, description="New password")


class UserUpdate(ProfileUpdate):
    """Request model for an admin updating any user, including the role."""
    role: Optional[str] = Field(None, description="Role: admin or member")
