"""User, profile and grant schemas.

No response schema carries password_hash or the reset-token fields.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from ..models.user import Role


class AreaRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    role: Role = Role.USER
    name: Optional[str] = None
    area_ids: List[int] = []


class UserUpdate(BaseModel):
    """Omitted fields are left unchanged; ``area_ids`` replaces all area grants."""
    email: Optional[str] = None
    role: Optional[Role] = None
    name: Optional[str] = None
    area_ids: Optional[List[int]] = None


class PasswordSet(BaseModel):
    password: str = Field(..., min_length=8)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    role: Role
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    areas: List[AreaRef] = []


class DashboardGrantRequest(BaseModel):
    user_id: int = Field(..., ge=1)
    dashboard_id: int = Field(..., ge=1)


class DashboardGrantResponse(BaseModel):
    user_id: int
    dashboard_id: int
    granted_by: Optional[int] = None
    granted_at: datetime
    created: Optional[bool] = None

    class Config:
        from_attributes = True
