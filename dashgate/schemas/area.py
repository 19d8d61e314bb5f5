"""Area and dashboard schemas."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List


class AreaBase(BaseModel):
    """Base area schema."""
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Area name is required")
        return v


class AreaCreate(AreaBase):
    """Schema for creating an area."""
    pass


class AreaUpdate(AreaBase):
    """Schema for renaming an area."""
    pass


class AreaResponse(AreaBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DashboardBase(BaseModel):
    """Base dashboard schema."""
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    information: Optional[str] = None
    area_id: int = Field(..., ge=1)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Dashboard name is required")
        return v

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Dashboard URL must start with http:// or https://")
        return v


class DashboardCreate(DashboardBase):
    """Schema for creating a dashboard."""
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Q1 Report",
                    "url": "https://bi.example.com/embed/q1-report",
                    "information": "Quarterly revenue by region",
                    "area_id": 1,
                }
            ]
        }
    }


class DashboardUpdate(DashboardBase):
    """Schema for updating a dashboard (full replacement, as PUT)."""
    pass


class DashboardResponse(BaseModel):
    id: int
    name: str
    url: str
    information: Optional[str] = None
    area_id: int
    area_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AreaDetailResponse(AreaResponse):
    """Area with the dashboards the caller is allowed to see."""
    dashboards: List[DashboardResponse] = []
