"""Pydantic schemas for API validation."""

from .area import (
    AreaCreate,
    AreaUpdate,
    AreaResponse,
    AreaDetailResponse,
    DashboardCreate,
    DashboardUpdate,
    DashboardResponse,
)
from .user import (
    AreaRef,
    UserCreate,
    UserUpdate,
    UserResponse,
    PasswordSet,
    ProfileUpdate,
    DashboardGrantRequest,
    DashboardGrantResponse,
)
from .audit import (
    AuditLogResponse,
    AuditLogPage,
    AuditStats,
    CleanupResult,
)

__all__ = [
    "AreaCreate",
    "AreaUpdate",
    "AreaResponse",
    "AreaDetailResponse",
    "DashboardCreate",
    "DashboardUpdate",
    "DashboardResponse",
    "AreaRef",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "PasswordSet",
    "ProfileUpdate",
    "DashboardGrantRequest",
    "DashboardGrantResponse",
    "AuditLogResponse",
    "AuditLogPage",
    "AuditStats",
    "CleanupResult",
]
