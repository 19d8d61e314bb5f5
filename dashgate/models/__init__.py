"""Database models."""

from .user import User, Role
from .area import Area, Dashboard
from .access import UserAreaAccess, UserDashboardAccess
from .audit_log import AuditLog

__all__ = [
    "User", "Role",
    "Area", "Dashboard",
    "UserAreaAccess", "UserDashboardAccess",
    "AuditLog",
]
