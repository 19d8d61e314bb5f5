"""Business logic services."""

from .area_service import AreaService
from .dashboard_service import DashboardService
from .user_service import UserService
from .audit_service import AuditEntry, AuditRecorder

__all__ = ["AreaService", "DashboardService", "UserService", "AuditEntry", "AuditRecorder"]
