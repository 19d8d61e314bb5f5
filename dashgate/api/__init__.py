"""API routes."""

from .auth_routes import router as auth_router
from .areas import router as areas_router
from .dashboards import router as dashboards_router
from .dashboard_permissions import router as dashboard_permissions_router
from .users import router as users_router
from .logs import router as logs_router

__all__ = [
    "auth_router",
    "areas_router",
    "dashboards_router",
    "dashboard_permissions_router",
    "users_router",
    "logs_router",
]
