"""Data access repositories."""

from .base import BaseRepository
from .area_repository import AreaRepository, DashboardRepository
from .user_repository import UserRepository
from .grant_repository import GrantRepository

__all__ = [
    "BaseRepository",
    "AreaRepository",
    "DashboardRepository",
    "UserRepository",
    "GrantRepository",
]
