"""Audit log schemas."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List, Dict, Any


class UserRef(BaseModel):
    id: int
    name: Optional[str] = None
    email: str


class AuditLogResponse(BaseModel):
    """A log entry with the referenced user/admin resolved."""
    id: int
    timestamp: datetime
    level: str
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    user_id: Optional[int] = None
    admin_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    user: Optional[UserRef] = None
    admin: Optional[UserRef] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class AuditLogPage(BaseModel):
    logs: List[AuditLogResponse]
    pagination: Pagination


class AuditStats(BaseModel):
    total_logs: int
    action_stats: Dict[str, int]
    entity_stats: Dict[str, int]


class CleanupResult(BaseModel):
    deleted: int
    message: str
    cutoff_date: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
