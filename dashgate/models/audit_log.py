"""AuditLog model.

Append-only record of state-changing and access-granting operations.
Rows are never updated; they are only deleted by the explicit retention
operations in audit_service. ``user_id`` / ``admin_id`` carry no foreign
key so entries survive the deletion of the users they mention.

``details`` holds ``{"old_data", "new_data", "additional_info"}`` after
sanitization, or a size summary when the payload was too large.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from ..database import Base
from .user import utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True, index=True)
    admin_id = Column(Integer, nullable=True, index=True)
    level = Column(String(10), nullable=False, default="info")
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
