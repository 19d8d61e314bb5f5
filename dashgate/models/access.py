"""Access grant models.

UserAreaAccess is the coarse (tier-2) grant; UserDashboardAccess is the
granular (tier-3) grant. A dashboard grant is only created while the same
user holds the area grant for the dashboard's area. That rule is enforced
by permission_service at grant time, not by a database constraint.
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from .user import utcnow


class UserAreaAccess(Base):
    __tablename__ = "user_area_access"

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    area_id = Column(Integer, ForeignKey("areas.id"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="area_accesses")
    area = relationship("Area")


class UserDashboardAccess(Base):
    __tablename__ = "user_dashboard_access"

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    dashboard_id = Column(
        Integer,
        ForeignKey("dashboards.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    granted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="dashboard_accesses", foreign_keys=[user_id])
    dashboard = relationship("Dashboard", back_populates="user_accesses")
