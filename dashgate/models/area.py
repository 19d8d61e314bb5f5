"""Area and Dashboard models.

An Area is a named grouping; every Dashboard belongs to exactly one Area.
The dashboards -> areas foreign key has no cascade: an area can only be
deleted once it has no dashboards and no area grants.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from .user import utcnow


class Area(Base):
    __tablename__ = "areas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    dashboards = relationship("Dashboard", back_populates="area", order_by="Dashboard.name")


class Dashboard(Base):
    __tablename__ = "dashboards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    information = Column(Text, nullable=True)
    area_id = Column(Integer, ForeignKey("areas.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    area = relationship("Area", back_populates="dashboards")
    user_accesses = relationship(
        "UserDashboardAccess",
        back_populates="dashboard",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
