"""User model and the global role enumeration.

Users authenticate with email/password and receive JWT tokens. Admins
bypass every grant check; regular users only see what their area and
dashboard grants allow.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from sqlalchemy.orm import relationship
from ..database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    """Global role. Compared by identity, never by string case-folding."""

    ADMIN = "Admin"
    USER = "User"


class User(Base):
    """User account.

    ``reset_token`` / ``reset_token_expiry`` are only set while a password
    reset is pending and are cleared together with the password update.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(
        Enum(
            Role,
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Role.USER,
    )
    name = Column(String(255), nullable=True)
    reset_token = Column(String(128), nullable=True, index=True)
    reset_token_expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    area_accesses = relationship(
        "UserAreaAccess",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    dashboard_accesses = relationship(
        "UserDashboardAccess",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        foreign_keys="[UserDashboardAccess.user_id]",
    )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
