"""Authentication service: credential checks, token issue, registration, password reset.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. Login failures are deliberately indistinguishable:
an unknown email and a wrong password raise the same error after the same
amount of hashing work.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from ..core.auth import Principal
from ..core.config import settings
from ..core.token_factory import create_token
from ..exceptions import ConflictError, InvalidCredentialsError, ValidationError
from ..models.area import Area
from ..models.user import Role, User
from ..repositories.area_repository import AreaRepository
from ..repositories.grant_repository import GrantRepository
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# NIST SP 800-63B recommends at least 8 characters.
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class LoginResult:
    token: str
    principal: Principal
    user: User
    areas: list[Area]


# --- Password helpers ---

def hash_password(password: str) -> str:
    return bcrypt.using(rounds=settings.password_hash_rounds).hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        # Corrupt or non-bcrypt hash in the database.
        logger.warning("Stored password hash could not be parsed")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_hex(16))


def validate_password(password: str, field: str = "password") -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field=field
        )


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    return email


# --- Principal / token ---

def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, email=user.email, role=user.role, name=user.name)


def issue_token(user: User) -> str:
    return create_token(
        subject=str(user.id),
        email=user.email,
        role=user.role.value,
        name=user.name,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.token_expiry_minutes,
    )


def areas_for_user(db: Session, user: User) -> list[Area]:
    """Areas the user can open: everything for Admins, granted areas otherwise."""
    if user.is_admin:
        return AreaRepository(db).list()
    return GrantRepository(db).areas_for_user(user.id)


# --- Login ---

def authenticate(db: Session, email: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises InvalidCredentialsError for an unknown email or a wrong password.
    The email is matched exactly as stored.
    """
    user = UserRepository(db).get_by_email(email or "")

    if user is None:
        # Burn the same bcrypt work as a real check so timing does not leak.
        verify_password(password or "", _dummy_hash())
        raise InvalidCredentialsError()

    if not verify_password(password or "", user.password_hash):
        raise InvalidCredentialsError()

    return user


def login(db: Session, email: str, password: str) -> LoginResult:
    user = authenticate(db, email, password)
    return LoginResult(
        token=issue_token(user),
        principal=principal_for(user),
        user=user,
        areas=areas_for_user(db, user),
    )


def get_user_with_areas(db: Session, user_id: int) -> tuple[User, list[Area]]:
    """Raises UserNotFoundError if the account no longer exists."""
    user = UserRepository(db).get_by_id(user_id)
    return user, areas_for_user(db, user)


# --- Registration ---

def register_user(db: Session, email: str, password: str, name: Optional[str] = None) -> User:
    """Create an account. The very first account becomes Admin, later ones User.

    Whether the caller may register at all is decided by the router.
    """
    email = validate_email(email)
    validate_password(password)

    users = UserRepository(db)
    if users.email_taken(email):
        raise ConflictError("Email already registered", field="email")

    is_first_user = users.count() == 0
    user = User(
        email=email,
        password_hash=hash_password(password),
        role=Role.ADMIN if is_first_user else Role.USER,
        name=(name or "").strip() or None,
    )
    users.add(user)
    db.commit()
    db.refresh(user)

    if is_first_user:
        logger.info("First user registered as Admin", extra={"user_id": user.id})
    return user


# --- Password reset ---

def request_password_reset(db: Session, email: str) -> Optional[str]:
    """Store a fresh reset token on the account and return it.

    Returns None for unknown emails; callers must respond identically in
    both cases. Delivering the token (email) is outside this service.
    """
    user = UserRepository(db).get_by_email(email or "")
    if user is None:
        return None

    token = secrets.token_hex(32)
    user.reset_token = token
    user.reset_token_expiry = datetime.now(timezone.utc) + timedelta(
        minutes=settings.password_reset_expiry_minutes
    )
    db.commit()
    logger.info("Password reset requested", extra={"user_id": user.id})
    return token


def reset_password(db: Session, token: str, new_password: str) -> User:
    """Redeem a reset token: set the new password and clear the token in one commit."""
    validate_password(new_password, field="new_password")

    user = UserRepository(db).get_by_reset_token(token or "", datetime.now(timezone.utc))
    if user is None:
        raise ValidationError("Invalid or expired reset token", field="token")

    user.password_hash = hash_password(new_password)
    user.reset_token = None
    user.reset_token_expiry = None
    db.commit()
    db.refresh(user)
    logger.info("Password reset completed", extra={"user_id": user.id})
    return user
