"""Authentication module: session principal resolution and FastAPI dependencies.

Public interface:
    ``resolve_principal`` - pure token -> Principal, raises a 401 subclass.
    ``require_auth``      - returns the Principal or raises 401.
    ``require_admin``     - returns the Principal, raises 403 if not Admin.
    ``optional_auth``     - Principal or None, for endpoints open to anonymous callers.

Resolution never touches the database: the token carries everything the
Principal needs. Handlers treat the Principal as immutable request context.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .token_factory import TokenError, decode_token
from ..exceptions import (
    AuthenticationError,
    ForbiddenError,
    TokenExpiredError,
    TokenInvalidError,
)
from ..models.user import Role

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to a request."""

    user_id: int
    email: str
    role: Role
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def resolve_principal(raw_token: Optional[str], secret: Optional[str] = None) -> Principal:
    """Validate *raw_token* and return the Principal it identifies.

    Raises:
        AuthenticationError: no token supplied.
        TokenExpiredError: signature valid but token expired.
        TokenInvalidError: malformed token, bad signature, or bad claims.
    """
    if not raw_token:
        raise AuthenticationError("Authentication token required")

    try:
        payload = decode_token(
            raw_token, secret or settings.jwt_secret_key, settings.jwt_algorithm
        )
    except TokenError as e:
        if e.expired:
            raise TokenExpiredError() from e
        logger.debug("Rejected session token: %s", e.reason)
        raise TokenInvalidError() from e

    try:
        user_id = int(payload.sub)
        role = Role(payload.role)
    except ValueError as e:
        raise TokenInvalidError("Invalid session token claims") from e

    return Principal(user_id=user_id, email=payload.email, role=role, name=payload.name)


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[Principal]:
    """Principal if a bearer token was sent, None otherwise.

    A token that is present but invalid still raises.
    """
    if credentials is None:
        return None
    return resolve_principal(credentials.credentials)


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Principal:
    """Require a valid bearer token and return the request's Principal."""
    raw = credentials.credentials if credentials is not None else None
    return resolve_principal(raw)


def require_admin(principal: Principal = Depends(require_auth)) -> Principal:
    """Require the authenticated user to be an Admin. Raises 403 otherwise."""
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
    return principal
