"""Authentication API endpoints.

Public endpoints:
    POST /api/auth/login            - authenticate and receive JWT
    POST /api/auth/register         - create account (open for first user, admin-only after)
    POST /api/auth/forgot-password  - start a password reset
    POST /api/auth/reset-password   - redeem a reset token

Authenticated endpoints:
    GET  /api/auth/me        - current user info + areas
    GET  /api/auth/validate  - check the bearer token
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.auth import Principal, optional_auth, require_auth
from ..core.config import Environment, settings
from ..core.dependencies import actor_for, client_ip, get_audit_recorder
from ..database import get_db
from ..exceptions import ForbiddenError, InvalidCredentialsError
from ..repositories.user_repository import UserRepository
from ..schemas.user import AreaRef, UserResponse
from ..services import auth_service
from ..services.audit_service import AuditEntry, AuditRecorder
from ..services.user_service import user_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If the email is registered, a reset link has been sent"


# --- Request/Response schemas ---


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    name: Optional[str] = Field(None, description="Display name")

    model_config = {
        "json_schema_extra": {
            "examples": [{"email": "alice@company.com", "password": "securepass", "name": "Alice"}]
        }
    }


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse


class TokenUser(BaseModel):
    id: int
    email: str
    role: str
    name: Optional[str] = None


class ValidateResponse(BaseModel):
    valid: bool
    user: TokenUser


class MessageResponse(BaseModel):
    message: str
    reset_token: Optional[str] = None


def _user_response(user, areas) -> UserResponse:
    return UserResponse(
        **user_snapshot(user),
        areas=[AreaRef(id=a.id, name=a.name) for a in areas],
    )


def _auth_entry(request: Request, action: str, level: str = "info", **kwargs) -> AuditEntry:
    """Audit entry for an anonymous auth call; there is no Principal yet."""
    return AuditEntry(
        action=action,
        entity_type="AUTH",
        level=level,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        **kwargs,
    )


# --- Endpoints ---


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and receive JWT",
)
def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    try:
        result = auth_service.login(db, body.email, body.password)
    except InvalidCredentialsError:
        recorder.create_log(db, _auth_entry(
            request, "LOGIN_FAILED", level="warn",
            additional_info={"email": body.email, "route": request.url.path},
        ))
        raise

    recorder.create_log(db, _auth_entry(
        request, "LOGIN_SUCCESS",
        entity_id=result.user.id,
        user_id=result.user.id,
        admin_id=result.user.id if result.user.is_admin else None,
        additional_info={"email": result.user.email, "role": result.user.role},
    ))
    return LoginResponse(token=result.token, user=_user_response(result.user, result.areas))


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a new user",
    description="First registration is open (creates admin). After that, admin auth required.",
)
def register_user(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(optional_auth),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    if UserRepository(db).count() > 0:
        if principal is None or not principal.is_admin:
            raise ForbiddenError("Only admins can register new users")

    user = auth_service.register_user(db, body.email, body.password, body.name)
    response = _user_response(user, auth_service.areas_for_user(db, user))

    if principal is not None:
        entry = AuditEntry.for_actor(
            "USER_CREATED", "USER", actor_for(request, principal),
            entity_id=user.id, new_data=response.model_dump(),
        )
    else:
        entry = _auth_entry(
            request, "USER_REGISTERED",
            entity_id=user.id, user_id=user.id, new_data=response.model_dump(),
        )
    recorder.create_log(db, entry)
    return response


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user info and areas",
)
def get_me(principal: Principal = Depends(require_auth), db: Session = Depends(get_db)):
    user, areas = auth_service.get_user_with_areas(db, principal.user_id)
    return MeResponse(user=_user_response(user, areas))


@router.get(
    "/validate",
    response_model=ValidateResponse,
    summary="Check that the bearer token is valid",
)
def validate_token(principal: Principal = Depends(require_auth)):
    return ValidateResponse(
        valid=True,
        user=TokenUser(
            id=principal.user_id,
            email=principal.email,
            role=principal.role.value,
            name=principal.name,
        ),
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset token",
    description="Responds identically whether or not the email is registered.",
)
def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    token = auth_service.request_password_reset(db, body.email)
    response = MessageResponse(message=RESET_REQUESTED_MESSAGE)
    if token is None:
        return response

    user = UserRepository(db).get_by_email(body.email)
    recorder.create_log(db, _auth_entry(
        request, "PASSWORD_RESET_REQUESTED", entity_id=user.id, user_id=user.id,
    ))
    # Email delivery is external; development builds hand the token back directly.
    if settings.environment == Environment.DEVELOPMENT:
        response.reset_token = token
    return response


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password using a reset token",
)
def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    user = auth_service.reset_password(db, body.token, body.new_password)
    recorder.create_log(db, _auth_entry(
        request, "PASSWORD_RESET_COMPLETED", entity_id=user.id, user_id=user.id,
    ))
    return MessageResponse(message="Password has been reset")
