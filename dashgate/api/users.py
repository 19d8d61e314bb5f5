"""User administration API.

Admin-only:
    GET    /api/users
    POST   /api/users
    GET    /api/users/{user_id}
    PUT    /api/users/{user_id}
    DELETE /api/users/{user_id}
    PUT    /api/users/{user_id}/password

Any authenticated user:
    GET|PUT /api/users/profile/me
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.dependencies import RequestActor, get_audit_recorder, require_actor, require_admin_actor
from ..database import get_db
from ..schemas.user import PasswordSet, ProfileUpdate, UserCreate, UserResponse, UserUpdate
from ..services.audit_service import AuditRecorder
from ..services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class PasswordSetResponse(BaseModel):
    message: str


# -- Own profile ----------------------------------------------------------
# Declared before /{user_id} so "profile" is never parsed as an id.

@router.get("/profile/me", response_model=UserResponse)
def get_profile(
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_actor),
):
    return UserService(db).get_profile(actor.user_id)


@router.put("/profile/me", response_model=UserResponse)
def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    return UserService(db, recorder).update_profile(
        actor,
        name=data.name,
        current_password=data.current_password,
        new_password=data.new_password,
    )


# -- Admin ----------------------------------------------------------------

@router.get("", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
):
    return UserService(db).list_users()


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    """Create a user and their area grants in one transaction."""
    return UserService(db, recorder).create_user(
        actor,
        email=data.email,
        password=data.password,
        role=data.role,
        name=data.name,
        area_ids=data.area_ids,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
):
    return UserService(db).get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    return UserService(db, recorder).update_user(
        actor,
        user_id,
        email=data.email,
        role=data.role,
        name=data.name,
        area_ids=data.area_ids,
    )


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    UserService(db, recorder).delete_user(actor, user_id)


@router.put("/{user_id}/password", response_model=PasswordSetResponse)
def set_password(
    user_id: int,
    data: PasswordSet,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    UserService(db, recorder).set_password(actor, user_id, data.password)
    return PasswordSetResponse(message="Password updated")
