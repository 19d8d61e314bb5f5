"""User administration and self-service profile operations.

Creating or updating a user together with their area grants happens in a
single transaction: either the account and every grant are stored, or
nothing is.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.dependencies import RequestActor
from ..exceptions import AreaNotFoundError, ConflictError, ValidationError
from ..models.area import Area
from ..models.user import Role, User
from ..repositories.area_repository import AreaRepository
from ..repositories.grant_repository import GrantRepository
from ..repositories.user_repository import UserRepository
from .audit_service import AuditEntry, AuditRecorder
from .auth_service import (
    areas_for_user,
    hash_password,
    validate_email,
    validate_password,
    verify_password,
)
from .permission_service import require_admin_principal

logger = logging.getLogger(__name__)

ENTITY = "USER"


def user_snapshot(user: User, areas: Optional[List[Area]] = None) -> Dict[str, Any]:
    """Public view of a user. Never includes the hash or reset fields."""
    data = {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "name": user.name,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }
    if areas is not None:
        data["areas"] = [{"id": a.id, "name": a.name} for a in areas]
    return data


class UserService:
    """Public methods:
        list_users / get_user           -- Admin views, with granted areas
        create_user / update_user       -- atomic with area grants
        delete_user                     -- grants cascade
        set_password                    -- Admin sets another user's password
        get_profile / update_profile    -- the caller's own account
    """

    def __init__(self, db: Session, recorder: Optional[AuditRecorder] = None):
        self.db = db
        self.recorder = recorder
        self.users = UserRepository(db)
        self.areas = AreaRepository(db)
        self.grants = GrantRepository(db)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def list_users(self) -> List[Dict[str, Any]]:
        return [self._view(user) for user in self.users.list()]

    def get_user(self, user_id: int) -> Dict[str, Any]:
        return self._view(self.users.get_by_id(user_id))

    def create_user(
        self,
        actor: RequestActor,
        email: str,
        password: str,
        role: Role = Role.USER,
        name: Optional[str] = None,
        area_ids: Iterable[int] = (),
    ) -> Dict[str, Any]:
        require_admin_principal(actor.principal)
        email = validate_email(email)
        validate_password(password)
        area_ids = self._check_areas(area_ids)
        if self.users.email_taken(email):
            raise ConflictError("Email already registered", field="email")

        user = User(
            email=email,
            password_hash=hash_password(password),
            role=role,
            name=(name or "").strip() or None,
        )
        try:
            self.users.add(user)
            self.grants.replace_area_grants(user.id, area_ids)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered", field="email")
        self.db.refresh(user)

        view = self._view(user)
        logger.info("User created", extra={"user_id": user.id, "role": role.value})
        self._audit("USER_CREATED", actor, user.id, new_data=view)
        return view

    def update_user(
        self,
        actor: RequestActor,
        user_id: int,
        email: Optional[str] = None,
        role: Optional[Role] = None,
        name: Optional[str] = None,
        area_ids: Optional[Iterable[int]] = None,
    ) -> Dict[str, Any]:
        """Omitted fields stay as they are; ``area_ids`` replaces every area grant."""
        require_admin_principal(actor.principal)
        user = self.users.get_by_id(user_id)
        before = self._view(user)
        if area_ids is not None:
            area_ids = self._check_areas(area_ids)

        if email is not None:
            email = validate_email(email)
            if self.users.email_taken(email, exclude_id=user_id):
                raise ConflictError("Email already registered", field="email")
            user.email = email
        if role is not None:
            user.role = role
        if name is not None:
            user.name = name.strip() or None

        try:
            if area_ids is not None:
                self.grants.replace_area_grants(user_id, area_ids)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered", field="email")
        self.db.refresh(user)

        view = self._view(user)
        self._audit("USER_UPDATED", actor, user_id, old_data=before, new_data=view)
        return view

    def delete_user(self, actor: RequestActor, user_id: int) -> None:
        require_admin_principal(actor.principal)
        if user_id == actor.user_id:
            raise ValidationError("You cannot delete your own account", field="id")
        user = self.users.get_by_id(user_id)

        before = self._view(user)
        self.users.delete(user)
        self.db.commit()

        logger.info("User deleted", extra={"user_id": user_id})
        self._audit("USER_DELETED", actor, user_id, level="warn", old_data=before)

    def set_password(self, actor: RequestActor, user_id: int, password: str) -> None:
        require_admin_principal(actor.principal)
        validate_password(password)
        user = self.users.get_by_id(user_id)

        user.password_hash = hash_password(password)
        user.reset_token = None
        user.reset_token_expiry = None
        self.db.commit()

        self._audit(
            "USER_PASSWORD_CHANGED", actor, user_id,
            additional_info={"changed_by_admin": True},
        )

    # ------------------------------------------------------------------
    # Own profile
    # ------------------------------------------------------------------

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        return self._view(self.users.get_by_id(user_id))

    def update_profile(
        self,
        actor: RequestActor,
        name: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Change the caller's display name and/or password.

        A password change requires the current password.
        """
        if name is None and not new_password:
            raise ValidationError("Nothing to update")

        user = self.users.get_by_id(actor.user_id)
        before = self._view(user)
        changed = []

        if new_password:
            if not current_password or not verify_password(current_password, user.password_hash):
                raise ValidationError("Current password is incorrect", field="current_password")
            validate_password(new_password, field="new_password")
            user.password_hash = hash_password(new_password)
            changed.append("password")
        if name is not None:
            user.name = name.strip() or None
            changed.append("name")

        self.db.commit()
        self.db.refresh(user)

        view = self._view(user)
        self._audit(
            "PROFILE_UPDATED", actor, user.id,
            old_data=before, new_data=view,
            additional_info={"changed": changed},
        )
        return view

    # ------------------------------------------------------------------

    def _view(self, user: User) -> Dict[str, Any]:
        return user_snapshot(user, areas_for_user(self.db, user))

    def _check_areas(self, area_ids: Iterable[int]) -> List[int]:
        """De-duplicate and verify every id names an existing area."""
        ids = sorted(set(area_ids))
        if self.areas.count_ids(ids) != len(ids):
            known = {a.id for a in self.areas.list(ids)}
            missing = next(i for i in ids if i not in known)
            raise AreaNotFoundError(missing)
        return ids

    def _audit(self, action: str, actor: RequestActor, user_id: int, **kwargs) -> None:
        if self.recorder is None:
            return
        self.recorder.create_log(
            self.db, AuditEntry.for_actor(action, ENTITY, actor, entity_id=user_id, **kwargs)
        )
