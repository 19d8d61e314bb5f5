"""Area operations: grant-filtered reads and audited Admin-only writes."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.auth import Principal
from ..core.dependencies import RequestActor
from ..exceptions import ConflictError, ForbiddenError, HasDependentsError, ValidationError
from ..models.area import Area
from ..repositories.area_repository import AreaRepository, DashboardRepository
from .audit_service import AuditEntry, AuditRecorder
from .dashboard_service import dashboard_snapshot
from .permission_service import (
    accessible_area_ids,
    accessible_dashboard_ids,
    authorize_area_access,
    require_admin_principal,
)

logger = logging.getLogger(__name__)

ENTITY = "AREA"


def area_snapshot(area: Area) -> Dict[str, Any]:
    return {
        "id": area.id,
        "name": area.name,
        "created_at": area.created_at,
        "updated_at": area.updated_at,
    }


class AreaService:
    """Public methods:
        list_areas   -- areas the principal may read, ordered by name
        get_area     -- one area with the dashboards the principal may read
        create_area  -- Admin only, unique name
        update_area  -- Admin only, rename
        delete_area  -- Admin only, refused while anything references the area
    """

    def __init__(self, db: Session, recorder: Optional[AuditRecorder] = None):
        self.db = db
        self.recorder = recorder
        self.areas = AreaRepository(db)
        self.dashboards = DashboardRepository(db)

    def list_areas(self, principal: Principal) -> List[Area]:
        return self.areas.list(accessible_area_ids(self.db, principal))

    def get_area(self, principal: Principal, area_id: int) -> Dict[str, Any]:
        area = self.areas.get_by_id(area_id)
        if not authorize_area_access(self.db, principal, area_id):
            raise ForbiddenError("You do not have access to this area")

        visible = self.dashboards.list(
            accessible_dashboard_ids(self.db, principal), area_id=area_id
        )
        result = area_snapshot(area)
        result["dashboards"] = [dashboard_snapshot(d) for d in visible]
        return result

    def create_area(self, actor: RequestActor, name: str) -> Area:
        require_admin_principal(actor.principal)
        name = self._clean_name(name)
        if self.areas.name_taken(name):
            raise ConflictError(f"Area '{name}' already exists", field="name")

        area = Area(name=name)
        self._commit(lambda: self.areas.add(area), name)
        self.db.refresh(area)

        logger.info("Area created", extra={"area_id": area.id})
        self._audit("AREA_CREATED", actor, area.id, new_data=area_snapshot(area))
        return area

    def update_area(self, actor: RequestActor, area_id: int, name: str) -> Area:
        require_admin_principal(actor.principal)
        area = self.areas.get_by_id(area_id)
        name = self._clean_name(name)
        if self.areas.name_taken(name, exclude_id=area_id):
            raise ConflictError(f"Area '{name}' already exists", field="name")

        before = area_snapshot(area)
        area.name = name
        self._commit(self.db.flush, name)
        self.db.refresh(area)

        self._audit("AREA_UPDATED", actor, area.id, old_data=before, new_data=area_snapshot(area))
        return area

    def delete_area(self, actor: RequestActor, area_id: int) -> None:
        require_admin_principal(actor.principal)
        area = self.areas.get_by_id(area_id)

        dependents = self.areas.count_dependents(area_id)
        if any(dependents.values()):
            raise HasDependentsError(
                f"Area '{area.name}' still has dashboards or user grants",
                dependents,
            )

        before = area_snapshot(area)
        self.areas.delete(area)
        self.db.commit()

        logger.info("Area deleted", extra={"area_id": area_id})
        self._audit("AREA_DELETED", actor, area_id, level="warn", old_data=before)

    # ------------------------------------------------------------------

    @staticmethod
    def _clean_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Area name is required", field="name")
        return name

    def _commit(self, write, name: str) -> None:
        try:
            write()
            self.db.commit()
        except IntegrityError:
            # Lost a race on the unique name.
            self.db.rollback()
            raise ConflictError(f"Area '{name}' already exists", field="name")

    def _audit(self, action: str, actor: RequestActor, area_id: int, **kwargs) -> None:
        if self.recorder is None:
            return
        self.recorder.create_log(
            self.db, AuditEntry.for_actor(action, ENTITY, actor, entity_id=area_id, **kwargs)
        )

