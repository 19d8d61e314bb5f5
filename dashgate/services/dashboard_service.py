"""Dashboard operations: grant-filtered reads, audited Admin-only writes,
and access tracking for dashboard opens."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.auth import Principal
from ..core.dependencies import RequestActor
from ..exceptions import ForbiddenError
from ..models.area import Dashboard
from ..repositories.area_repository import AreaRepository, DashboardRepository
from ..repositories.grant_repository import GrantRepository
from .audit_service import AuditEntry, AuditRecorder
from .permission_service import (
    accessible_dashboard_ids,
    authorize_dashboard_access,
    require_admin_principal,
)

logger = logging.getLogger(__name__)

ENTITY = "DASHBOARD"


def dashboard_snapshot(dashboard: Dashboard) -> Dict[str, Any]:
    return {
        "id": dashboard.id,
        "name": dashboard.name,
        "url": dashboard.url,
        "information": dashboard.information,
        "area_id": dashboard.area_id,
        "area_name": dashboard.area.name if dashboard.area is not None else None,
        "created_at": dashboard.created_at,
        "updated_at": dashboard.updated_at,
    }


class DashboardService:
    """Public methods:
        list_dashboards  -- dashboards the principal may read, by (area_id, name)
        get_dashboard    -- 404 before 403
        create_dashboard / update_dashboard / delete_dashboard -- Admin only
        track_access     -- authorize, then record DASHBOARD_ACCESSED
    """

    def __init__(self, db: Session, recorder: Optional[AuditRecorder] = None):
        self.db = db
        self.recorder = recorder
        self.dashboards = DashboardRepository(db)
        self.areas = AreaRepository(db)
        self.grants = GrantRepository(db)

    def list_dashboards(self, principal: Principal, area_id: Optional[int] = None) -> List[Dashboard]:
        return self.dashboards.list(accessible_dashboard_ids(self.db, principal), area_id=area_id)

    def get_dashboard(self, principal: Principal, dashboard_id: int) -> Dashboard:
        dashboard = self.dashboards.get_by_id(dashboard_id)
        if not authorize_dashboard_access(self.db, principal, dashboard_id):
            raise ForbiddenError("You do not have access to this dashboard")
        return dashboard

    def create_dashboard(
        self,
        actor: RequestActor,
        name: str,
        url: str,
        area_id: int,
        information: Optional[str] = None,
    ) -> Dashboard:
        require_admin_principal(actor.principal)
        self.areas.get_by_id(area_id)

        dashboard = Dashboard(name=name, url=url, information=information, area_id=area_id)
        self.dashboards.add(dashboard)
        self.db.commit()
        self.db.refresh(dashboard)

        logger.info("Dashboard created", extra={"dashboard_id": dashboard.id, "area_id": area_id})
        self._audit("DASHBOARD_CREATED", actor, dashboard.id, new_data=dashboard_snapshot(dashboard))
        return dashboard

    def update_dashboard(
        self,
        actor: RequestActor,
        dashboard_id: int,
        name: str,
        url: str,
        area_id: int,
        information: Optional[str] = None,
    ) -> Dashboard:
        require_admin_principal(actor.principal)
        dashboard = self.dashboards.get_by_id(dashboard_id)
        self.areas.get_by_id(area_id)

        before = dashboard_snapshot(dashboard)
        moved = dashboard.area_id != area_id
        dashboard.name = name
        dashboard.url = url
        dashboard.information = information
        dashboard.area_id = area_id
        dropped = 0
        if moved:
            dropped = self.grants.drop_grants_without_area(dashboard_id, area_id)
        self.db.commit()
        self.db.refresh(dashboard)

        self._audit(
            "DASHBOARD_UPDATED", actor, dashboard.id,
            old_data=before, new_data=dashboard_snapshot(dashboard),
            additional_info={"dropped_grants": dropped} if dropped else None,
        )
        return dashboard

    def delete_dashboard(self, actor: RequestActor, dashboard_id: int) -> None:
        """Dashboard grants go with the dashboard."""
        require_admin_principal(actor.principal)
        dashboard = self.dashboards.get_by_id(dashboard_id)

        before = dashboard_snapshot(dashboard)
        self.dashboards.delete(dashboard)
        self.db.commit()

        logger.info("Dashboard deleted", extra={"dashboard_id": dashboard_id})
        self._audit("DASHBOARD_DELETED", actor, dashboard_id, level="warn", old_data=before)

    def track_access(self, actor: RequestActor, dashboard_id: int) -> Dashboard:
        """Record that the principal opened a dashboard they may read."""
        dashboard = self.get_dashboard(actor.principal, dashboard_id)
        self._audit(
            "DASHBOARD_ACCESSED", actor, dashboard.id,
            additional_info={"dashboard_name": dashboard.name, "area_id": dashboard.area_id},
        )
        return dashboard

    def _audit(self, action: str, actor: RequestActor, dashboard_id: int, **kwargs) -> None:
        if self.recorder is None:
            return
        self.recorder.create_log(
            self.db, AuditEntry.for_actor(action, ENTITY, actor, entity_id=dashboard_id, **kwargs)
        )
