"""Dashboard API.

Reads are filtered by area and dashboard grants; writes are Admin-only.
``POST /api/dashboards/{id}/access`` is what the frontend calls when a
user opens a dashboard: it re-checks access and records the visit.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import Principal, require_auth
from ..core.dependencies import RequestActor, get_audit_recorder, require_actor, require_admin_actor
from ..database import get_db
from ..schemas.area import DashboardCreate, DashboardResponse, DashboardUpdate
from ..services.audit_service import AuditRecorder
from ..services.dashboard_service import DashboardService, dashboard_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboards", tags=["dashboards"])


@router.get("", response_model=List[DashboardResponse])
def list_dashboards(
    area_id: Optional[int] = Query(None, description="Only dashboards in this area"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_auth),
):
    dashboards = DashboardService(db).list_dashboards(principal, area_id=area_id)
    return [dashboard_snapshot(d) for d in dashboards]


@router.get("/{dashboard_id}", response_model=DashboardResponse)
def get_dashboard(
    dashboard_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_auth),
):
    return dashboard_snapshot(DashboardService(db).get_dashboard(principal, dashboard_id))


@router.post("/{dashboard_id}/access", response_model=DashboardResponse)
def track_dashboard_access(
    dashboard_id: int,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    dashboard = DashboardService(db, recorder).track_access(actor, dashboard_id)
    return dashboard_snapshot(dashboard)


@router.post("", response_model=DashboardResponse, status_code=201)
def create_dashboard(
    data: DashboardCreate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    dashboard = DashboardService(db, recorder).create_dashboard(
        actor,
        name=data.name,
        url=data.url,
        area_id=data.area_id,
        information=data.information,
    )
    return dashboard_snapshot(dashboard)


@router.put("/{dashboard_id}", response_model=DashboardResponse)
def update_dashboard(
    dashboard_id: int,
    data: DashboardUpdate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    dashboard = DashboardService(db, recorder).update_dashboard(
        actor,
        dashboard_id,
        name=data.name,
        url=data.url,
        area_id=data.area_id,
        information=data.information,
    )
    return dashboard_snapshot(dashboard)


@router.delete("/{dashboard_id}", status_code=204)
def delete_dashboard(
    dashboard_id: int,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    DashboardService(db, recorder).delete_dashboard(actor, dashboard_id)
