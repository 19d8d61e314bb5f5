"""Dashboard-level grant management (Admin only).

A grant can only be given to a user who already holds the area grant for
the dashboard's area; otherwise the call fails with PREREQUISITE_MISSING.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.dependencies import RequestActor, get_audit_recorder, require_admin_actor
from ..database import get_db
from ..schemas.user import DashboardGrantRequest, DashboardGrantResponse
from ..services import permission_service
from ..services.audit_service import AuditEntry, AuditRecorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard-permissions", tags=["dashboard-permissions"])

ENTITY = "DASHBOARD_ACCESS"


class RevokeResponse(BaseModel):
    revoked: bool
    user_id: int
    dashboard_id: int


@router.post("/grant", response_model=DashboardGrantResponse)
def grant_access(
    body: DashboardGrantRequest,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    """Grant (or refresh) a user's access to one dashboard."""
    result = permission_service.grant_dashboard_access(
        db, actor.principal, body.user_id, body.dashboard_id
    )
    response = DashboardGrantResponse(
        user_id=result.grant.user_id,
        dashboard_id=result.grant.dashboard_id,
        granted_by=result.grant.granted_by,
        granted_at=result.grant.granted_at,
        created=result.created,
    )
    recorder.create_log(db, AuditEntry.for_actor(
        "DASHBOARD_ACCESS_GRANTED", ENTITY, actor,
        entity_id=body.dashboard_id,
        new_data=response.model_dump(),
        additional_info={"target_user_id": body.user_id},
    ))
    return response


@router.post("/revoke", response_model=RevokeResponse)
def revoke_access(
    body: DashboardGrantRequest,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    permission_service.revoke_dashboard_access(db, body.user_id, body.dashboard_id)
    recorder.create_log(db, AuditEntry.for_actor(
        "DASHBOARD_ACCESS_REVOKED", ENTITY, actor,
        entity_id=body.dashboard_id,
        level="warn",
        old_data={"user_id": body.user_id, "dashboard_id": body.dashboard_id},
        additional_info={"target_user_id": body.user_id},
    ))
    return RevokeResponse(revoked=True, user_id=body.user_id, dashboard_id=body.dashboard_id)


@router.get("/user/{user_id}", response_model=List[DashboardGrantResponse])
def list_user_grants(
    user_id: int,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
):
    return permission_service.list_user_dashboard_grants(db, user_id)
