"""Area API: grant-filtered reads for everyone, writes for Admins."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import Principal, require_auth
from ..core.dependencies import RequestActor, get_audit_recorder, require_admin_actor
from ..database import get_db
from ..schemas.area import AreaCreate, AreaDetailResponse, AreaResponse, AreaUpdate
from ..services.area_service import AreaService
from ..services.audit_service import AuditRecorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/areas", tags=["areas"])


@router.get("", response_model=List[AreaResponse])
def list_areas(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_auth),
):
    """Areas the caller holds a grant for (all areas for Admins)."""
    return AreaService(db).list_areas(principal)


@router.get("/{area_id}", response_model=AreaDetailResponse)
def get_area(
    area_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_auth),
):
    return AreaService(db).get_area(principal, area_id)


@router.post("", response_model=AreaResponse, status_code=201)
def create_area(
    data: AreaCreate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    return AreaService(db, recorder).create_area(actor, data.name)


@router.put("/{area_id}", response_model=AreaResponse)
def update_area(
    area_id: int,
    data: AreaUpdate,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    return AreaService(db, recorder).update_area(actor, area_id, data.name)


@router.delete("/{area_id}", status_code=204)
def delete_area(
    area_id: int,
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    """Refused with 409 while dashboards or user grants still reference the area."""
    AreaService(db, recorder).delete_area(actor, area_id)
