"""Audit log API (Admin only): browse, stats, CSV export and retention.

Manual cleanup never removes entries younger than AUDIT_MIN_CLEANUP_DAYS.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.dependencies import RequestActor, get_audit_recorder, require_admin_actor
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.audit import AuditLogPage, AuditStats, CleanupResult
from ..services import audit_service
from ..services.audit_service import AuditEntry, AuditRecorder, LogFilters
from ..services.log_export import render_logs_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/logs", tags=["logs"])

ENTITY = "AUDIT_LOG"


def log_filters(
    page: int = Query(1, description="Values below 1 are treated as 1"),
    limit: int = Query(50, description="Clamped to [1, 100]"),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    admin_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Inclusive upper bound (ISO 8601)"),
) -> LogFilters:
    return LogFilters(
        page=page,
        limit=limit,
        action=action,
        entity_type=entity_type,
        user_id=user_id,
        admin_id=admin_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("", response_model=AuditLogPage)
def list_logs(
    filters: LogFilters = Depends(log_filters),
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
):
    return audit_service.get_logs(db, filters)


@router.get("/stats", response_model=AuditStats)
def log_stats(
    days: int = Query(30, ge=1, le=3650),
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
):
    return audit_service.get_stats(db, days=days)


@router.get("/export")
def export_logs(
    filters: LogFilters = Depends(log_filters),
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
):
    """Filtered logs as CSV, newest first, capped at AUDIT_EXPORT_LIMIT rows."""
    logs = audit_service.fetch_logs(db, filters, limit=settings.audit_export_limit)
    filename = f"audit-logs-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}.csv"
    return Response(
        content=render_logs_csv(logs),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("", response_model=CleanupResult)
def clean_old_logs(
    older_than_days: int = Query(..., description="Delete entries older than this many days"),
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    minimum = settings.audit_min_cleanup_days
    if older_than_days < minimum:
        raise ValidationError(
            f"older_than_days must be at least {minimum}", field="older_than_days"
        )

    result = recorder.clean_old_logs(db, older_than_days)
    recorder.create_log(db, AuditEntry.for_actor(
        "LOGS_CLEANED", ENTITY, actor,
        level="warn",
        additional_info={"older_than_days": older_than_days, "deleted": result["deleted"]},
    ))
    return result


@router.delete("/range", response_model=CleanupResult)
def clean_logs_by_range(
    start_date: datetime = Query(..., description="Inclusive lower bound (ISO 8601)"),
    end_date: datetime = Query(..., description="Inclusive upper bound (ISO 8601)"),
    db: Session = Depends(get_db),
    actor: RequestActor = Depends(require_admin_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    start = audit_service.as_utc(start_date)
    end = audit_service.as_utc(end_date)
    if start > end:
        raise ValidationError("start_date must not be after end_date", field="start_date")

    minimum = settings.audit_min_cleanup_days
    if end > datetime.now(timezone.utc) - timedelta(days=minimum):
        raise ValidationError(
            f"end_date must be at least {minimum} days in the past", field="end_date"
        )

    result = recorder.clean_logs_by_date_range(db, start, end)
    recorder.create_log(db, AuditEntry.for_actor(
        "LOGS_CLEANED", ENTITY, actor,
        level="warn",
        additional_info={
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "deleted": result["deleted"],
        },
    ))
    return result
