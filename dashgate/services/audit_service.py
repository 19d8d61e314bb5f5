"""Audit logging service: records state-changing and access-granting operations.

Write path
    ``AuditRecorder.create_log(db, entry)`` is best-effort. It never raises,
    and callers must not branch on its return value. A disabled recorder
    returns None immediately. Payloads are sanitized (bounded depth and
    breadth, sensitive keys stripped, cycles replaced by a marker), then
    size-guarded. A failed write is retried once as a minimal SYSTEM/error
    entry. A second failure only reaches the operator log.

    The recorder owns a non-blocking lock: a call that arrives while another
    write is in flight is dropped with a warning instead of queued. Under
    concurrent load some entries are lost rather than delaying requests.

Read path
    ``get_logs`` / ``get_stats`` for the admin UI, and the retention helpers
    ``delete_logs_before`` / ``delete_logs_between`` / ``purge_old_entries``.

Usage in service layer:
    recorder.create_log(db, AuditEntry.for_actor(
        "AREA_CREATED", "AREA", actor, entity_id=area.id, new_data=snapshot))
"""

import enum
import json
import logging
import math
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import sqlalchemy.exc
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Sanitization bounds
MAX_DEPTH = 3
MAX_LIST_ITEMS = 10
MAX_MAPPING_KEYS = 20
SENSITIVE_KEYS = frozenset({"password", "token", "password_hash", "reset_token"})
CIRCULAR_MARKER = "[Circular Reference]"
TRUNCATED_MARKER = "[Truncated]"

DEFAULT_MAX_PAYLOAD_BYTES = 50_000
MAX_PAGE_SIZE = 100
LEVELS = ("info", "warn", "error")

SYSTEM_ENTITY = "SYSTEM"


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

@dataclass
class AuditEntry:
    """Raw input to ``create_log``. Ids may be anything int()-able or None."""

    action: str
    entity_type: str = "UNKNOWN"
    entity_id: Any = None
    user_id: Any = None
    admin_id: Any = None
    level: str = "info"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    old_data: Any = None
    new_data: Any = None
    additional_info: Any = None

    @classmethod
    def for_actor(cls, action: str, entity_type: str, actor, **kwargs) -> "AuditEntry":
        """Build an entry attributed to a RequestActor (see core.dependencies)."""
        info = {"route": actor.route, "method": actor.method, "user_name": actor.principal.name}
        extra = kwargs.pop("additional_info", None) or {}
        info.update(extra)
        return cls(
            action=action,
            entity_type=entity_type,
            user_id=actor.user_id,
            admin_id=actor.admin_id,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            additional_info=info,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def sanitize(value: Any, max_depth: int = MAX_DEPTH, _depth: int = 0, _path: frozenset = frozenset()) -> Any:
    """Return a JSON-safe, size-bounded copy of *value*.

    Containers deeper than *max_depth* become ``TRUNCATED_MARKER``; a
    container already on the current path becomes ``CIRCULAR_MARKER``.
    Keys in ``SENSITIVE_KEYS`` are dropped. Never raises.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        if id(value) in _path:
            return CIRCULAR_MARKER
        if _depth >= max_depth:
            return TRUNCATED_MARKER
        path = _path | {id(value)}

        if isinstance(value, Mapping):
            result = {}
            for key in list(value.keys())[:MAX_MAPPING_KEYS]:
                name = str(key)
                if name in SENSITIVE_KEYS:
                    continue
                try:
                    result[name] = sanitize(value[key], max_depth, _depth + 1, path)
                except Exception:
                    result[name] = CIRCULAR_MARKER
            return result

        items = []
        for item in list(value)[:MAX_LIST_ITEMS]:
            try:
                items.append(sanitize(item, max_depth, _depth + 1, path))
            except Exception:
                items.append(CIRCULAR_MARKER)
        return items

    try:
        return str(value)
    except Exception:
        return CIRCULAR_MARKER


def coerce_id(value: Any) -> Optional[int]:
    """int(value), or None for absent / unparseable input. Never raises."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 10)
    except (TypeError, ValueError):
        return None


def _normalize_level(level: Any) -> str:
    level = str(level or "info").lower()
    if level == "warning":
        level = "warn"
    return level if level in LEVELS else "info"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Recorder
# ---------------------------------------------------------------------------

class AuditRecorder:
    """Best-effort audit writer. One instance per process, owned by the app.

    Not itself auditable: it writes AuditLog rows directly and never calls
    back into the service layer.
    """

    def __init__(self, enabled: bool = True, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES):
        self.enabled = enabled
        self.max_payload_bytes = max_payload_bytes
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def build_record(self, entry: AuditEntry) -> AuditLog:
        """Turn an entry into an unsaved AuditLog row. Pure, never raises."""
        entity_type = entry.entity_type or "UNKNOWN"
        user_id = coerce_id(entry.user_id)
        details = {
            "old_data": sanitize(entry.old_data),
            "new_data": sanitize(entry.new_data),
            "additional_info": sanitize(entry.additional_info),
        }

        size = len(json.dumps(details, default=str))
        if size > self.max_payload_bytes:
            logger.warning(
                "Audit details too large, storing summary",
                extra={"action": entry.action, "size": size},
            )
            details = {
                "error": "Payload too large for audit log",
                "size": size,
                "summary": {
                    "action": entry.action,
                    "entity_type": entity_type,
                    "user_id": user_id,
                },
            }

        return AuditLog(
            action=entry.action,
            entity_type=entity_type,
            entity_id=coerce_id(entry.entity_id),
            user_id=user_id,
            admin_id=coerce_id(entry.admin_id),
            level=_normalize_level(entry.level),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            details=details,
            timestamp=_utcnow(),
        )

    def create_log(self, db: Session, entry: AuditEntry) -> Optional[AuditLog]:
        """Persist *entry*. Returns the stored row, or None if skipped or failed."""
        if not self.enabled:
            return None

        if not self._in_flight.acquire(blocking=False):
            logger.warning(
                "Audit entry dropped: another audit write is in progress",
                extra={"action": entry.action},
            )
            return None

        try:
            return self._write(db, entry)
        finally:
            self._in_flight.release()

    def _write(self, db: Session, entry: AuditEntry) -> Optional[AuditLog]:
        try:
            record = self.build_record(entry)
            db.add(record)
            db.commit()
            db.refresh(record)
            return record
        except Exception as e:
            # Anything at all: auditing must not break the calling operation.
            db.rollback()
            logger.error("Failed to write audit log entry: %s", e, extra={"action": entry.action})
            self._write_fallback(db, entry, e)
            return None

    def _write_fallback(self, db: Session, entry: AuditEntry, original: Exception) -> None:
        try:
            db.add(AuditLog(
                action=entry.action or "ERROR",
                entity_type=SYSTEM_ENTITY,
                level="error",
                details={
                    "error": "Failed to record full audit entry",
                    "original_error": str(original)[:1000],
                },
                timestamp=_utcnow(),
            ))
            db.commit()
        except Exception as fallback_error:
            db.rollback()
            logger.error(
                "Audit fallback write failed: %s", fallback_error,
                extra={"action": entry.action},
                exc_info=True,
            )

    # -- Retention --------------------------------------------------------

    def clean_old_logs(self, db: Session, older_than_days: int) -> dict:
        """Delete entries older than *older_than_days* days.

        The minimum age floor is enforced by the HTTP boundary.
        """
        if not self.enabled:
            return {"deleted": 0, "message": "Audit logging is disabled"}

        cutoff = _utcnow() - timedelta(days=older_than_days)
        deleted = delete_logs_before(db, cutoff)
        logger.info("Audit cleanup removed %d entries", deleted, extra={"cutoff": cutoff.isoformat()})
        return {
            "deleted": deleted,
            "cutoff_date": cutoff.isoformat(),
            "message": f"{deleted} log entries older than {older_than_days} days removed",
        }

    def clean_logs_by_date_range(self, db: Session, start: datetime, end: datetime) -> dict:
        """Delete entries with start <= timestamp <= end."""
        if not self.enabled:
            return {"deleted": 0, "message": "Audit logging is disabled"}

        deleted = delete_logs_between(db, start, end)
        logger.info("Audit range cleanup removed %d entries", deleted)
        return {
            "deleted": deleted,
            "start_date": as_utc(start).isoformat(),
            "end_date": as_utc(end).isoformat(),
            "message": f"{deleted} log entries removed",
        }


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@dataclass
class LogFilters:
    """AND-combined filters for ``get_logs``. Date bounds are inclusive."""

    page: int = 1
    limit: int = 50
    action: Optional[str] = None
    entity_type: Optional[str] = None
    user_id: Optional[int] = None
    admin_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def _filtered_query(db: Session, filters: LogFilters):
    query = db.query(AuditLog)
    if filters.action:
        query = query.filter(AuditLog.action == filters.action)
    if filters.entity_type:
        query = query.filter(AuditLog.entity_type == filters.entity_type)
    if filters.user_id is not None:
        query = query.filter(AuditLog.user_id == filters.user_id)
    if filters.admin_id is not None:
        query = query.filter(AuditLog.admin_id == filters.admin_id)
    if filters.start_date is not None:
        query = query.filter(AuditLog.timestamp >= as_utc(filters.start_date))
    if filters.end_date is not None:
        query = query.filter(AuditLog.timestamp <= as_utc(filters.end_date))
    return query


def _user_ref(user) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def _denormalize(db: Session, logs: list[AuditLog]) -> list[dict]:
    """Attach user/admin name and email using one batch user query."""
    ids = {i for log in logs for i in (log.user_id, log.admin_id) if i is not None}
    users = {u.id: u for u in UserRepository(db).get_many(ids)}

    result = []
    for log in logs:
        user = users.get(log.user_id) if log.user_id is not None else None
        admin = users.get(log.admin_id) if log.admin_id is not None else None
        result.append({
            "id": log.id,
            "timestamp": log.timestamp,
            "level": log.level,
            "action": log.action,
            "entity_type": log.entity_type,
            "entity_id": log.entity_id,
            "user_id": log.user_id,
            "admin_id": log.admin_id,
            "ip_address": log.ip_address,
            "user_agent": log.user_agent,
            "details": log.details,
            "user": _user_ref(user),
            "admin": _user_ref(admin),
        })
    return result


def fetch_logs(db: Session, filters: LogFilters, limit: int, offset: int = 0) -> list[dict]:
    """Newest-first, denormalized logs without the page-size clamp (used by export)."""
    logs = (
        _filtered_query(db, filters)
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return _denormalize(db, logs)


def get_logs(db: Session, filters: LogFilters) -> dict:
    """One page of logs plus pagination metadata.

    ``limit`` is clamped to [1, 100] and ``page`` to >= 1.
    ``total_items`` counts every row matching the filters.
    """
    page = max(1, filters.page or 1)
    take = min(max(1, filters.limit or 1), MAX_PAGE_SIZE)

    total = _filtered_query(db, filters).count()
    logs = fetch_logs(db, filters, limit=take, offset=(page - 1) * take)

    return {
        "logs": logs,
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / take) if total else 0,
            "total_items": total,
            "items_per_page": take,
        },
    }


def get_stats(db: Session, days: int = 30) -> dict:
    """Counts over the trailing *days* window, overall and per action / entity type."""
    cutoff = _utcnow() - timedelta(days=days)
    window = AuditLog.timestamp >= cutoff

    total = db.query(func.count(AuditLog.id)).filter(window).scalar() or 0
    by_action = (
        db.query(AuditLog.action, func.count(AuditLog.id))
        .filter(window)
        .group_by(AuditLog.action)
        .all()
    )
    by_entity = (
        db.query(AuditLog.entity_type, func.count(AuditLog.id))
        .filter(window)
        .group_by(AuditLog.entity_type)
        .all()
    )
    return {
        "total_logs": total,
        "action_stats": {action: count for action, count in by_action},
        "entity_stats": {entity: count for entity, count in by_entity},
    }


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------

def delete_logs_before(db: Session, cutoff: datetime) -> int:
    """Delete entries strictly older than *cutoff*. Returns the count."""
    count = (
        db.query(AuditLog)
        .filter(AuditLog.timestamp < as_utc(cutoff))
        .delete(synchronize_session=False)
    )
    db.commit()
    return count


def delete_logs_between(db: Session, start: datetime, end: datetime) -> int:
    """Delete entries with start <= timestamp <= end. Returns the count."""
    count = (
        db.query(AuditLog)
        .filter(AuditLog.timestamp >= as_utc(start), AuditLog.timestamp <= as_utc(end))
        .delete(synchronize_session=False)
    )
    db.commit()
    return count


def purge_old_entries(db: Session, days: int = 365) -> int:
    """Startup retention: delete entries older than `days`. Returns count of deleted rows.

    Skipped when days <= 0 (keep forever). Never raises; logs failures.
    """
    if days <= 0:
        return 0

    try:
        return delete_logs_before(db, _utcnow() - timedelta(days=days))
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to purge audit log: %s", e)
        db.rollback()
        return 0
