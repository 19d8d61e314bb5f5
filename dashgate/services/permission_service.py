"""Access policy engine: the ONE place where read/write rules are defined.

Three tiers:
    1. Admin override    - Admins may do anything; grant checks are skipped.
    2. Area access       - a UserAreaAccess row lets a user read the area.
    3. Dashboard access  - a UserDashboardAccess row lets a user read one
                           dashboard. Tier 2 on the dashboard's area is
                           still required.

With ``settings.dashboard_granular_access`` off, tier 3 is skipped and an
area grant is enough to read every dashboard in that area.

Writes to areas and dashboards are Admin-only regardless of grants.
Listings use exactly the same predicates as the single-item checks, so
a user never lists something they could not open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import ForbiddenError, GrantNotFoundError, PrerequisiteMissingError
from ..models.access import UserDashboardAccess
from ..repositories.area_repository import DashboardRepository
from ..repositories.grant_repository import GrantRepository
from ..repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from ..core.auth import Principal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrantResult:
    grant: UserDashboardAccess
    created: bool


def _granular(granular: Optional[bool]) -> bool:
    return settings.dashboard_granular_access if granular is None else granular


def require_admin_principal(principal: Principal, message: str = "Admin access required") -> None:
    """Raise ForbiddenError unless *principal* is an Admin."""
    if not principal.is_admin:
        raise ForbiddenError(message)


# ---------------------------------------------------------------------------
# Read checks
# ---------------------------------------------------------------------------

def authorize_area_access(db: Session, principal: Principal, area_id: int) -> bool:
    """True if *principal* may read area *area_id*."""
    if principal.is_admin:
        return True
    return GrantRepository(db).has_area_access(principal.user_id, area_id)


def authorize_dashboard_access(
    db: Session,
    principal: Principal,
    dashboard_id: int,
    granular: Optional[bool] = None,
) -> bool:
    """True if *principal* may read dashboard *dashboard_id*.

    Non-Admins need the area grant for the dashboard's area and, under the
    granular model, the dashboard grant too. A missing dashboard is never
    readable.
    """
    dashboard = DashboardRepository(db).get_by_id_optional(dashboard_id)
    if dashboard is None:
        return False
    if principal.is_admin:
        return True

    grants = GrantRepository(db)
    if not grants.has_area_access(principal.user_id, dashboard.area_id):
        return False
    if not _granular(granular):
        return True
    return grants.get_dashboard_grant(principal.user_id, dashboard_id) is not None


def accessible_area_ids(db: Session, principal: Principal) -> Optional[list[int]]:
    """Area ids *principal* may read, or None meaning every area (Admin)."""
    if principal.is_admin:
        return None
    return GrantRepository(db).area_ids_for_user(principal.user_id)


def accessible_dashboard_ids(
    db: Session,
    principal: Principal,
    granular: Optional[bool] = None,
) -> Optional[list[int]]:
    """Dashboard ids *principal* may read, or None meaning every dashboard (Admin)."""
    if principal.is_admin:
        return None
    return GrantRepository(db).readable_dashboard_ids(principal.user_id, _granular(granular))


# ---------------------------------------------------------------------------
# Dashboard grants
# ---------------------------------------------------------------------------

def grant_dashboard_access(
    db: Session,
    principal: Principal,
    user_id: int,
    dashboard_id: int,
) -> GrantResult:
    """Give *user_id* access to *dashboard_id*. Upsert: a re-grant refreshes
    granted_by / granted_at instead of failing.

    Raises:
        ForbiddenError: caller is not an Admin.
        UserNotFoundError / DashboardNotFoundError: target missing.
        PrerequisiteMissingError: the user lacks access to the dashboard's area.
    """
    require_admin_principal(principal)

    UserRepository(db).get_by_id(user_id)
    dashboard = DashboardRepository(db).get_by_id(dashboard_id)

    grants = GrantRepository(db)
    if not grants.has_area_access(user_id, dashboard.area_id):
        raise PrerequisiteMissingError(user_id, dashboard_id, dashboard.area_id)

    now = datetime.now(timezone.utc)
    grant = grants.get_dashboard_grant(user_id, dashboard_id)
    created = grant is None
    if created:
        grant = UserDashboardAccess(
            user_id=user_id,
            dashboard_id=dashboard_id,
            granted_by=principal.user_id,
            granted_at=now,
        )
        db.add(grant)
    else:
        grant.granted_by = principal.user_id
        grant.granted_at = now

    db.commit()
    db.refresh(grant)
    logger.info(
        "Dashboard access granted",
        extra={"user_id": user_id, "dashboard_id": dashboard_id, "created": created},
    )
    return GrantResult(grant=grant, created=created)


def revoke_dashboard_access(db: Session, user_id: int, dashboard_id: int) -> bool:
    """Remove the grant. Raises GrantNotFoundError if there is none."""
    grants = GrantRepository(db)
    grant = grants.get_dashboard_grant(user_id, dashboard_id)
    if grant is None:
        raise GrantNotFoundError(user_id, dashboard_id)
    db.delete(grant)
    db.commit()
    logger.info("Dashboard access revoked", extra={"user_id": user_id, "dashboard_id": dashboard_id})
    return True


def list_user_dashboard_grants(db: Session, user_id: int) -> list[UserDashboardAccess]:
    UserRepository(db).get_by_id(user_id)
    return GrantRepository(db).dashboard_grants_for_user(user_id)
