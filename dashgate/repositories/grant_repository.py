"""Repository for area and dashboard access grants."""

from typing import Iterable, List, Optional

from sqlalchemy import select

from ..models.access import UserAreaAccess, UserDashboardAccess
from ..models.area import Area, Dashboard


class GrantRepository:
    """Data access for UserAreaAccess and UserDashboardAccess rows."""

    def __init__(self, db):
        self.db = db

    # -- Area grants ------------------------------------------------------

    def has_area_access(self, user_id: int, area_id: int) -> bool:
        return (
            self.db.query(UserAreaAccess)
            .filter(UserAreaAccess.user_id == user_id, UserAreaAccess.area_id == area_id)
            .first()
            is not None
        )

    def area_ids_for_user(self, user_id: int) -> List[int]:
        rows = (
            self.db.query(UserAreaAccess.area_id)
            .filter(UserAreaAccess.user_id == user_id)
            .all()
        )
        return [row.area_id for row in rows]

    def areas_for_user(self, user_id: int) -> List[Area]:
        return (
            self.db.query(Area)
            .join(UserAreaAccess, UserAreaAccess.area_id == Area.id)
            .filter(UserAreaAccess.user_id == user_id)
            .order_by(Area.name)
            .all()
        )

    def replace_area_grants(self, user_id: int, area_ids: Iterable[int]) -> None:
        """Swap the user's area grants for exactly *area_ids*.

        Only the difference is written, inside the caller's transaction;
        nothing is committed here.
        """
        desired = set(area_ids)
        current = set(self.area_ids_for_user(user_id))

        removed = current - desired
        if removed:
            self.db.query(UserAreaAccess).filter(
                UserAreaAccess.user_id == user_id,
                UserAreaAccess.area_id.in_(removed),
            ).delete(synchronize_session="fetch")
            # Dashboard grants never outlive the area grant they depend on.
            in_removed_areas = select(Dashboard.id).where(Dashboard.area_id.in_(removed))
            self.db.query(UserDashboardAccess).filter(
                UserDashboardAccess.user_id == user_id,
                UserDashboardAccess.dashboard_id.in_(in_removed_areas),
            ).delete(synchronize_session="fetch")
        for area_id in sorted(desired - current):
            self.db.add(UserAreaAccess(user_id=user_id, area_id=area_id))
        self.db.flush()

    # -- Dashboard grants -------------------------------------------------

    def get_dashboard_grant(self, user_id: int, dashboard_id: int) -> Optional[UserDashboardAccess]:
        return (
            self.db.query(UserDashboardAccess)
            .filter(
                UserDashboardAccess.user_id == user_id,
                UserDashboardAccess.dashboard_id == dashboard_id,
            )
            .first()
        )

    def dashboard_grants_for_user(self, user_id: int) -> List[UserDashboardAccess]:
        return (
            self.db.query(UserDashboardAccess)
            .filter(UserDashboardAccess.user_id == user_id)
            .order_by(UserDashboardAccess.dashboard_id)
            .all()
        )

    def drop_grants_without_area(self, dashboard_id: int, area_id: int) -> int:
        """Delete grants on *dashboard_id* held by users lacking the *area_id* grant."""
        holders = select(UserAreaAccess.user_id).where(UserAreaAccess.area_id == area_id)
        return (
            self.db.query(UserDashboardAccess)
            .filter(
                UserDashboardAccess.dashboard_id == dashboard_id,
                UserDashboardAccess.user_id.not_in(holders),
            )
            .delete(synchronize_session="fetch")
        )

    def readable_dashboard_ids(self, user_id: int, granular: bool) -> List[int]:
        """Dashboards the user may read.

        Always requires the area grant for the dashboard's area. With
        *granular* set, a dashboard grant is required as well.
        """
        query = (
            self.db.query(Dashboard.id)
            .join(
                UserAreaAccess,
                (UserAreaAccess.area_id == Dashboard.area_id)
                & (UserAreaAccess.user_id == user_id),
            )
        )
        if granular:
            query = query.join(
                UserDashboardAccess,
                (UserDashboardAccess.dashboard_id == Dashboard.id)
                & (UserDashboardAccess.user_id == user_id),
            )
        return [row.id for row in query.all()]
