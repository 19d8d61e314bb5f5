"""Repositories for areas and dashboards."""

from typing import List, Optional, Sequence

from ..exceptions import AreaNotFoundError, DashboardNotFoundError
from ..models.access import UserAreaAccess
from ..models.area import Area, Dashboard
from .base import BaseRepository


class AreaRepository(BaseRepository[Area]):
    model_class = Area
    not_found_error = AreaNotFoundError

    def name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Area.id).filter(Area.name == name)
        if exclude_id is not None:
            query = query.filter(Area.id != exclude_id)
        return query.first() is not None

    def list(self, area_ids: Optional[Sequence[int]] = None) -> List[Area]:
        """All areas ordered by name, optionally restricted to *area_ids*.

        ``None`` means no restriction; an empty sequence yields an empty list.
        """
        query = self.db.query(Area)
        if area_ids is not None:
            if not area_ids:
                return []
            query = query.filter(Area.id.in_(area_ids))
        return query.order_by(Area.name).all()

    def count_ids(self, area_ids: Sequence[int]) -> int:
        if not area_ids:
            return 0
        return self.db.query(Area).filter(Area.id.in_(set(area_ids))).count()

    def count_dependents(self, area_id: int) -> dict[str, int]:
        """Rows that block deletion of the area."""
        dashboards = self.db.query(Dashboard).filter(Dashboard.area_id == area_id).count()
        grants = self.db.query(UserAreaAccess).filter(UserAreaAccess.area_id == area_id).count()
        return {"dashboards": dashboards, "user_area_access": grants}


class DashboardRepository(BaseRepository[Dashboard]):
    model_class = Dashboard
    not_found_error = DashboardNotFoundError

    def list(
        self,
        dashboard_ids: Optional[Sequence[int]] = None,
        area_id: Optional[int] = None,
    ) -> List[Dashboard]:
        """Dashboards ordered by (area_id, name).

        ``dashboard_ids=None`` means no restriction; an empty sequence yields
        an empty list.
        """
        query = self.db.query(Dashboard)
        if dashboard_ids is not None:
            if not dashboard_ids:
                return []
            query = query.filter(Dashboard.id.in_(dashboard_ids))
        if area_id is not None:
            query = query.filter(Dashboard.area_id == area_id)
        return query.order_by(Dashboard.area_id, Dashboard.name).all()

    def count(self) -> int:
        return self.db.query(Dashboard).count()
