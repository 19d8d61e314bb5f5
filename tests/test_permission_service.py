"""Tests for the access policy engine: tiers, listings, grants."""

import pytest

from dashgate.core.auth import Principal
from dashgate.exceptions import (
    DashboardNotFoundError,
    ForbiddenError,
    GrantNotFoundError,
    PrerequisiteMissingError,
    UserNotFoundError,
)
from dashgate.models import Role, UserDashboardAccess
from dashgate.services import permission_service as ps


def principal_of(user) -> Principal:
    return Principal(user_id=user.id, email=user.email, role=user.role, name=user.name)


@pytest.fixture()
def sales(make_area):
    return make_area("Sales")


@pytest.fixture()
def q1(make_dashboard, sales):
    return make_dashboard(sales, "Q1 Report")


class TestAreaAccess:

    def test_admin_reads_everything(self, db, admin, sales):
        assert ps.authorize_area_access(db, principal_of(admin), sales.id)
        assert ps.accessible_area_ids(db, principal_of(admin)) is None

    def test_user_without_grant_is_denied(self, db, user, sales):
        assert not ps.authorize_area_access(db, principal_of(user), sales.id)
        assert ps.accessible_area_ids(db, principal_of(user)) == []

    def test_user_with_grant_is_allowed(self, db, user, sales, make_area, grant_area):
        make_area("Finance")
        grant_area(user, sales)
        assert ps.authorize_area_access(db, principal_of(user), sales.id)
        assert ps.accessible_area_ids(db, principal_of(user)) == [sales.id]


class TestDashboardAccess:

    def test_area_grant_alone_is_not_enough_under_granular_model(self, db, user, sales, q1, grant_area):
        grant_area(user, sales)
        assert not ps.authorize_dashboard_access(db, principal_of(user), q1.id, granular=True)
        assert ps.accessible_dashboard_ids(db, principal_of(user), granular=True) == []

    def test_area_grant_is_enough_under_coarse_model(self, db, user, sales, q1, grant_area):
        grant_area(user, sales)
        assert ps.authorize_dashboard_access(db, principal_of(user), q1.id, granular=False)
        assert ps.accessible_dashboard_ids(db, principal_of(user), granular=False) == [q1.id]

    def test_both_grants_allow(self, db, admin, user, sales, q1, grant_area, grant_dashboard):
        grant_area(user, sales)
        grant_dashboard(user, q1, granted_by=admin)
        assert ps.authorize_dashboard_access(db, principal_of(user), q1.id, granular=True)
        assert ps.accessible_dashboard_ids(db, principal_of(user), granular=True) == [q1.id]

    def test_dashboard_grant_without_area_grant_denies(self, db, user, sales, q1, grant_dashboard):
        # A stale dashboard grant never bypasses the area tier.
        grant_dashboard(user, q1)
        assert not ps.authorize_dashboard_access(db, principal_of(user), q1.id, granular=True)
        assert ps.accessible_dashboard_ids(db, principal_of(user), granular=True) == []

    def test_missing_dashboard_is_never_readable(self, db, admin):
        assert not ps.authorize_dashboard_access(db, principal_of(admin), 9999)

    def test_listing_matches_single_checks(
        self, db, user, make_area, make_dashboard, grant_area, grant_dashboard
    ):
        sales, finance = make_area("Sales"), make_area("Finance")
        dashboards = [
            make_dashboard(sales, "A"),
            make_dashboard(sales, "B"),
            make_dashboard(finance, "C"),
        ]
        grant_area(user, sales)
        grant_dashboard(user, dashboards[0])
        grant_dashboard(user, dashboards[2])

        principal = principal_of(user)
        listed = set(ps.accessible_dashboard_ids(db, principal, granular=True))
        checked = {d.id for d in dashboards if ps.authorize_dashboard_access(db, principal, d.id, granular=True)}
        assert listed == checked == {dashboards[0].id}


class TestGrantDashboardAccess:

    def test_requires_admin(self, db, user, q1):
        with pytest.raises(ForbiddenError):
            ps.grant_dashboard_access(db, principal_of(user), user.id, q1.id)

    def test_prerequisite_area_grant(self, db, admin, user, q1):
        with pytest.raises(PrerequisiteMissingError) as exc:
            ps.grant_dashboard_access(db, principal_of(admin), user.id, q1.id)
        assert exc.value.status_code == 400
        assert exc.value.details["area_id"] == q1.area_id
        assert db.query(UserDashboardAccess).count() == 0

    def test_unknown_targets(self, db, admin, q1):
        with pytest.raises(UserNotFoundError):
            ps.grant_dashboard_access(db, principal_of(admin), 9999, q1.id)
        with pytest.raises(DashboardNotFoundError):
            ps.grant_dashboard_access(db, principal_of(admin), admin.id, 9999)

    def test_grant_then_regrant_is_upsert(self, db, admin, user, sales, q1, grant_area):
        grant_area(user, sales)
        first = ps.grant_dashboard_access(db, principal_of(admin), user.id, q1.id)
        assert first.created is True
        assert first.grant.granted_by == admin.id

        second = ps.grant_dashboard_access(db, principal_of(admin), user.id, q1.id)
        assert second.created is False
        assert db.query(UserDashboardAccess).count() == 1

    def test_revoke(self, db, admin, user, sales, q1, grant_area):
        grant_area(user, sales)
        ps.grant_dashboard_access(db, principal_of(admin), user.id, q1.id)

        assert ps.revoke_dashboard_access(db, user.id, q1.id) is True
        assert not ps.authorize_dashboard_access(db, principal_of(user), q1.id, granular=True)

        with pytest.raises(GrantNotFoundError):
            ps.revoke_dashboard_access(db, user.id, q1.id)

    def test_list_user_grants(self, db, admin, user, sales, q1, grant_area):
        grant_area(user, sales)
        ps.grant_dashboard_access(db, principal_of(admin), user.id, q1.id)
        grants = ps.list_user_dashboard_grants(db, user.id)
        assert [g.dashboard_id for g in grants] == [q1.id]

        with pytest.raises(UserNotFoundError):
            ps.list_user_dashboard_grants(db, 9999)


class TestRoleIsStructural:

    def test_role_enum_values(self):
        assert Role("Admin") is Role.ADMIN
        with pytest.raises(ValueError):
            Role("ADMIN")
