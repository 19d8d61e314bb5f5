"""Tests for /api/dashboard-permissions."""

import pytest

from dashgate.models import AuditLog, UserDashboardAccess


@pytest.fixture()
def q1(make_area, make_dashboard):
    return make_dashboard(make_area("Sales"), "Q1 Report")


def _grant(client, headers, user_id, dashboard_id):
    return client.post(
        "/api/dashboard-permissions/grant",
        json={"user_id": user_id, "dashboard_id": dashboard_id},
        headers=headers,
    )


class TestGrant:

    def test_grant_creates_then_refreshes(self, client, db, admin, user, admin_headers, q1, grant_area):
        grant_area(user, q1.area)

        first = _grant(client, admin_headers, user.id, q1.id)
        assert first.status_code == 200
        assert first.json()["created"] is True
        assert first.json()["granted_by"] == admin.id

        second = _grant(client, admin_headers, user.id, q1.id)
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert db.query(UserDashboardAccess).count() == 1

        logs = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_ACCESS_GRANTED").all()
        assert len(logs) == 2
        assert logs[0].entity_type == "DASHBOARD_ACCESS"
        assert logs[0].details["additional_info"]["target_user_id"] == user.id

    def test_grant_without_area_access_is_rejected(self, client, db, user, admin_headers, q1):
        resp = _grant(client, admin_headers, user.id, q1.id)
        assert resp.status_code == 400
        assert resp.json()["error"] == "PREREQUISITE_MISSING"
        assert resp.json()["details"]["area_id"] == q1.area_id
        assert db.query(UserDashboardAccess).count() == 0

    def test_grant_to_unknown_user_or_dashboard(self, client, user, admin_headers, q1):
        assert _grant(client, admin_headers, 9999, q1.id).json()["error"] == "USER_NOT_FOUND"
        assert _grant(client, admin_headers, user.id, 9999).json()["error"] == "DASHBOARD_NOT_FOUND"

    def test_invalid_ids_are_422(self, client, admin_headers):
        assert _grant(client, admin_headers, 0, 1).status_code == 422

    def test_requires_admin(self, client, user, user_headers, q1, grant_area):
        grant_area(user, q1.area)
        assert _grant(client, user_headers, user.id, q1.id).status_code == 403


class TestRevokeAndList:

    def test_revoke(self, client, db, user, admin_headers, q1, grant_area, grant_dashboard):
        grant_area(user, q1.area)
        grant_dashboard(user, q1)

        resp = client.post(
            "/api/dashboard-permissions/revoke",
            json={"user_id": user.id, "dashboard_id": q1.id},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == {"revoked": True, "user_id": user.id, "dashboard_id": q1.id}
        assert db.query(UserDashboardAccess).count() == 0

        log = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_ACCESS_REVOKED").one()
        assert log.level == "warn"

    def test_revoke_missing_grant_is_404(self, client, user, admin_headers, q1):
        resp = client.post(
            "/api/dashboard-permissions/revoke",
            json={"user_id": user.id, "dashboard_id": q1.id},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "GRANT_NOT_FOUND"

    def test_list_user_grants(self, client, admin, user, admin_headers, q1, grant_area, grant_dashboard):
        grant_area(user, q1.area)
        grant_dashboard(user, q1, granted_by=admin)

        resp = client.get(f"/api/dashboard-permissions/user/{user.id}", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 1
        assert data[0]["dashboard_id"] == q1.id
        assert data[0]["granted_by"] == admin.id

    def test_list_for_unknown_user_is_404(self, client, admin_headers):
        resp = client.get("/api/dashboard-permissions/user/9999", headers=admin_headers)
        assert resp.status_code == 404
