"""Tests for /api/dashboards."""

from unittest.mock import patch

import pytest

from dashgate.core.config import settings
from dashgate.models import AuditLog, Dashboard, UserDashboardAccess


@pytest.fixture()
def sales(make_area):
    return make_area("Sales")


def _payload(area_id, **overrides):
    body = {
        "name": "Q1 Report",
        "url": "https://bi.example.com/embed/q1",
        "information": "Quarterly revenue",
        "area_id": area_id,
    }
    body.update(overrides)
    return body


class TestReads:

    def test_admin_lists_all_ordered_by_area_then_name(
        self, client, admin_headers, make_area, make_dashboard
    ):
        sales, finance = make_area("Sales"), make_area("Finance")
        make_dashboard(sales, "B")
        make_dashboard(sales, "A")
        make_dashboard(finance, "C")
        names = [d["name"] for d in client.get("/api/dashboards", headers=admin_headers).json()]
        assert names == ["A", "B", "C"]

    def test_user_listing_uses_granular_grants(
        self, client, user, user_headers, sales, make_dashboard, grant_area, grant_dashboard
    ):
        q1 = make_dashboard(sales, "Q1 Report")
        make_dashboard(sales, "Q2 Report")
        grant_area(user, sales)
        grant_dashboard(user, q1)

        data = client.get("/api/dashboards", headers=user_headers).json()
        assert [d["id"] for d in data] == [q1.id]
        assert data[0]["area_name"] == "Sales"

    def test_coarse_model_shows_whole_area(
        self, client, user, user_headers, sales, make_dashboard, grant_area
    ):
        make_dashboard(sales, "Q1 Report")
        make_dashboard(sales, "Q2 Report")
        grant_area(user, sales)

        with patch.object(settings, "dashboard_granular_access", False):
            data = client.get("/api/dashboards", headers=user_headers).json()
        assert len(data) == 2

    def test_filter_by_area(self, client, admin_headers, make_area, make_dashboard):
        sales, finance = make_area("Sales"), make_area("Finance")
        make_dashboard(sales, "A")
        make_dashboard(finance, "B")
        data = client.get(f"/api/dashboards?area_id={finance.id}", headers=admin_headers).json()
        assert [d["name"] for d in data] == ["B"]

    def test_get_missing_is_404(self, client, user_headers):
        resp = client.get("/api/dashboards/9999", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "DASHBOARD_NOT_FOUND"

    def test_get_without_dashboard_grant_is_403(
        self, client, user, user_headers, sales, make_dashboard, grant_area
    ):
        q1 = make_dashboard(sales)
        grant_area(user, sales)
        assert client.get(f"/api/dashboards/{q1.id}", headers=user_headers).status_code == 403


class TestWrites:

    def test_create(self, client, db, admin_headers, sales):
        resp = client.post("/api/dashboards", json=_payload(sales.id), headers=admin_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["area_id"] == sales.id
        assert data["area_name"] == "Sales"

        log = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_CREATED").one()
        assert log.entity_id == data["id"]
        assert log.details["new_data"]["url"] == "https://bi.example.com/embed/q1"

    def test_create_in_missing_area_is_404(self, client, db, admin_headers):
        resp = client.post("/api/dashboards", json=_payload(9999), headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "AREA_NOT_FOUND"
        assert db.query(Dashboard).count() == 0

    def test_create_rejects_non_http_url(self, client, admin_headers, sales):
        resp = client.post(
            "/api/dashboards", json=_payload(sales.id, url="javascript:alert(1)"), headers=admin_headers
        )
        assert resp.status_code == 422

    def test_create_requires_admin(self, client, user_headers, sales):
        resp = client.post("/api/dashboards", json=_payload(sales.id), headers=user_headers)
        assert resp.status_code == 403

    def test_update_moves_between_areas(self, client, db, admin_headers, make_area, make_dashboard):
        sales, finance = make_area("Sales"), make_area("Finance")
        q1 = make_dashboard(sales)
        resp = client.put(
            f"/api/dashboards/{q1.id}",
            json=_payload(finance.id, name="Q1 Finance"),
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["area_name"] == "Finance"

        log = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_UPDATED").one()
        assert log.details["old_data"]["area_id"] == sales.id
        assert log.details["new_data"]["area_id"] == finance.id

    def test_move_drops_grants_of_users_outside_new_area(
        self, client, db, make_user, admin_headers, headers_for,
        make_area, make_dashboard, grant_area, grant_dashboard,
    ):
        sales, finance = make_area("Sales"), make_area("Finance")
        q1 = make_dashboard(sales)
        bob = make_user(email="bob@example.com")
        carol = make_user(email="carol@example.com")
        for person in (bob, carol):
            grant_area(person, sales)
            grant_dashboard(person, q1)
        grant_area(carol, finance)

        resp = client.put(f"/api/dashboards/{q1.id}", json=_payload(finance.id), headers=admin_headers)
        assert resp.status_code == 200
        assert [g.user_id for g in db.query(UserDashboardAccess).all()] == [carol.id]

        log = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_UPDATED").one()
        assert log.details["additional_info"]["dropped_grants"] == 1

        # Bob regaining Finance does not reopen the dashboard by itself.
        grant_area(bob, finance)
        bob_view = client.get("/api/dashboards", headers=headers_for(bob)).json()
        assert bob_view == []

    def test_update_keeps_grants_when_area_unchanged(
        self, client, db, user, admin_headers, sales, make_dashboard, grant_area, grant_dashboard
    ):
        q1 = make_dashboard(sales)
        grant_area(user, sales)
        grant_dashboard(user, q1)
        client.put(f"/api/dashboards/{q1.id}", json=_payload(sales.id, name="Q1 v2"), headers=admin_headers)
        assert db.query(UserDashboardAccess).count() == 1

    def test_update_to_missing_area_is_404(self, client, admin_headers, sales, make_dashboard):
        q1 = make_dashboard(sales)
        resp = client.put(f"/api/dashboards/{q1.id}", json=_payload(9999), headers=admin_headers)
        assert resp.status_code == 404

    def test_delete_cascades_grants(
        self, client, db, user, admin_headers, sales, make_dashboard, grant_area, grant_dashboard
    ):
        q1 = make_dashboard(sales)
        grant_area(user, sales)
        grant_dashboard(user, q1)

        resp = client.delete(f"/api/dashboards/{q1.id}", headers=admin_headers)
        assert resp.status_code == 204
        assert db.query(UserDashboardAccess).count() == 0

        log = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_DELETED").one()
        assert log.level == "warn"


class TestTrackAccess:

    def test_access_is_recorded(
        self, client, db, user, user_headers, sales, make_dashboard, grant_area, grant_dashboard
    ):
        q1 = make_dashboard(sales)
        grant_area(user, sales)
        grant_dashboard(user, q1)

        resp = client.post(f"/api/dashboards/{q1.id}/access", headers=user_headers)
        assert resp.status_code == 200

        log = db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_ACCESSED").one()
        assert log.user_id == user.id
        assert log.admin_id is None
        assert log.entity_id == q1.id
        assert log.details["additional_info"]["dashboard_name"] == "Q1 Report"

    def test_denied_access_is_not_recorded(self, client, db, user_headers, sales, make_dashboard):
        q1 = make_dashboard(sales)
        resp = client.post(f"/api/dashboards/{q1.id}/access", headers=user_headers)
        assert resp.status_code == 403
        assert db.query(AuditLog).filter(AuditLog.action == "DASHBOARD_ACCESSED").count() == 0
