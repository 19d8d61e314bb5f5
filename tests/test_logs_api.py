"""Tests for /api/logs: browse, stats, export and cleanup."""

from datetime import datetime, timedelta, timezone

import pytest

from dashgate.models import AuditLog


def _now():
    return datetime.now(timezone.utc)


@pytest.fixture()
def add_log(db):
    def _add(action="AREA_CREATED", entity_type="AREA", days_ago=0, level="info", **fields) -> AuditLog:
        log = AuditLog(
            action=action,
            entity_type=entity_type,
            level=level,
            timestamp=_now() - timedelta(days=days_ago),
            details={},
            **fields,
        )
        db.add(log)
        db.commit()
        return log

    return _add


class TestBrowse:

    def test_page_shape(self, client, admin_headers, add_log):
        for _ in range(3):
            add_log()
        resp = client.get("/api/logs", params={"limit": 2}, headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["logs"]) == 2
        assert data["pagination"] == {
            "current_page": 1,
            "total_pages": 2,
            "total_items": 3,
            "items_per_page": 2,
        }

    def test_out_of_range_paging_is_clamped(self, client, admin_headers, add_log):
        add_log()
        resp = client.get("/api/logs", params={"page": 0, "limit": 1000}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["pagination"]["current_page"] == 1
        assert resp.json()["pagination"]["items_per_page"] == 100

    def test_filter_by_action_and_user(self, client, admin_headers, add_log, user):
        add_log(action="LOGIN_SUCCESS", entity_type="AUTH", user_id=user.id)
        add_log(action="LOGIN_SUCCESS", entity_type="AUTH")
        add_log(action="AREA_CREATED", user_id=user.id)

        data = client.get(
            "/api/logs",
            params={"action": "LOGIN_SUCCESS", "user_id": user.id},
            headers=admin_headers,
        ).json()
        assert data["pagination"]["total_items"] == 1
        assert data["logs"][0]["user"]["email"] == "bob@example.com"

    def test_requires_admin(self, client, user_headers):
        assert client.get("/api/logs", headers=user_headers).status_code == 403
        assert client.get("/api/logs/stats", headers=user_headers).status_code == 403
        assert client.get("/api/logs/export", headers=user_headers).status_code == 403

    def test_requires_token(self, client):
        assert client.get("/api/logs").status_code == 401


class TestStats:

    def test_stats_window(self, client, admin_headers, add_log):
        add_log(action="LOGIN_SUCCESS", entity_type="AUTH")
        add_log(action="LOGIN_SUCCESS", entity_type="AUTH")
        add_log(action="AREA_CREATED", days_ago=40)

        data = client.get("/api/logs/stats", params={"days": 30}, headers=admin_headers).json()
        assert data["total_logs"] == 2
        assert data["action_stats"] == {"LOGIN_SUCCESS": 2}
        assert data["entity_stats"] == {"AUTH": 2}


class TestExport:

    def test_csv_download(self, client, admin_headers, add_log):
        add_log(action="AREA_CREATED", entity_id=7)
        resp = client.get("/api/logs/export", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"].startswith('attachment; filename="audit-logs-')

        body = resp.content.decode("utf-8")
        assert body.startswith("\ufeff")
        lines = body.lstrip("\ufeff").split("\r\n")
        assert lines[0].startswith("ID,Action,Entity Type")
        assert "AREA_CREATED" in lines[1]

    def test_export_honours_filters(self, client, admin_headers, add_log):
        add_log(action="AREA_CREATED")
        add_log(action="LOGIN_FAILED", entity_type="AUTH", level="warn")
        body = client.get(
            "/api/logs/export", params={"action": "LOGIN_FAILED"}, headers=admin_headers
        ).content.decode("utf-8")
        assert "LOGIN_FAILED" in body
        assert "AREA_CREATED" not in body


class TestCleanup:

    def test_older_than_below_minimum_is_rejected(self, client, db, admin_headers, add_log):
        add_log(days_ago=10)
        resp = client.delete("/api/logs", params={"older_than_days": 3}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["details"]["field"] == "older_than_days"
        assert db.query(AuditLog).count() == 1

    def test_older_than_deletes_and_is_audited(self, client, db, admin_headers, add_log):
        add_log(days_ago=100)
        add_log(days_ago=1)

        resp = client.delete("/api/logs", params={"older_than_days": 30}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["deleted"] == 1

        remaining = {log.action for log in db.query(AuditLog).all()}
        assert remaining == {"AREA_CREATED", "LOGS_CLEANED"}
        cleaned = db.query(AuditLog).filter(AuditLog.action == "LOGS_CLEANED").one()
        assert cleaned.level == "warn"
        assert cleaned.details["additional_info"]["deleted"] == 1

    def test_range_ending_too_recently_is_rejected(self, client, admin_headers):
        resp = client.delete(
            "/api/logs/range",
            params={
                "start_date": (_now() - timedelta(days=30)).isoformat(),
                "end_date": (_now() - timedelta(days=2)).isoformat(),
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["details"]["field"] == "end_date"

    def test_range_start_after_end_is_rejected(self, client, admin_headers):
        resp = client.delete(
            "/api/logs/range",
            params={
                "start_date": (_now() - timedelta(days=10)).isoformat(),
                "end_date": (_now() - timedelta(days=20)).isoformat(),
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["details"]["field"] == "start_date"

    def test_range_deletes_inside_window(self, client, db, admin_headers, add_log):
        add_log(days_ago=60)
        add_log(days_ago=20)
        add_log(days_ago=1)

        resp = client.delete(
            "/api/logs/range",
            params={
                "start_date": (_now() - timedelta(days=30)).isoformat(),
                "end_date": (_now() - timedelta(days=10)).isoformat(),
            },
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["deleted"] == 1
        assert db.query(AuditLog).filter(AuditLog.action == "AREA_CREATED").count() == 2

    def test_cleanup_requires_admin(self, client, user_headers):
        resp = client.delete("/api/logs", params={"older_than_days": 30}, headers=user_headers)
        assert resp.status_code == 403
