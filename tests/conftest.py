"""Shared test fixtures for the Dashgate test suite.

Tests run against a throwaway SQLite file. Environment variables are set
before any dashgate import so settings, engine and app all pick them up.
Each test starts from empty tables.
"""

import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="dashgate-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from dashgate.database import SessionLocal, get_db
from dashgate.main import app
from dashgate.models import (
    Area,
    AuditLog,
    Dashboard,
    Role,
    User,
    UserAreaAccess,
    UserDashboardAccess,
)
from dashgate.services.auth_service import hash_password, issue_token

# Deletion order respects foreign keys.
_CLEAN_ORDER = [UserDashboardAccess, UserAreaAccess, Dashboard, Area, AuditLog, User]

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table before each test.

    Runs before the test (not after) so a failing test leaves its data
    behind for debugging.
    """
    db = SessionLocal()
    try:
        for model in _CLEAN_ORDER:
            db.query(model).delete(synchronize_session=False)
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def recorder():
    """The app's own AuditRecorder."""
    return app.state.audit_recorder


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_user(db):
    def _make(
        email: str = "user@example.com",
        role: Role = Role.USER,
        name: str = None,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        user = User(email=email, password_hash=hash_password(password), role=role, name=name)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def admin(make_user) -> User:
    return make_user(email="admin@example.com", role=Role.ADMIN, name="Ada Admin")


@pytest.fixture()
def user(make_user) -> User:
    return make_user(email="bob@example.com", name="Bob")


@pytest.fixture()
def make_area(db):
    def _make(name: str = "Sales") -> Area:
        area = Area(name=name)
        db.add(area)
        db.commit()
        db.refresh(area)
        return area

    return _make


@pytest.fixture()
def make_dashboard(db):
    def _make(area: Area, name: str = "Q1 Report", url: str = "https://bi.example.com/q1") -> Dashboard:
        dashboard = Dashboard(name=name, url=url, area_id=area.id)
        db.add(dashboard)
        db.commit()
        db.refresh(dashboard)
        return dashboard

    return _make


@pytest.fixture()
def grant_area(db):
    def _grant(user: User, area: Area) -> None:
        db.add(UserAreaAccess(user_id=user.id, area_id=area.id))
        db.commit()

    return _grant


@pytest.fixture()
def grant_dashboard(db):
    def _grant(user: User, dashboard: Dashboard, granted_by: User = None) -> None:
        db.add(UserDashboardAccess(
            user_id=user.id,
            dashboard_id=dashboard.id,
            granted_by=granted_by.id if granted_by else None,
        ))
        db.commit()

    return _grant


def _bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture()
def headers_for():
    """Bearer headers carrying a freshly issued token for a given user."""
    return _bearer


@pytest.fixture()
def admin_headers(admin) -> dict:
    return _bearer(admin)


@pytest.fixture()
def user_headers(user) -> dict:
    return _bearer(user)
