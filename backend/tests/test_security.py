"""Security tests: authentication required, role boundaries, no secret leakage."""
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from app.core.deps import get_current_user
from app.db.session import get_session
from app.main import app


# ─── Fixtures ─────────────────────────────────────────────────────────────────

class FakeUser:
    """Minimal user stub for dependency overrides."""

    def __init__(self, role: str = "ADMIN", email: str = "admin@campus.example.edu"):
        self.id = uuid.UUID("f96955d0-752f-4e0c-b1dc-d26d8dd1460e")
        self.email = email
        self.name = "Test User"
        self.role = role
        self.is_active = True
        self.deleted_at = None


def make_mock_session():
    """Return an AsyncMock session with a default empty-result execute."""
    mock_result = MagicMock()
    mock_result.scalar_one.return_value = 0
    mock_result.scalar_one_or_none.return_value = None
    mock_result.scalars.return_value.all.return_value = []
    mock_result.scalars.return_value.unique.return_value.all.return_value = []
    mock_result.all.return_value = []

    mock_session = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.execute = AsyncMock(return_value=mock_result)
    return mock_session


def as_user(role: str):
    async def _override():
        return FakeUser(role=role)
    return _override


def make_session_override(mock_session):
    async def _override():
        yield mock_session
    return _override


ADMIN_ONLY = [
    ("GET", "/api/v1/assignment-rules"),
    ("POST", "/api/v1/assignment-rules/test"),
    ("GET", "/api/v1/analytics/summary"),
    ("GET", "/api/v1/admin/users"),
    ("GET", "/api/v1/admin/staff"),
    ("PATCH", f"/api/v1/complaints/{uuid.uuid4()}"),
    ("GET", f"/api/v1/complaints/{uuid.uuid4()}/activity"),
    ("PUT", "/api/v1/sla-policies"),
    ("POST", "/api/v1/categories"),
]


# ─── Unauthenticated access ───────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    ADMIN_ONLY + [("GET", "/api/v1/complaints"), ("GET", "/api/v1/notifications")],
)
async def test_protected_routes_require_token(method, path):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.request(method, path, json={})
    assert response.status_code == 401


# ─── Role boundaries ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("method,path", ADMIN_ONLY)
async def test_student_forbidden_from_admin_routes(method, path):
    """Role checks run before body validation, so an empty body still yields 403."""
    app.dependency_overrides[get_current_user] = as_user("STUDENT")
    app.dependency_overrides[get_session] = make_session_override(make_mock_session())
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.request(method, path, json={})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_cannot_file_complaint():
    app.dependency_overrides[get_current_user] = as_user("ADMIN")
    app.dependency_overrides[get_session] = make_session_override(make_mock_session())
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/complaints",
                json={
                    "title": "Staff complaint",
                    "description": "Admins route complaints, they do not file them.",
                },
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_read_analytics():
    app.dependency_overrides[get_current_user] = as_user("ADMIN")
    app.dependency_overrides[get_session] = make_session_override(make_mock_session())
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/analytics/summary")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 0
    assert len(data["daily_trend"]) == 7


@pytest.mark.asyncio
async def test_admin_staff_list_empty():
    app.dependency_overrides[get_current_user] = as_user("ADMIN")
    app.dependency_overrides[get_session] = make_session_override(make_mock_session())
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/admin/staff")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_admin_cannot_demote_self():
    admin = FakeUser(role="ADMIN")
    mock_session = make_mock_session()
    mock_session.execute.return_value.scalar_one_or_none.return_value = admin

    async def _admin():
        return admin

    app.dependency_overrides[get_current_user] = _admin
    app.dependency_overrides[get_session] = make_session_override(mock_session)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.patch(f"/api/v1/admin/users/{admin.id}", json={"role": "STUDENT"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 400
    assert admin.role == "ADMIN"


@pytest.mark.asyncio
async def test_admin_create_user_conflicts_with_soft_deleted_email():
    departed = FakeUser(role="STUDENT", email="former.student@campus.example.edu")
    departed.deleted_at = datetime(2026, 6, 30, tzinfo=timezone.utc)
    mock_session = make_mock_session()
    mock_session.execute.return_value.scalar_one_or_none.return_value = departed

    app.dependency_overrides[get_current_user] = as_user("ADMIN")
    app.dependency_overrides[get_session] = make_session_override(mock_session)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/admin/users",
                json={
                    "email": "Former.Student@campus.example.edu",
                    "name": "Former Student",
                    "password": "changeme123",
                    "role": "STUDENT",
                },
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 409
    mock_session.add.assert_not_called()
