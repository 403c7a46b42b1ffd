"""Route tests for /api/v1/assignment-rules (ADMIN)."""
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient, ASGITransport

from app.core.deps import get_current_user
from app.db.session import get_session
from app.main import app

T0 = datetime(2026, 9, 1, tzinfo=timezone.utc)


# ─── Fixtures ─────────────────────────────────────────────────────────────────

class FakeUser:
    def __init__(self, role: str = "ADMIN", is_active: bool = True):
        self.id = uuid.uuid4()
        self.email = "admin@campus.example.edu"
        self.name = "Registrar Office"
        self.role = role
        self.is_active = is_active
        self.deleted_at = None


def _rule_row(name: str, priority: int, conditions: dict, assigned_to: uuid.UUID | None = None,
              created_at: datetime = T0, is_active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        priority=priority,
        is_active=is_active,
        conditions=conditions,
        assigned_to=assigned_to or uuid.uuid4(),
        created_by=None,
        created_at=created_at,
        updated_at=created_at,
    )


def make_mock_session(rows: list | None = None, one=None):
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = rows or []
    mock_result.scalar_one_or_none.return_value = one

    mock_session = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.execute = AsyncMock(return_value=mock_result)
    return mock_session


def override(user, session):
    async def _user():
        return user

    async def _session():
        yield session

    app.dependency_overrides[get_current_user] = _user
    app.dependency_overrides[get_session] = _session


# ─── Dry run ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_dry_run_returns_first_matching_rule():
    urgent = _rule_row("Urgent desk", 10, {"priority": "urgent"})
    hostel = _rule_row("Hostel", 5, {"category_id": "4b0f1d2e-0000-4000-8000-000000000001"})
    override(FakeUser(), make_mock_session([hostel, urgent]))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/assignment-rules/test",
                json={
                    "title": "Broken AC",
                    "description": "room is hot",
                    "priority": "urgent",
                    "category_id": "4b0f1d2e-0000-4000-8000-000000000001",
                },
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    data = response.json()
    assert data["matched"] is True
    assert data["rule_name"] == "Urgent desk"
    assert data["assigned_to"] == str(urgent.assigned_to)
    assert data["evaluated"] == 2


@pytest.mark.asyncio
async def test_dry_run_tie_goes_to_older_rule():
    newer = _rule_row("Newer", 5, {}, created_at=T0 + timedelta(days=3))
    older = _rule_row("Older", 5, {}, created_at=T0)
    override(FakeUser(), make_mock_session([newer, older]))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/api/v1/assignment-rules/test", json={"title": "anything"})
    finally:
        app.dependency_overrides.clear()

    assert response.json()["rule_name"] == "Older"


@pytest.mark.asyncio
async def test_dry_run_without_match():
    rule = _rule_row("Fees", 1, {"keywords": ["fee", "refund"]})
    override(FakeUser(), make_mock_session([rule]))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/assignment-rules/test",
                json={"title": "Projector", "description": "Projector in room 12 is broken"},
            )
    finally:
        app.dependency_overrides.clear()

    data = response.json()
    assert data["matched"] is False
    assert data["rule_id"] is None
    assert data["assigned_to"] is None


# ─── Create / update / delete ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_rule_normalises_keywords():
    admin = FakeUser()
    assignee = FakeUser()
    session = make_mock_session(one=assignee)

    async def _refresh(rule):
        rule.id = rule.id or uuid.uuid4()
        rule.created_at = rule.updated_at = T0

    session.refresh = AsyncMock(side_effect=_refresh)
    override(admin, session)
    try:
        with patch("app.services.audit.log", new=AsyncMock()) as audit_log:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post(
                    "/api/v1/assignment-rules",
                    json={
                        "name": "Network",
                        "priority": 20,
                        "conditions": {"keywords": " wifi, ,Internet "},
                        "assigned_to": str(assignee.id),
                    },
                )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 201
    data = response.json()
    assert data["conditions"] == {"keywords": ["wifi", "Internet"]}
    assert data["created_by"] == str(admin.id)
    assert audit_log.await_args.kwargs["action"] == "assignment_rule.created"
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_rule_rejects_student_assignee():
    session = make_mock_session(one=FakeUser(role="STUDENT"))
    override(FakeUser(), session)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/assignment-rules",
                json={"name": "Bad", "assigned_to": str(uuid.uuid4())},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 400
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_rule_rejects_unknown_priority_condition():
    override(FakeUser(), make_mock_session())
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/assignment-rules",
                json={"name": "Bad", "conditions": {"priority": "critical"}, "assigned_to": str(uuid.uuid4())},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_patch_rule_deactivates():
    row = _rule_row("Hostel", 5, {"keywords": ["hostel"]})
    override(FakeUser(), make_mock_session(one=row))
    try:
        with patch("app.services.audit.log", new=AsyncMock()) as audit_log:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.patch(f"/api/v1/assignment-rules/{row.id}", json={"is_active": False})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert audit_log.await_args.kwargs["before"]["is_active"] is True
    assert audit_log.await_args.kwargs["after"]["is_active"] is False


@pytest.mark.asyncio
async def test_delete_missing_rule_returns_404():
    override(FakeUser(), make_mock_session(one=None))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.delete(f"/api/v1/assignment-rules/{uuid.uuid4()}")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_rule_returns_204():
    row = _rule_row("Old rule", 1, {})
    session = make_mock_session(one=row)
    override(FakeUser(), session)
    try:
        with patch("app.services.audit.log", new=AsyncMock()):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.delete(f"/api/v1/assignment-rules/{row.id}")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 204
    session.delete.assert_awaited_once_with(row)
