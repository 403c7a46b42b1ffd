"""Tests for authentication endpoints."""
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient, ASGITransport

from app.core.security import create_access_token
from app.db.session import get_session
from app.main import app


# ─── Fixtures ─────────────────────────────────────────────────────────────────

class FakeUser:
    """Minimal user stub returned by DB mock."""

    def __init__(self, role: str = "STUDENT", is_active: bool = True):
        self.id = uuid.UUID("f96955d0-752f-4e0c-b1dc-d26d8dd1460e")
        self.email = "student@campus.example.edu"
        self.name = "Demo Student"
        self.role = role
        self.is_active = is_active
        self.deleted_at = None
        self.department = "Computer Science"
        self.batch = "2027"
        self.password_hash = "$2b$12$placeholder"  # verify_password is patched


def make_mock_session(user=None):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = user

    mock_session = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.execute = AsyncMock(return_value=mock_result)
    return mock_session


def make_session_override(mock_session):
    async def _override():
        yield mock_session
    return _override


# ─── Login ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_login_valid_credentials_returns_jwt():
    """POST /auth/login with valid credentials returns a bearer token."""
    mock_session = make_mock_session(FakeUser())
    app.dependency_overrides[get_session] = make_session_override(mock_session)
    try:
        with patch("app.api.v1.auth.verify_password", return_value=True):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post(
                    "/api/v1/auth/login",
                    data={"username": "Student@Campus.example.edu", "password": "changeme123"},
                )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_login_unknown_user_returns_401():
    app.dependency_overrides[get_session] = make_session_override(make_mock_session(None))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/auth/login",
                data={"username": "nobody@campus.example.edu", "password": "badpass"},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_wrong_password_returns_401():
    app.dependency_overrides[get_session] = make_session_override(make_mock_session(FakeUser()))
    try:
        with patch("app.api.v1.auth.verify_password", return_value=False):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post(
                    "/api/v1/auth/login",
                    data={"username": "student@campus.example.edu", "password": "wrong"},
                )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_disabled_account_returns_403():
    app.dependency_overrides[get_session] = make_session_override(make_mock_session(FakeUser(is_active=False)))
    try:
        with patch("app.api.v1.auth.verify_password", return_value=True):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post(
                    "/api/v1/auth/login",
                    data={"username": "student@campus.example.edu", "password": "changeme123"},
                )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 403


# ─── Register ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_register_creates_student_account():
    mock_session = make_mock_session(None)

    async def _refresh(user):
        user.id = uuid.uuid4()

    mock_session.refresh = AsyncMock(side_effect=_refresh)
    app.dependency_overrides[get_session] = make_session_override(mock_session)
    try:
        with patch("app.api.v1.auth.hash_password", return_value="hashed"):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post(
                    "/api/v1/auth/register",
                    json={
                        "email": "New.Student@campus.example.edu",
                        "name": "New Student",
                        "password": "s3cure-pass",
                        "department": "Physics",
                    },
                )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "STUDENT"
    assert data["email"] == "new.student@campus.example.edu"
    assert "password_hash" not in data
    created = mock_session.add.call_args_list[0].args[0]
    assert created.password_hash == "hashed"


@pytest.mark.asyncio
async def test_register_duplicate_email_returns_409():
    app.dependency_overrides[get_session] = make_session_override(make_mock_session(FakeUser()))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/auth/register",
                json={"email": "student@campus.example.edu", "name": "Dup", "password": "s3cure-pass"},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_short_password_returns_422():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "a@campus.example.edu", "name": "A", "password": "short"},
        )
    assert response.status_code == 422


# ─── /me ──────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_me_with_valid_token_returns_user():
    fake_user = FakeUser(role="ADMIN")
    token = create_access_token(subject=str(fake_user.id), role="ADMIN")
    app.dependency_overrides[get_session] = make_session_override(make_mock_session(fake_user))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == fake_user.email
    assert data["role"] == "ADMIN"
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_me_without_token_returns_401():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_with_garbage_token_returns_401():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
