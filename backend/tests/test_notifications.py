"""Tests for notification e-mails and the per-user e-mail preferences."""
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient, ASGITransport

from app.core.deps import get_current_user
from app.db.session import get_session
from app.main import app
from app.models.email_preference import EmailPreference
from app.models.notification import Notification
from app.services import notifications as notify_svc

COMPLAINT = SimpleNamespace(id=uuid.uuid4(), ticket_number="TKT-20261019-000042", title="Library Wi-Fi drops")


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _preference(**flags) -> SimpleNamespace:
    data = dict(
        notify_status_change=True,
        notify_new_comment=True,
        notify_assignment=True,
        notify_sla_warning=True,
    )
    data.update(flags)
    return SimpleNamespace(**data)


def make_async_session(preference=None):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = preference

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


# ─── wants_email ──────────────────────────────────────────────────────────────

def test_no_preference_row_sends_everything():
    for type_ in notify_svc.PREFERENCE_FLAGS:
        assert notify_svc.wants_email(None, type_)


def test_each_switch_gates_its_own_type():
    pref = _preference(notify_new_comment=False)
    assert not notify_svc.wants_email(pref, "new_comment")
    assert notify_svc.wants_email(pref, "status_changed")
    assert notify_svc.wants_email(pref, "complaint_assigned")
    assert notify_svc.wants_email(pref, "sla_warning")


def test_type_without_switch_is_always_sent():
    assert notify_svc.wants_email(_preference(notify_status_change=False), "announcement")


# ─── notify / notify_sync ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_notify_skips_email_when_switched_off_but_keeps_row():
    user_id = uuid.uuid4()
    session = make_async_session(_preference(notify_status_change=False))

    with patch("app.services.email.send_notification_email") as send:
        note = await notify_svc.notify(
            session, user_id, COMPLAINT, "status_changed", "Status update", "Moved to resolved.",
            user_email="student@campus.example.edu",
        )

    send.assert_not_called()
    assert isinstance(note, Notification)
    session.add.assert_called_once_with(note)


@pytest.mark.asyncio
async def test_notify_emails_when_user_has_no_preferences():
    session = make_async_session(None)

    with patch("app.services.email.send_notification_email") as send:
        await notify_svc.notify(
            session, uuid.uuid4(), COMPLAINT, "complaint_assigned", "Complaint assigned", "Assigned to you.",
            user_email="it.support@campus.example.edu",
        )

    send.assert_called_once()
    assert send.call_args.kwargs["to_email"] == "it.support@campus.example.edu"


@pytest.mark.asyncio
async def test_notify_without_address_does_not_look_up_preferences():
    session = make_async_session(None)

    with patch("app.services.email.send_notification_email") as send:
        await notify_svc.notify(session, uuid.uuid4(), COMPLAINT, "new_comment", "New comment", "Reply posted.")

    send.assert_not_called()
    session.execute.assert_not_awaited()


def test_notify_sync_honours_sla_switch():
    db = MagicMock()
    db.execute.return_value.scalar_one_or_none.return_value = _preference(notify_sla_warning=False)

    with patch("app.services.email.send_notification_email") as send:
        notify_svc.notify_sync(
            db, uuid.uuid4(), COMPLAINT, "sla_warning", "SLA Warning", "Deadline close.",
            user_email="student@campus.example.edu",
        )

    send.assert_not_called()
    assert isinstance(db.add.call_args.args[0], Notification)


# ─── /notifications/preferences ──────────────────────────────────────────────

class FakeUser:
    def __init__(self):
        self.id = uuid.uuid4()
        self.email = "student@campus.example.edu"
        self.name = "Student"
        self.role = "STUDENT"
        self.is_active = True
        self.deleted_at = None


@pytest.mark.asyncio
async def test_get_preferences_defaults_to_all_on():
    override(FakeUser(), make_async_session(None))
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/notifications/preferences")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == {
        "notify_status_change": True,
        "notify_new_comment": True,
        "notify_assignment": True,
        "notify_sla_warning": True,
    }


@pytest.mark.asyncio
async def test_put_preferences_creates_row_for_new_user():
    user = FakeUser()
    session = make_async_session(None)
    override(user, session)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.put("/api/v1/notifications/preferences", json={"notify_new_comment": False})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["notify_new_comment"] is False
    assert response.json()["notify_status_change"] is True
    saved = session.add.call_args.args[0]
    assert isinstance(saved, EmailPreference)
    assert saved.user_id == user.id
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_put_preferences_updates_existing_row():
    existing = _preference(notify_sla_warning=False)
    session = make_async_session(existing)
    override(FakeUser(), session)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.put(
                "/api/v1/notifications/preferences",
                json={"notify_sla_warning": True, "notify_assignment": False},
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert existing.notify_sla_warning is True
    assert existing.notify_assignment is False
    assert existing.notify_new_comment is True
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_preferences_require_login():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/notifications/preferences")
    assert response.status_code == 401
