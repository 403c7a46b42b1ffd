"""Tests for the periodic SLA monitor task.

The sync session is a MagicMock: the first execute returns the tracked
complaints, later executes serve the user and email-preference lookups
made while notifying.
"""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from app.core.config import Settings, settings
from app.models.notification import Notification
from app.workers.celery_app import celery_app
from app.workers.sla_tasks import monitor_sla, run_sla_monitor

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _make_complaint(
    hours_left: float,
    window_hours: float = 24,
    sla_status: str = "on_track",
    assigned: bool = True,
) -> MagicMock:
    c = MagicMock()
    c.id = uuid.uuid4()
    c.ticket_number = "TKT-20261019-000001"
    c.title = "Water leakage in hostel room"
    c.status = "open"
    c.student_id = uuid.uuid4()
    c.assigned_to = uuid.uuid4() if assigned else None
    c.sla_breach_at = NOW + timedelta(hours=hours_left)
    c.created_at = c.sla_breach_at - timedelta(hours=window_hours)
    c.resolved_at = None
    c.closed_at = None
    c.sla_status = sla_status
    return c


def _make_db(complaints: list) -> MagicMock:
    db = MagicMock()
    complaints_result = MagicMock()
    complaints_result.scalars.return_value.all.return_value = complaints
    user_result = MagicMock()
    user_result.scalars.return_value.first.return_value = MagicMock(email="someone@campus.example.edu")
    db.execute.side_effect = [complaints_result] + [user_result] * 10
    return db


def _notifications(db: MagicMock) -> list[Notification]:
    return [call.args[0] for call in db.add.call_args_list if isinstance(call.args[0], Notification)]


# ─── run_sla_monitor ──────────────────────────────────────────────────────────

def test_on_track_complaint_is_left_alone():
    complaint = _make_complaint(hours_left=20)
    db = _make_db([complaint])

    stats = run_sla_monitor(db, now=NOW)

    assert stats == {"checked": 1, "changed": 0, "at_risk": 0, "breached": 0, "notified": 0}
    assert complaint.sla_status == "on_track"
    db.add.assert_not_called()


def test_newly_at_risk_notifies_student_and_assignee():
    complaint = _make_complaint(hours_left=3)
    db = _make_db([complaint])

    stats = run_sla_monitor(db, now=NOW)

    assert complaint.sla_status == "at_risk"
    assert stats["changed"] == 1
    assert stats["at_risk"] == 1
    assert stats["notified"] == 2
    notes = _notifications(db)
    assert {n.user_id for n in notes} == {complaint.student_id, complaint.assigned_to}
    assert all(n.type == "sla_warning" for n in notes)


def test_breached_unassigned_complaint_notifies_student_only():
    complaint = _make_complaint(hours_left=-1, sla_status="at_risk", assigned=False)
    db = _make_db([complaint])

    stats = run_sla_monitor(db, now=NOW)

    assert complaint.sla_status == "breached"
    assert stats["breached"] == 1
    assert stats["notified"] == 1
    assert [n.user_id for n in _notifications(db)] == [complaint.student_id]


def test_already_breached_complaint_is_not_notified_again():
    complaint = _make_complaint(hours_left=-5, sla_status="breached")
    db = _make_db([complaint])

    stats = run_sla_monitor(db, now=NOW)

    assert stats["breached"] == 1
    assert stats["changed"] == 0
    assert stats["notified"] == 0


def test_empty_queue():
    stats = run_sla_monitor(_make_db([]), now=NOW)
    assert stats["checked"] == 0


# ─── Celery task wrapper ──────────────────────────────────────────────────────

def test_monitor_task_commits_and_returns_stats():
    db = MagicMock()
    session_cm = MagicMock()
    session_cm.__enter__.return_value = db
    session_factory = MagicMock(return_value=session_cm)
    stats = {"checked": 2, "changed": 1, "at_risk": 1, "breached": 0, "notified": 2}

    with patch("app.db.session.make_sync_session", return_value=session_factory), \
         patch("app.workers.sla_tasks.run_sla_monitor", return_value=stats):
        result = monitor_sla()

    assert result == stats
    db.commit.assert_called_once()


def test_monitor_task_returns_error_dict_on_failure():
    with patch("app.db.session.make_sync_session", side_effect=RuntimeError("db down")):
        result = monitor_sla()

    assert result["status"] == "error"
    assert "db down" in result["error"]


# ─── Beat schedule ────────────────────────────────────────────────────────────

def test_beat_runs_monitor_every_interval():
    entry = celery_app.conf.beat_schedule["monitor-complaint-sla"]
    assert entry["task"] == "app.workers.sla_tasks.monitor_sla"
    assert entry["schedule"] == timedelta(minutes=settings.SLA_MONITOR_INTERVAL_MINUTES)


def test_hourly_or_longer_interval_is_a_plain_period():
    assert Settings(SLA_MONITOR_INTERVAL_MINUTES=90).SLA_MONITOR_INTERVAL_MINUTES == 90


def test_monitor_interval_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(SLA_MONITOR_INTERVAL_MINUTES=0)
