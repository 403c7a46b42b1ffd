"""SLA deadlines and status.

Deadlines are fixed when a complaint is created:
    response_due_at = created_at + response_hours(priority)
    breach_at       = created_at + resolution_hours(priority)

Status is recomputed on every change and by the periodic monitor:
    resolved/closed       → met if finished by breach_at, else breached
    now >= breach_at      → breached
    remaining <= fraction → at_risk  (fraction of the full resolution window)
    otherwise             → on_track
Rejected complaints keep whatever status they had.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"resolved", "closed"}
UNTRACKED_STATUSES = {"rejected"}


@dataclass(frozen=True)
class SlaHours:
    response_hours: int
    resolution_hours: int
    policy_id: str | None = None


@dataclass(frozen=True)
class SlaDeadlines:
    response_due_at: datetime
    breach_at: datetime


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def default_hours(priority: str) -> SlaHours:
    """Configured fallback when no active policy row exists for the priority."""
    try:
        return SlaHours(
            response_hours=settings.SLA_DEFAULT_RESPONSE_HOURS[priority],
            resolution_hours=settings.SLA_DEFAULT_RESOLUTION_HOURS[priority],
        )
    except KeyError:
        raise ValueError(f"Unknown priority '{priority}'")


def calculate_deadlines(created_at: datetime, hours: SlaHours) -> SlaDeadlines:
    created_at = _utc(created_at)
    return SlaDeadlines(
        response_due_at=created_at + timedelta(hours=hours.response_hours),
        breach_at=created_at + timedelta(hours=hours.resolution_hours),
    )


def evaluate_sla_status(
    status: str,
    created_at: datetime,
    breach_at: datetime | None,
    now: datetime | None = None,
    finished_at: datetime | None = None,
    current: str = "on_track",
) -> str:
    """Return the SLA status for a complaint at `now`.

    Args:
        status: Complaint workflow status.
        created_at: Complaint creation time (start of the SLA window).
        breach_at: Resolution deadline; None means untracked.
        now: Evaluation time, defaults to the current UTC time.
        finished_at: resolved_at (or closed_at) for terminal complaints.
        current: Existing SLA status, returned unchanged for untracked complaints.
    """
    if breach_at is None or status in UNTRACKED_STATUSES:
        return current

    now = _utc(now or datetime.now(timezone.utc))
    breach_at = _utc(breach_at)

    if status in TERMINAL_STATUSES:
        done = _utc(finished_at) if finished_at else now
        return "met" if done <= breach_at else "breached"

    if now >= breach_at:
        return "breached"

    window = breach_at - _utc(created_at)
    remaining = breach_at - now
    if window.total_seconds() > 0 and remaining <= window * settings.SLA_AT_RISK_FRACTION:
        return "at_risk"
    return "on_track"


def status_for(complaint, now: datetime | None = None) -> str:
    """evaluate_sla_status applied to a Complaint row."""
    return evaluate_sla_status(
        status=complaint.status,
        created_at=complaint.created_at,
        breach_at=complaint.sla_breach_at,
        now=now,
        finished_at=complaint.resolved_at or complaint.closed_at,
        current=complaint.sla_status or "on_track",
    )


async def get_sla_hours(db: AsyncSession, priority: str) -> SlaHours:
    """Active policy for `priority`, falling back to configured defaults."""
    from app.models.sla_policy import SlaPolicy

    result = await db.execute(
        select(SlaPolicy).where(SlaPolicy.priority == priority, SlaPolicy.is_active.is_(True))
    )
    policy = result.scalar_one_or_none()
    if policy is None:
        logger.debug("No active SLA policy for priority=%s; using defaults", priority)
        return default_hours(priority)
    return SlaHours(
        response_hours=policy.response_hours,
        resolution_hours=policy.resolution_hours,
        policy_id=str(policy.id),
    )
