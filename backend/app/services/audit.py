"""Activity log helper — append-only writes to activity_logs."""
import json
import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def _entry(
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None,
    actor_id: uuid.UUID | str | None,
    actor_email: str | None,
    before: Any | None,
    after: Any | None,
    notes: str | None,
    ip_address: str | None,
) -> ActivityLog:
    return ActivityLog(
        actor_id=uuid.UUID(str(actor_id)) if actor_id else None,
        actor_email=actor_email,
        action=action,
        entity_type=entity_type,
        entity_id=uuid.UUID(str(entity_id)) if entity_id else None,
        before_state=json.dumps(before, default=str) if before is not None else None,
        after_state=json.dumps(after, default=str) if after is not None else None,
        notes=notes,
        ip_address=ip_address,
    )


async def log(
    db: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None = None,
    actor_id: uuid.UUID | str | None = None,
    actor_email: str | None = None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
    ip_address: str | None = None,
) -> ActivityLog:
    """Write a single activity log entry.

    Args:
        db: Async session from the request; the caller controls the commit.
        action: Dotted verb, e.g. 'complaint.created', 'complaint.status_changed'.
        entity_type: Domain name, e.g. 'complaint', 'assignment_rule'.
        entity_id: PK of the affected record.
        actor_id: User who performed the action (None for system actions).
        actor_email: Denormalised email (preserved if user is later deleted).
        before: Dict snapshot of state before the action (JSON-serialisable).
        after: Dict snapshot of state after the action.
        notes: Free-text annotation.
        ip_address: Client address, when the action came from a request.
    """
    entry = _entry(action, entity_type, entity_id, actor_id, actor_email, before, after, notes, ip_address)
    db.add(entry)
    await db.flush()
    logger.debug("Activity: %s %s/%s", action, entity_type, entity_id)
    return entry


def log_sync(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None = None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
) -> ActivityLog:
    """System-actor variant for Celery tasks (sync session)."""
    entry = _entry(action, entity_type, entity_id, None, None, before, after, notes, None)
    db.add(entry)
    db.flush()
    logger.debug("Activity: %s %s/%s", action, entity_type, entity_id)
    return entry
