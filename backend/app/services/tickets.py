"""Ticket number allocation.

Format: ``{TICKET_PREFIX}-YYYYMMDD-NNNNNN``. The numeric part comes from the
``complaint_ticket_seq`` Postgres sequence, so numbers are monotonic and never
collide across concurrent requests. The date part is informational only.
"""
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.complaint import ticket_number_seq


def format_ticket_number(seq: int, created_at: datetime | None = None, prefix: str | None = None) -> str:
    if seq < 1:
        raise ValueError(f"ticket sequence must be positive, got {seq}")
    created_at = created_at or datetime.now(timezone.utc)
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc)
    return f"{prefix or settings.TICKET_PREFIX}-{created_at:%Y%m%d}-{seq:06d}"


async def next_ticket_number(db: AsyncSession, created_at: datetime | None = None) -> str:
    seq = (await db.execute(select(ticket_number_seq.next_value()))).scalar_one()
    return format_ticket_number(int(seq), created_at)
