"""Complaint analytics dashboard endpoint."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.deps import require_role
from app.db.session import get_session
from app.models.complaint import Complaint
from app.models.user import User
from app.schemas.analytics import AnalyticsSummary
from app.services.analytics import build_summary

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/summary", response_model=AnalyticsSummary, summary="Complaint statistics and daily trend")
async def get_summary(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
    days: int | None = Query(default=None, ge=1, le=365, description="Only complaints created in the last N days"),
    trend_days: int = Query(default=settings.ANALYTICS_TREND_DAYS, ge=1, le=90),
):
    now = datetime.now(timezone.utc)
    stmt = select(Complaint)
    if days is not None:
        stmt = stmt.where(Complaint.created_at >= now - timedelta(days=days))
    complaints = (await db.execute(stmt)).scalars().unique().all()
    logger.debug("Analytics over %d complaints", len(complaints))
    return build_summary(complaints, now=now, trend_days=trend_days)
