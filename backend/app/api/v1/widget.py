"""Public complaint widget — unauthenticated submissions, rate limited by IP."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.limiter import limiter
from app.core.security import random_password_hash
from app.db.session import get_session
from app.models.user import User
from app.schemas.complaint import WidgetComplaintIn, WidgetComplaintOut
from app.services import complaints as complaint_svc

logger = logging.getLogger(__name__)

router = APIRouter()


async def _find_or_create_student(db: AsyncSession, email: str, full_name: str) -> User:
    """Reuse the account registered under `email`, or open a password-less STUDENT one."""
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is not None:
        if user.role != "STUDENT":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Staff accounts cannot submit complaints through the widget.",
            )
        if not user.is_active or user.deleted_at is not None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled.")
        return user

    user = User(
        email=email,
        name=full_name.strip(),
        password_hash=random_password_hash(),
        role="STUDENT",
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info("Widget opened student account for %s", email)
    return user


@router.post(
    "/complaints",
    response_model=WidgetComplaintOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a complaint from the public widget",
)
@limiter.limit(settings.WIDGET_RATE_LIMIT)
async def submit_widget_complaint(
    request: Request,
    body: WidgetComplaintIn,
    db: Annotated[AsyncSession, Depends(get_session)],
):
    student = await _find_or_create_student(db, body.email, body.full_name)
    try:
        complaint, _ = await complaint_svc.create_complaint(
            db, student, body, ip_address=request.client.host if request.client else None
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    await db.commit()
    return WidgetComplaintOut(ticket_number=complaint.ticket_number)
