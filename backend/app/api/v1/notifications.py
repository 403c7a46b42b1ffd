"""Current user's notifications and e-mail preferences."""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user
from app.db.session import get_session
from app.models.email_preference import EmailPreference
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import (
    EmailPreferenceOut,
    EmailPreferenceUpdate,
    NotificationListResponse,
    NotificationOut,
)

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
):
    stmt = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    result = await db.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
    items = [NotificationOut.model_validate(n) for n in result.scalars().all()]

    unread = (
        await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == current_user.id,
                Notification.is_read.is_(False),
            )
        )
    ).scalar_one()
    return NotificationListResponse(items=items, unread=unread)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == current_user.id,
        )
    )
    note = result.scalar_one_or_none()
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    note.is_read = True
    await db.commit()
    await db.refresh(note)
    return NotificationOut.model_validate(note)


@router.post("/read-all")
async def mark_all_read(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return {"updated": result.rowcount or 0}


# ─── Email preferences ───

@router.get("/preferences", response_model=EmailPreferenceOut)
async def get_email_preferences(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Current switches; a user who never saved any gets everything on."""
    result = await db.execute(select(EmailPreference).where(EmailPreference.user_id == current_user.id))
    preference = result.scalar_one_or_none()
    if preference is None:
        return EmailPreferenceOut()
    return EmailPreferenceOut.model_validate(preference)


@router.put("/preferences", response_model=EmailPreferenceOut)
async def update_email_preferences(
    body: EmailPreferenceUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    result = await db.execute(select(EmailPreference).where(EmailPreference.user_id == current_user.id))
    preference = result.scalar_one_or_none()
    if preference is None:
        preference = EmailPreference(
            user_id=current_user.id,
            notify_status_change=True,
            notify_new_comment=True,
            notify_assignment=True,
            notify_sla_warning=True,
        )
        db.add(preference)

    for field, value in body.model_dump(exclude_none=True).items():
        setattr(preference, field, value)

    await db.commit()
    return EmailPreferenceOut.model_validate(preference)
