"""In-app notifications, mirrored to email.

Email delivery is best-effort: a failure is logged and never undoes the
notification row or the caller's transaction. Each kind of email can be
switched off per user through an EmailPreference row; the in-app row is
written either way.
"""
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.models.email_preference import EmailPreference
from app.models.notification import Notification
from app.services import email as email_svc

logger = logging.getLogger(__name__)

# Notification type -> EmailPreference flag gating its email
PREFERENCE_FLAGS = {
    "complaint_assigned": "notify_assignment",
    "status_changed": "notify_status_change",
    "new_comment": "notify_new_comment",
    "sla_warning": "notify_sla_warning",
}


def wants_email(preference: EmailPreference | None, type_: str) -> bool:
    """No preference row, or a type without a switch, means the email goes out."""
    flag = PREFERENCE_FLAGS.get(type_)
    if preference is None or flag is None:
        return True
    return bool(getattr(preference, flag))


def _preference_query(user_id: uuid.UUID):
    return select(EmailPreference).where(EmailPreference.user_id == user_id)


def _build(user_id: uuid.UUID, complaint, type_: str, title: str, message: str) -> Notification:
    return Notification(
        user_id=user_id,
        complaint_id=complaint.id if complaint is not None else None,
        type=type_,
        title=title,
        message=message,
        is_read=False,
    )


def _mail(user_email: str | None, complaint, title: str, message: str) -> None:
    if not user_email:
        return
    try:
        email_svc.send_notification_email(
            to_email=user_email,
            subject=title,
            message=message,
            ticket_number=getattr(complaint, "ticket_number", None),
            complaint_id=str(complaint.id) if complaint is not None else None,
        )
    except Exception as exc:
        logger.warning("Notification email to %s failed: %s", user_email, exc)


async def notify(
    db: AsyncSession,
    user_id: uuid.UUID,
    complaint,
    type_: str,
    title: str,
    message: str,
    user_email: str | None = None,
) -> Notification:
    """Queue a notification row on the session and send the matching email."""
    note = _build(user_id, complaint, type_, title, message)
    db.add(note)
    await db.flush()
    if user_email:
        preference = (await db.execute(_preference_query(user_id))).scalar_one_or_none()
        if wants_email(preference, type_):
            _mail(user_email, complaint, title, message)
        else:
            logger.info("Email for %s skipped for user %s (preference off)", type_, user_id)
    return note


def notify_sync(
    db: Session,
    user_id: uuid.UUID,
    complaint,
    type_: str,
    title: str,
    message: str,
    user_email: str | None = None,
) -> Notification:
    note = _build(user_id, complaint, type_, title, message)
    db.add(note)
    if user_email:
        preference = db.execute(_preference_query(user_id)).scalar_one_or_none()
        if wants_email(preference, type_):
            _mail(user_email, complaint, title, message)
    return note


# ─── Message templates ───

def assigned_message(complaint) -> tuple[str, str]:
    return (
        f"Complaint assigned: {complaint.ticket_number}",
        f'Complaint "{complaint.title}" ({complaint.priority} priority) has been assigned to you.',
    )


def status_changed_message(complaint, old_status: str) -> tuple[str, str]:
    pretty = complaint.status.replace("_", " ")
    return (
        f"Status update: {complaint.ticket_number}",
        f'Your complaint "{complaint.title}" moved from {old_status.replace("_", " ")} to {pretty}.',
    )


def new_comment_message(complaint) -> tuple[str, str]:
    return (
        f"New comment on {complaint.ticket_number}",
        f'A new comment was added to complaint "{complaint.title}".',
    )


def sla_message(complaint, for_staff: bool) -> tuple[str, str]:
    breached = complaint.sla_status == "breached"
    if for_staff:
        title = f"SLA {'Breach' if breached else 'Warning'}: {complaint.ticket_number}"
        body = (
            f'Complaint "{complaint.title}" '
            f"{'has breached its SLA deadline' if breached else 'is approaching its SLA deadline'}. "
            "Please take action immediately."
        )
    else:
        title = f"SLA {'Breached' if breached else 'Alert'}: {complaint.ticket_number}"
        body = (
            f'Your complaint "{complaint.title}" '
            f"{'has breached its SLA deadline' if breached else 'is at risk of breaching its SLA deadline'}. "
            "We are working to resolve it as soon as possible."
        )
    return title, body
