"""Email notification service — console mock (MAIL_ENABLED=False).

When MAIL_ENABLED is False, email content is written to the log instead of
being sent. Set MAIL_ENABLED=True once an SMTP transport is wired in.
"""
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


def send_notification_email(
    to_email: str,
    subject: str,
    message: str,
    ticket_number: str | None = None,
    complaint_id: str | None = None,
) -> None:
    """Send (or mock-log) a complaint notification email."""
    link = f"{settings.FRONTEND_URL}/dashboard/complaints/{complaint_id}" if complaint_id else settings.FRONTEND_URL

    if not settings.MAIL_ENABLED:
        logger.info(
            "\n"
            "=== NOTIFICATION EMAIL ===\n"
            "From: %s <%s>\n"
            "To: %s\n"
            "Subject: %s\n"
            "%s\n"
            "View: %s\n"
            "==========================",
            settings.MAIL_FROM_NAME,
            settings.MAIL_FROM,
            to_email,
            subject,
            message,
            link,
        )
        return

    # TODO: wire an SMTP transport; until then MAIL_ENABLED only changes the log line
    logger.warning(
        "MAIL_ENABLED=True but SMTP transport is not configured. "
        "Falling back to console log for ticket %s.",
        ticket_number,
    )
    logger.info("NOTIFICATION EMAIL (unsent): to=%s subject=%s link=%s", to_email, subject, link)
