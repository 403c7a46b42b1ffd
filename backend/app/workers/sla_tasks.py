"""Celery task: periodic SLA monitor for open complaints."""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

# Statuses the monitor tracks; resolved/closed/rejected are settled at transition time
TRACKED_STATUSES = ("open", "in_progress", "under_review")
ALERT_STATUSES = {"at_risk", "breached"}


def run_sla_monitor(db: Session, now: datetime | None = None) -> dict:
    """Recompute sla_status for tracked complaints and alert on escalation.

    A complaint triggers notifications only when it newly enters at_risk or
    breached, so repeated runs do not spam the student or the assignee.
    The caller commits.

    Returns:
        Stats dict: {checked, changed, at_risk, breached, notified}
    """
    from app.models.complaint import Complaint
    from app.models.user import User
    from app.services import audit as audit_svc
    from app.services import notifications as notify_svc
    from app.services.sla import status_for

    now = now or datetime.now(timezone.utc)
    stats = {"checked": 0, "changed": 0, "at_risk": 0, "breached": 0, "notified": 0}

    complaints = db.execute(
        select(Complaint).where(
            Complaint.status.in_(TRACKED_STATUSES),
            Complaint.sla_breach_at.isnot(None),
        )
    ).scalars().all()

    for complaint in complaints:
        stats["checked"] += 1
        old = complaint.sla_status
        new = status_for(complaint, now)
        if new in ALERT_STATUSES:
            stats[new] += 1
        if new == old:
            continue

        complaint.sla_status = new
        stats["changed"] += 1
        audit_svc.log_sync(
            db,
            action="complaint.sla_status_changed",
            entity_type="complaint",
            entity_id=complaint.id,
            before={"sla_status": old},
            after={"sla_status": new},
        )

        if new not in ALERT_STATUSES:
            continue

        recipients = [(complaint.student_id, False)]
        if complaint.assigned_to is not None:
            recipients.append((complaint.assigned_to, True))
        for user_id, for_staff in recipients:
            user = db.execute(select(User).where(User.id == user_id)).scalars().first()
            title, message = notify_svc.sla_message(complaint, for_staff=for_staff)
            notify_svc.notify_sync(
                db, user_id, complaint, "sla_warning", title, message,
                user_email=user.email if user else None,
            )
            stats["notified"] += 1

        log = logger.warning if new == "breached" else logger.info
        log("SLA %s: complaint %s (status=%s)", new.upper(), complaint.ticket_number, complaint.status)

    return stats


@celery_app.task(name="app.workers.sla_tasks.monitor_sla")
def monitor_sla():
    """Runs every SLA_MONITOR_INTERVAL_MINUTES via Celery beat."""
    logger.info("monitor_sla: starting")
    try:
        from app.db.session import make_sync_session

        Session = make_sync_session()
        with Session() as db:
            stats = run_sla_monitor(db)
            db.commit()

        logger.info(
            "monitor_sla: complete checked=%d changed=%d at_risk=%d breached=%d notified=%d",
            stats["checked"], stats["changed"], stats["at_risk"], stats["breached"], stats["notified"],
        )
        return stats

    except Exception as exc:
        logger.exception("monitor_sla failed: %s", exc)
        return {"status": "error", "error": str(exc)}
