"""Complaint lifecycle service — intake, workflow transitions, comments.

Intake runs once per complaint:
  1. allocate a ticket number (Postgres sequence)
  2. load active assignment rules and run the matcher
  3. fix SLA deadlines from the policy for the complaint's priority
  4. persist, log activity, notify the assignee

Rules are never re-evaluated for existing complaints.

Raises ValueError for rejected input and PermissionError when the actor may
not perform the action; the API maps these to 400 and 403.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.assignment_rule import AssignmentRule
from app.models.category import Category
from app.models.complaint import Comment, Complaint
from app.models.user import User
from app.rules import assignment as rule_engine
from app.services import audit as audit_svc
from app.services import notifications as notify_svc
from app.services import sla as sla_svc
from app.services.tickets import next_ticket_number

logger = logging.getLogger(__name__)

# Allowed workflow moves; closed and rejected are final.
STATUS_TRANSITIONS: dict[str, set[str]] = {
    "open": {"in_progress", "under_review", "resolved", "rejected", "closed"},
    "in_progress": {"under_review", "resolved", "rejected", "closed"},
    "under_review": {"in_progress", "resolved", "rejected", "closed"},
    "resolved": {"closed", "in_progress"},
    "closed": set(),
    "rejected": set(),
}


def can_transition(current: str, target: str) -> bool:
    return target == current or target in STATUS_TRANSITIONS.get(current, set())


def _snapshot(c: Complaint) -> dict:
    return {
        "status": c.status,
        "priority": c.priority,
        "category_id": str(c.category_id) if c.category_id else None,
        "assigned_to": str(c.assigned_to) if c.assigned_to else None,
        "sla_status": c.sla_status,
    }


# ─── Lookups ───

async def load_active_rules(db: AsyncSession) -> list[rule_engine.Rule]:
    """Current active rule set, already in evaluation order."""
    result = await db.execute(
        select(AssignmentRule)
        .where(AssignmentRule.is_active.is_(True))
        .order_by(
            AssignmentRule.priority.desc(),
            AssignmentRule.created_at.asc(),
            AssignmentRule.id.asc(),
        )
    )
    return rule_engine.order_rules(rule_engine.rule_from(r) for r in result.scalars().all())


async def _require_active_category(db: AsyncSession, category_id: uuid.UUID) -> Category:
    result = await db.execute(select(Category).where(Category.id == category_id))
    category = result.scalar_one_or_none()
    if category is None or not category.is_active:
        raise ValueError("Category does not exist or is inactive.")
    return category


async def _require_staff(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()
    if user is None or user.role != "ADMIN" or not user.is_active:
        raise ValueError("Assignee must be an active ADMIN user.")
    return user


async def _get_user(db: AsyncSession, user_id: uuid.UUID | None) -> User | None:
    if user_id is None:
        return None
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


# ─── Intake ───

async def create_complaint(
    db: AsyncSession,
    student: User,
    data,
    ip_address: str | None = None,
) -> tuple[Complaint, rule_engine.Rule | None]:
    """Create a complaint for `student` and route it.

    `data` is a ComplaintCreate (or any object with the same fields).
    Returns (complaint, matched_rule). The caller commits.
    """
    if data.category_id is not None:
        await _require_active_category(db, data.category_id)

    now = datetime.now(timezone.utc)
    ticket_number = await next_ticket_number(db, now)

    rules = await load_active_rules(db)
    facts = rule_engine.ComplaintFacts(
        priority=data.priority,
        title=data.title,
        description=data.description,
        category_id=str(data.category_id) if data.category_id else None,
    )
    assignee_id, matched = rule_engine.select_assignee(facts, rules)

    hours = await sla_svc.get_sla_hours(db, data.priority)
    deadlines = sla_svc.calculate_deadlines(now, hours)

    complaint = Complaint(
        id=uuid.uuid4(),
        ticket_number=ticket_number,
        student_id=student.id,
        title=data.title,
        description=data.description,
        category_id=data.category_id,
        priority=data.priority,
        status="open",
        assigned_to=assignee_id,
        is_anonymous=data.is_anonymous,
        is_public=data.is_public,
        sla_response_due_at=deadlines.response_due_at,
        sla_breach_at=deadlines.breach_at,
        sla_status="on_track",
        created_at=now,
        updated_at=now,
    )
    db.add(complaint)
    await db.flush()

    await audit_svc.log(
        db,
        action="complaint.created",
        entity_type="complaint",
        entity_id=complaint.id,
        actor_id=student.id,
        actor_email=student.email,
        after=_snapshot(complaint),
        ip_address=ip_address,
    )

    if matched is not None:
        await audit_svc.log(
            db,
            action="complaint.auto_assigned",
            entity_type="complaint",
            entity_id=complaint.id,
            after={"assigned_to": str(assignee_id), "rule_id": matched.id, "rule_name": matched.name},
            notes=f"Matched assignment rule '{matched.name}' (priority {matched.priority})",
        )
        assignee = await _get_user(db, assignee_id)
        title, message = notify_svc.assigned_message(complaint)
        await notify_svc.notify(
            db, assignee_id, complaint, "complaint_assigned", title, message,
            user_email=assignee.email if assignee else None,
        )
        logger.info("Complaint %s auto-assigned to %s by rule %s", ticket_number, assignee_id, matched.id)
    else:
        logger.info("Complaint %s left unassigned: no assignment rule matched", ticket_number)

    return complaint, matched


# ─── Admin updates ───

async def update_complaint(db: AsyncSession, complaint: Complaint, patch, actor: User) -> Complaint:
    """Apply an admin patch. Validates transitions, stamps timestamps, notifies.

    The caller commits.
    """
    before = _snapshot(complaint)
    now = datetime.now(timezone.utc)
    old_status = complaint.status
    old_assignee = complaint.assigned_to

    if patch.status is not None and patch.status != complaint.status:
        if not can_transition(complaint.status, patch.status):
            raise ValueError(f"Cannot move complaint from '{complaint.status}' to '{patch.status}'.")
        complaint.status = patch.status
        if patch.status == "resolved":
            complaint.resolved_at = now
        elif patch.status == "closed":
            complaint.closed_at = now
            if complaint.resolved_at is None:
                complaint.resolved_at = now
        elif patch.status == "in_progress" and old_status == "resolved":
            complaint.resolved_at = None
        if complaint.first_response_at is None:
            complaint.first_response_at = now

    if patch.priority is not None:
        complaint.priority = patch.priority
    if patch.category_id is not None:
        await _require_active_category(db, patch.category_id)
        complaint.category_id = patch.category_id
    if patch.assigned_to is not None and patch.assigned_to != complaint.assigned_to:
        await _require_staff(db, patch.assigned_to)
        complaint.assigned_to = patch.assigned_to
    if patch.admin_notes is not None:
        complaint.admin_notes = patch.admin_notes
    if patch.resolution_notes is not None:
        complaint.resolution_notes = patch.resolution_notes

    complaint.sla_status = sla_svc.status_for(complaint, now)
    complaint.updated_at = now

    after = _snapshot(complaint)
    await audit_svc.log(
        db,
        action="complaint.status_changed" if after["status"] != before["status"] else "complaint.updated",
        entity_type="complaint",
        entity_id=complaint.id,
        actor_id=actor.id,
        actor_email=actor.email,
        before=before,
        after=after,
    )

    if complaint.status != old_status:
        student = await _get_user(db, complaint.student_id)
        title, message = notify_svc.status_changed_message(complaint, old_status)
        await notify_svc.notify(
            db, complaint.student_id, complaint, "status_changed", title, message,
            user_email=student.email if student else None,
        )

    if complaint.assigned_to is not None and complaint.assigned_to != old_assignee:
        assignee = await _get_user(db, complaint.assigned_to)
        title, message = notify_svc.assigned_message(complaint)
        await notify_svc.notify(
            db, complaint.assigned_to, complaint, "complaint_assigned", title, message,
            user_email=assignee.email if assignee else None,
        )

    return complaint


# ─── Comments ───

async def add_comment(db: AsyncSession, complaint: Complaint, author: User, data) -> Comment:
    """Add a comment. Internal comments and solutions are staff-only.

    The first staff comment counts as the first response for SLA purposes.
    """
    staff = author.role == "ADMIN"
    if (data.is_internal or data.is_solution) and not staff:
        raise PermissionError("Only staff can post internal comments or mark solutions.")
    if complaint.status in ("closed", "rejected"):
        raise ValueError(f"Cannot comment on a {complaint.status} complaint.")

    now = datetime.now(timezone.utc)
    comment = Comment(
        complaint_id=complaint.id,
        user_id=author.id,
        content=data.content.strip(),
        is_internal=data.is_internal,
        is_solution=data.is_solution,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    if staff and complaint.first_response_at is None:
        complaint.first_response_at = now
    await db.flush()

    await audit_svc.log(
        db,
        action="complaint.commented",
        entity_type="complaint",
        entity_id=complaint.id,
        actor_id=author.id,
        actor_email=author.email,
        after={"comment_id": str(comment.id), "is_internal": comment.is_internal},
    )

    if not comment.is_internal:
        # Tell the other side of the conversation
        recipient_id = complaint.student_id if staff else complaint.assigned_to
        if recipient_id is not None and recipient_id != author.id:
            recipient = await _get_user(db, recipient_id)
            title, message = notify_svc.new_comment_message(complaint)
            await notify_svc.notify(
                db, recipient_id, complaint, "new_comment", title, message,
                user_email=recipient.email if recipient else None,
            )
    return comment


# ─── Satisfaction ───

async def rate_complaint(db: AsyncSession, complaint: Complaint, student: User, rating: int, feedback: str | None) -> Complaint:
    if complaint.student_id != student.id:
        raise PermissionError("Only the submitter can rate a complaint.")
    if complaint.status not in ("resolved", "closed"):
        raise ValueError("Complaint must be resolved or closed before it can be rated.")
    if complaint.satisfaction_rating is not None:
        raise ValueError("Complaint has already been rated.")

    complaint.satisfaction_rating = rating
    complaint.feedback = feedback
    await audit_svc.log(
        db,
        action="complaint.rated",
        entity_type="complaint",
        entity_id=complaint.id,
        actor_id=student.id,
        actor_email=student.email,
        after={"rating": rating},
    )
    return complaint
