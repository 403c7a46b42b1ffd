"""Complaint API endpoints — intake, queue, workflow, comments, attachments."""
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.deps import get_current_user, is_admin, require_role
from app.db.session import get_session
from app.models.activity_log import ActivityLog
from app.models.complaint import Attachment, Comment, Complaint
from app.models.user import User
from app.schemas.activity import ActivityOut
from app.schemas.complaint import (
    AttachmentOut,
    CommentCreate,
    CommentOut,
    ComplaintCreate,
    ComplaintCreated,
    ComplaintDetail,
    ComplaintListItem,
    ComplaintListResponse,
    ComplaintPatch,
    SatisfactionIn,
)
from app.services import complaints as complaint_svc
from app.services import storage as storage_svc

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_ATTACHMENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "text/plain",
}


# ─── Helpers ───

async def _get_visible_complaint(db: AsyncSession, complaint_id: uuid.UUID, user: User) -> Complaint:
    """Load a complaint the user may see; students only see their own."""
    result = await db.execute(select(Complaint).where(Complaint.id == complaint_id))
    complaint = result.scalar_one_or_none()
    if complaint is None or (not is_admin(user) and complaint.student_id != user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found.")
    return complaint


def _mask(item, complaint: Complaint, user: User):
    """Hide the submitter of anonymous complaints from everyone but the submitter."""
    if complaint.is_anonymous and complaint.student_id != user.id:
        item.student_id = None
    return item


def _service_error(exc: Exception) -> HTTPException:
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ─── POST /complaints ───

@router.post(
    "",
    response_model=ComplaintCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a new complaint",
)
async def create_complaint(
    body: ComplaintCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("STUDENT"))],
):
    """Create a complaint, route it through the assignment rules, start its SLA clock."""
    try:
        complaint, rule = await complaint_svc.create_complaint(
            db, current_user, body, ip_address=request.client.host if request.client else None
        )
    except (ValueError, PermissionError) as exc:
        raise _service_error(exc)
    await db.commit()

    return ComplaintCreated(
        id=complaint.id,
        ticket_number=complaint.ticket_number,
        status=complaint.status,
        assigned_to=complaint.assigned_to,
        assignment_rule_id=uuid.UUID(rule.id) if rule else None,
        sla_breach_at=complaint.sla_breach_at,
    )


# ─── GET /complaints ───

@router.get(
    "",
    response_model=ComplaintListResponse,
    summary="List complaints (own for students, all for admins)",
)
async def list_complaints(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    complaint_status: str | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    category_id: uuid.UUID | None = Query(default=None),
    assigned_to: uuid.UUID | None = Query(default=None),
    unassigned: bool = Query(default=False),
    sla_status: str | None = Query(default=None),
    q: str | None = Query(default=None, max_length=200, description="Search ticket number, title, description"),
):
    stmt = select(Complaint)

    if not is_admin(current_user):
        stmt = stmt.where(Complaint.student_id == current_user.id)
    if complaint_status:
        stmt = stmt.where(Complaint.status == complaint_status)
    if priority:
        stmt = stmt.where(Complaint.priority == priority)
    if category_id:
        stmt = stmt.where(Complaint.category_id == category_id)
    if assigned_to:
        stmt = stmt.where(Complaint.assigned_to == assigned_to)
    if unassigned:
        stmt = stmt.where(Complaint.assigned_to.is_(None))
    if sla_status:
        stmt = stmt.where(Complaint.sla_status == sla_status)
    if q:
        pattern = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                Complaint.ticket_number.ilike(pattern),
                Complaint.title.ilike(pattern),
                Complaint.description.ilike(pattern),
            )
        )

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    offset = (page - 1) * page_size
    result = await db.execute(
        stmt.order_by(Complaint.created_at.desc()).offset(offset).limit(page_size)
    )
    complaints = result.scalars().unique().all()

    return ComplaintListResponse(
        items=[_mask(ComplaintListItem.model_validate(c), c, current_user) for c in complaints],
        total=total,
        page=page,
        page_size=page_size,
    )


# ─── GET /complaints/{id} ───

@router.get(
    "/{complaint_id}",
    response_model=ComplaintDetail,
    summary="Get complaint detail",
)
async def get_complaint(
    complaint_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    complaint = await _get_visible_complaint(db, complaint_id, current_user)
    detail = ComplaintDetail.model_validate(complaint)
    if not is_admin(current_user):
        detail.admin_notes = None
    return _mask(detail, complaint, current_user)


# ─── PATCH /complaints/{id} ───

@router.patch(
    "/{complaint_id}",
    response_model=ComplaintDetail,
    summary="Update status, priority, category, assignee or notes (ADMIN)",
)
async def patch_complaint(
    complaint_id: uuid.UUID,
    patch: ComplaintPatch,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    complaint = await _get_visible_complaint(db, complaint_id, current_user)
    try:
        await complaint_svc.update_complaint(db, complaint, patch, current_user)
    except (ValueError, PermissionError) as exc:
        raise _service_error(exc)
    await db.commit()
    await db.refresh(complaint)
    return _mask(ComplaintDetail.model_validate(complaint), complaint, current_user)


# ─── POST /complaints/{id}/rating ───

@router.post(
    "/{complaint_id}/rating",
    response_model=ComplaintDetail,
    summary="Rate a resolved complaint (submitter only)",
)
async def rate_complaint(
    complaint_id: uuid.UUID,
    body: SatisfactionIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("STUDENT"))],
):
    complaint = await _get_visible_complaint(db, complaint_id, current_user)
    try:
        await complaint_svc.rate_complaint(db, complaint, current_user, body.rating, body.feedback)
    except (ValueError, PermissionError) as exc:
        raise _service_error(exc)
    await db.commit()
    await db.refresh(complaint)
    detail = ComplaintDetail.model_validate(complaint)
    detail.admin_notes = None
    return detail


# ─── Comments ───

@router.get(
    "/{complaint_id}/comments",
    response_model=list[CommentOut],
    summary="List comments (internal notes are staff-only)",
)
async def list_comments(
    complaint_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await _get_visible_complaint(db, complaint_id, current_user)
    stmt = select(Comment).where(Comment.complaint_id == complaint_id)
    if not is_admin(current_user):
        stmt = stmt.where(Comment.is_internal.is_(False))
    result = await db.execute(stmt.order_by(Comment.created_at.asc()))
    return [CommentOut.model_validate(c) for c in result.scalars().all()]


@router.post(
    "/{complaint_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    complaint_id: uuid.UUID,
    body: CommentCreate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    complaint = await _get_visible_complaint(db, complaint_id, current_user)
    try:
        comment = await complaint_svc.add_comment(db, complaint, current_user, body)
    except (ValueError, PermissionError) as exc:
        raise _service_error(exc)
    await db.commit()
    await db.refresh(comment)
    return CommentOut.model_validate(comment)


# ─── Attachments ───

@router.get(
    "/{complaint_id}/attachments",
    response_model=list[AttachmentOut],
    summary="List attachments with short-lived download URLs",
)
async def list_attachments(
    complaint_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await _get_visible_complaint(db, complaint_id, current_user)
    result = await db.execute(
        select(Attachment).where(Attachment.complaint_id == complaint_id).order_by(Attachment.created_at.asc())
    )
    items = []
    for att in result.scalars().all():
        out = AttachmentOut.model_validate(att)
        try:
            out.download_url = storage_svc.get_presigned_url(att.storage_path)
        except Exception as exc:
            logger.warning("Presign failed for attachment %s: %s", att.id, exc)
        items.append(out)
    return items


@router.post(
    "/{complaint_id}/attachments",
    response_model=AttachmentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an attachment",
)
async def upload_attachment(
    complaint_id: uuid.UUID,
    file: Annotated[UploadFile, File(description="PDF, image or plain text")],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    complaint = await _get_visible_complaint(db, complaint_id, current_user)

    content_type = file.content_type or ""
    if content_type not in ALLOWED_ATTACHMENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '{content_type}'.",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty.")
    if len(content) > settings.MAX_ATTACHMENT_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.MAX_ATTACHMENT_BYTES} byte limit.",
        )

    file_name = file.filename or "attachment"
    object_name = storage_svc.attachment_object_name(complaint.id, file_name)
    try:
        storage_svc.upload_bytes(object_name, content, content_type)
    except Exception as exc:
        logger.error("MinIO upload failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to store attachment. Please try again.",
        )

    attachment = Attachment(
        complaint_id=complaint.id,
        uploaded_by=current_user.id,
        file_name=file_name,
        storage_path=object_name,
        content_type=content_type,
        file_size=len(content),
    )
    db.add(attachment)
    await db.commit()
    await db.refresh(attachment)
    return AttachmentOut.model_validate(attachment)


@router.delete(
    "/{complaint_id}/attachments/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an attachment (uploader or ADMIN)",
)
async def delete_attachment(
    complaint_id: uuid.UUID,
    attachment_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await _get_visible_complaint(db, complaint_id, current_user)
    result = await db.execute(
        select(Attachment).where(Attachment.id == attachment_id, Attachment.complaint_id == complaint_id)
    )
    attachment = result.scalar_one_or_none()
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found.")
    if attachment.uploaded_by != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the uploader can delete this file.")

    try:
        storage_svc.delete_object(attachment.storage_path)
    except Exception as exc:
        logger.warning("MinIO delete failed for %s: %s", attachment.storage_path, exc)
    await db.delete(attachment)
    await db.commit()


# ─── Activity ───

@router.get(
    "/{complaint_id}/activity",
    response_model=list[ActivityOut],
    summary="Activity trail for a complaint (ADMIN)",
)
async def list_activity(
    complaint_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    await _get_visible_complaint(db, complaint_id, current_user)
    result = await db.execute(
        select(ActivityLog)
        .where(ActivityLog.entity_type == "complaint", ActivityLog.entity_id == complaint_id)
        .order_by(ActivityLog.created_at.asc())
    )
    return [ActivityOut.model_validate(a) for a in result.scalars().all()]
