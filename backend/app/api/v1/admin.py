"""Admin endpoints: user accounts and the assignable staff roster."""
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_role
from app.core.security import hash_password
from app.db.session import get_session
from app.models.complaint import Complaint
from app.models.user import User
from app.schemas.admin_user import (
    AdminUserCreate,
    AdminUserListResponse,
    AdminUserOut,
    AdminUserUpdate,
    StaffOut,
)
from app.services import audit as audit_svc
from app.services.sla import TERMINAL_STATUSES, UNTRACKED_STATUSES

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── GET /admin/users ───

@router.get(
    "/users",
    response_model=AdminUserListResponse,
    summary="List users with pagination",
    dependencies=[Depends(require_role("ADMIN"))],
)
async def list_users(
    db: Annotated[AsyncSession, Depends(get_session)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    role: str | None = Query(default=None),
    department: str | None = Query(default=None),
    q: str | None = Query(default=None, max_length=100, description="Match name or email"),
):
    stmt = select(User).where(User.deleted_at.is_(None))
    if role:
        stmt = stmt.where(User.role == role)
    if department:
        stmt = stmt.where(User.department == department)
    if q:
        pattern = f"%{q.strip()}%"
        stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    offset = (page - 1) * page_size
    result = await db.execute(stmt.order_by(User.created_at.desc()).offset(offset).limit(page_size))
    return AdminUserListResponse(
        items=[AdminUserOut.model_validate(u) for u in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


# ─── POST /admin/users ───

@router.post(
    "/users",
    response_model=AdminUserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account",
)
async def create_user(
    body: AdminUserCreate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    email = body.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")

    user = User(
        email=email,
        name=body.name,
        password_hash=hash_password(body.password),
        role=body.role,
        department=body.department,
        batch=body.batch,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await audit_svc.log(
        db,
        action="user.created",
        entity_type="user",
        entity_id=user.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        after={"email": email, "role": body.role},
    )
    await db.commit()
    await db.refresh(user)
    logger.info("User %s (%s) created by %s", email, body.role, current_user.email)
    return AdminUserOut.model_validate(user)


# ─── PATCH /admin/users/{id} ───

@router.patch(
    "/users/{user_id}",
    response_model=AdminUserOut,
    summary="Update role, status or profile of a user",
)
async def update_user(
    user_id: uuid.UUID,
    body: AdminUserUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    result = await db.execute(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    changes = body.model_dump(exclude_unset=True)
    if user.id == current_user.id and (changes.get("is_active") is False or changes.get("role") == "STUDENT"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot demote or deactivate themselves.",
        )

    before = {"role": user.role, "is_active": user.is_active}
    for field, value in changes.items():
        setattr(user, field, value)

    await audit_svc.log(
        db,
        action="user.updated",
        entity_type="user",
        entity_id=user.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        before=before,
        after=changes,
    )
    await db.commit()
    await db.refresh(user)
    return AdminUserOut.model_validate(user)


# ─── GET /admin/staff ───

@router.get(
    "/staff",
    response_model=list[StaffOut],
    summary="Active staff members eligible for assignment",
    dependencies=[Depends(require_role("ADMIN"))],
)
async def list_staff(db: Annotated[AsyncSession, Depends(get_session)]):
    """Active ADMIN users with their count of open (non-terminal) complaints."""
    open_counts = (
        select(Complaint.assigned_to, func.count(Complaint.id).label("open_complaints"))
        .where(Complaint.status.notin_(TERMINAL_STATUSES | UNTRACKED_STATUSES))
        .group_by(Complaint.assigned_to)
        .subquery()
    )
    result = await db.execute(
        select(User, func.coalesce(open_counts.c.open_complaints, 0))
        .outerjoin(open_counts, open_counts.c.assigned_to == User.id)
        .where(User.role == "ADMIN", User.is_active.is_(True), User.deleted_at.is_(None))
        .order_by(User.name)
    )
    return [
        StaffOut(
            id=user.id,
            name=user.name,
            email=user.email,
            department=user.department,
            open_complaints=count,
        )
        for user, count in result.all()
    ]
