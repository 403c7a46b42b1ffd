"""Complaint categories — readable by any user, managed by ADMIN."""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user, is_admin, require_role
from app.db.session import get_session
from app.models.category import Category
from app.models.user import User
from app.schemas.category import CategoryIn, CategoryOut, CategoryUpdate
from app.services import audit as audit_svc

router = APIRouter()


async def _name_taken(db: AsyncSession, name: str, exclude_id: uuid.UUID | None = None) -> bool:
    stmt = select(Category).where(Category.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


@router.get("", response_model=list[CategoryOut], summary="List categories")
async def list_categories(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    include_inactive: bool = Query(default=False, description="ADMIN only"),
):
    stmt = select(Category)
    if not (include_inactive and is_admin(current_user)):
        stmt = stmt.where(Category.is_active.is_(True))
    result = await db.execute(stmt.order_by(Category.name))
    return [CategoryOut.model_validate(c) for c in result.scalars().all()]


@router.post(
    "",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category (ADMIN only)",
)
async def create_category(
    body: CategoryIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    if await _name_taken(db, body.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category name already exists")
    category = Category(**body.model_dump())
    db.add(category)
    await db.flush()
    await audit_svc.log(
        db,
        action="category.created",
        entity_type="category",
        entity_id=category.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        after=body.model_dump(),
    )
    await db.commit()
    await db.refresh(category)
    return CategoryOut.model_validate(category)


@router.patch(
    "/{category_id}",
    response_model=CategoryOut,
    summary="Update a category (ADMIN only)",
)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    """Deactivate instead of deleting; complaints keep their category."""
    result = await db.execute(select(Category).where(Category.id == category_id))
    category = result.scalar_one_or_none()
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    changes = body.model_dump(exclude_unset=True)
    if "name" in changes and await _name_taken(db, changes["name"], exclude_id=category.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category name already exists")
    for field, value in changes.items():
        setattr(category, field, value)

    await audit_svc.log(
        db,
        action="category.updated",
        entity_type="category",
        entity_id=category.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        after=changes,
    )
    await db.commit()
    await db.refresh(category)
    return CategoryOut.model_validate(category)
