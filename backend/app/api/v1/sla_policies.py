"""SLA policy administration."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user, require_role
from app.db.session import get_session
from app.models.sla_policy import SlaPolicy
from app.models.user import User
from app.schemas.sla import SlaPolicyIn, SlaPolicyOut
from app.services import audit as audit_svc

router = APIRouter()

_PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}


@router.get("", response_model=list[SlaPolicyOut], summary="List SLA policies, most urgent first")
async def list_policies(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    result = await db.execute(select(SlaPolicy))
    policies = sorted(result.scalars().all(), key=lambda p: _PRIORITY_ORDER.get(p.priority, 99))
    return [SlaPolicyOut.model_validate(p) for p in policies]


@router.put("", response_model=SlaPolicyOut, summary="Create or replace the policy for a priority (ADMIN only)")
async def upsert_policy(
    body: SlaPolicyIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    """Only complaints created afterwards use the new hours."""
    result = await db.execute(select(SlaPolicy).where(SlaPolicy.priority == body.priority))
    policy = result.scalar_one_or_none()
    before = None
    if policy is None:
        policy = SlaPolicy(**body.model_dump())
        db.add(policy)
    else:
        before = {
            "response_hours": policy.response_hours,
            "resolution_hours": policy.resolution_hours,
            "is_active": policy.is_active,
        }
        for field, value in body.model_dump().items():
            setattr(policy, field, value)
    await db.flush()

    await audit_svc.log(
        db,
        action="sla_policy.upserted",
        entity_type="sla_policy",
        entity_id=policy.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        before=before,
        after=body.model_dump(),
    )
    await db.commit()
    await db.refresh(policy)
    return SlaPolicyOut.model_validate(policy)
