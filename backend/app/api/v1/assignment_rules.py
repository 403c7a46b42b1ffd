"""Assignment rule administration (ADMIN only)."""
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_role
from app.db.session import get_session
from app.models.assignment_rule import AssignmentRule
from app.models.user import User
from app.rules import assignment as rule_engine
from app.schemas.assignment_rule import (
    AssignmentRuleIn,
    AssignmentRuleOut,
    AssignmentRuleUpdate,
    RuleTestIn,
    RuleTestOut,
)
from app.services import audit as audit_svc

logger = logging.getLogger(__name__)

router = APIRouter()


def _rule_state(rule: AssignmentRule) -> dict:
    return {
        "name": rule.name,
        "priority": rule.priority,
        "is_active": rule.is_active,
        "conditions": rule.conditions,
        "assigned_to": str(rule.assigned_to),
    }


async def _require_assignee(db: AsyncSession, user_id: uuid.UUID) -> None:
    result = await db.execute(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    user = result.scalar_one_or_none()
    if user is None or user.role != "ADMIN" or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="assigned_to must be an active ADMIN user.",
        )


async def _get_rule(db: AsyncSession, rule_id: uuid.UUID) -> AssignmentRule:
    result = await db.execute(select(AssignmentRule).where(AssignmentRule.id == rule_id))
    rule = result.scalar_one_or_none()
    if rule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment rule not found")
    return rule


# ─── GET /assignment-rules ───

@router.get(
    "",
    response_model=list[AssignmentRuleOut],
    summary="List assignment rules in evaluation order",
)
async def list_rules(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    """Active and inactive rules, ordered priority DESC then creation order."""
    result = await db.execute(
        select(AssignmentRule).order_by(
            AssignmentRule.priority.desc(),
            AssignmentRule.created_at.asc(),
            AssignmentRule.id.asc(),
        )
    )
    return [AssignmentRuleOut.model_validate(r) for r in result.scalars().all()]


# ─── POST /assignment-rules ───

@router.post(
    "",
    response_model=AssignmentRuleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an assignment rule",
)
async def create_rule(
    body: AssignmentRuleIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    await _require_assignee(db, body.assigned_to)
    rule = AssignmentRule(
        name=body.name,
        priority=body.priority,
        is_active=body.is_active,
        conditions=body.conditions.to_json(),
        assigned_to=body.assigned_to,
        created_by=current_user.id,
    )
    db.add(rule)
    await db.flush()
    await audit_svc.log(
        db,
        action="assignment_rule.created",
        entity_type="assignment_rule",
        entity_id=rule.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        after=_rule_state(rule),
    )
    await db.commit()
    await db.refresh(rule)
    logger.info("Assignment rule %s created by %s", rule.id, current_user.email)
    return AssignmentRuleOut.model_validate(rule)


# ─── POST /assignment-rules/test ───

@router.post(
    "/test",
    response_model=RuleTestOut,
    summary="Dry-run the active rules against a sample complaint",
)
async def test_rules(
    body: RuleTestIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    """Nothing is persisted; returns the rule a complaint like this would hit."""
    result = await db.execute(select(AssignmentRule).where(AssignmentRule.is_active.is_(True)))
    rules = rule_engine.order_rules(rule_engine.rule_from(r) for r in result.scalars().all())
    facts = rule_engine.facts_from(body.model_dump())
    matched = rule_engine.match_rule(facts, rules)
    return RuleTestOut(
        matched=matched is not None,
        rule_id=uuid.UUID(matched.id) if matched else None,
        rule_name=matched.name if matched else None,
        assigned_to=uuid.UUID(matched.assigned_to) if matched else None,
        evaluated=len(rules),
    )


# ─── PATCH /assignment-rules/{id} ───

@router.patch(
    "/{rule_id}",
    response_model=AssignmentRuleOut,
    summary="Update an assignment rule",
)
async def update_rule(
    rule_id: uuid.UUID,
    body: AssignmentRuleUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    rule = await _get_rule(db, rule_id)
    before = _rule_state(rule)

    if body.name is not None:
        rule.name = body.name
    if body.priority is not None:
        rule.priority = body.priority
    if body.is_active is not None:
        rule.is_active = body.is_active
    if body.conditions is not None:
        rule.conditions = body.conditions.to_json()
    if body.assigned_to is not None:
        await _require_assignee(db, body.assigned_to)
        rule.assigned_to = body.assigned_to

    await audit_svc.log(
        db,
        action="assignment_rule.updated",
        entity_type="assignment_rule",
        entity_id=rule.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        before=before,
        after=_rule_state(rule),
    )
    await db.commit()
    await db.refresh(rule)
    return AssignmentRuleOut.model_validate(rule)


# ─── DELETE /assignment-rules/{id} ───

@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an assignment rule",
)
async def delete_rule(
    rule_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_role("ADMIN"))],
):
    """Existing complaints keep their assignee; rules are not re-applied."""
    rule = await _get_rule(db, rule_id)
    await audit_svc.log(
        db,
        action="assignment_rule.deleted",
        entity_type="assignment_rule",
        entity_id=rule.id,
        actor_id=current_user.id,
        actor_email=current_user.email,
        before=_rule_state(rule),
    )
    await db.delete(rule)
    await db.commit()
