"""Pydantic schemas for assignment rules."""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.complaint import Priority


class AssignmentConditions(BaseModel):
    """Structured rule conditions; every field is optional."""
    category_id: uuid.UUID | None = None
    priority: Priority | None = None
    keywords: list[str] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [k.strip() for k in v if k and k.strip()]

    def to_json(self) -> dict:
        data: dict = {}
        if self.category_id:
            data["category_id"] = str(self.category_id)
        if self.priority:
            data["priority"] = self.priority
        if self.keywords:
            data["keywords"] = self.keywords
        return data


class AssignmentRuleIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    priority: int = 0
    is_active: bool = True
    conditions: AssignmentConditions = Field(default_factory=AssignmentConditions)
    assigned_to: uuid.UUID


class AssignmentRuleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    priority: int | None = None
    is_active: bool | None = None
    conditions: AssignmentConditions | None = None
    assigned_to: uuid.UUID | None = None


class AssignmentRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    priority: int
    is_active: bool
    conditions: dict
    assigned_to: uuid.UUID
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class RuleTestIn(BaseModel):
    """Sample complaint for a dry run of the rule set."""
    title: str = ""
    description: str = ""
    category_id: uuid.UUID | None = None
    priority: Priority = "medium"


class RuleTestOut(BaseModel):
    matched: bool
    rule_id: uuid.UUID | None = None
    rule_name: str | None = None
    assigned_to: uuid.UUID | None = None
    evaluated: int
