"""Pydantic schemas for complaints, comments and attachments."""
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

Priority = Literal["low", "medium", "high", "urgent"]
ComplaintStatus = Literal["open", "in_progress", "under_review", "resolved", "closed", "rejected"]


class ComplaintCreate(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=5000)
    category_id: uuid.UUID | None = None
    priority: Priority = "medium"
    is_anonymous: bool = False
    is_public: bool = False

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class CategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    color: str | None = None


class ComplaintListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ticket_number: str
    title: str
    status: str
    priority: str
    category_id: uuid.UUID | None
    category: CategorySummary | None = None
    student_id: uuid.UUID | None
    assigned_to: uuid.UUID | None
    is_anonymous: bool
    sla_status: str
    sla_breach_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ComplaintListResponse(BaseModel):
    items: list[ComplaintListItem]
    total: int
    page: int
    page_size: int


class ComplaintDetail(ComplaintListItem):
    description: str
    is_public: bool
    admin_notes: str | None = None
    resolution_notes: str | None
    first_response_at: datetime | None
    resolved_at: datetime | None
    closed_at: datetime | None
    sla_response_due_at: datetime | None
    satisfaction_rating: int | None
    feedback: str | None


class ComplaintCreated(BaseModel):
    id: uuid.UUID
    ticket_number: str
    status: str
    assigned_to: uuid.UUID | None
    assignment_rule_id: uuid.UUID | None = None
    sla_breach_at: datetime | None


class ComplaintPatch(BaseModel):
    """Fields an ADMIN can change on a complaint."""
    status: ComplaintStatus | None = None
    priority: Priority | None = None
    category_id: uuid.UUID | None = None
    assigned_to: uuid.UUID | None = None
    admin_notes: str | None = None
    resolution_notes: str | None = None


class SatisfactionIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: str | None = Field(default=None, max_length=2000)


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    is_internal: bool = False
    is_solution: bool = False


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    complaint_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    is_internal: bool
    is_solution: bool
    created_at: datetime


class AttachmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    complaint_id: uuid.UUID
    file_name: str
    content_type: str | None
    file_size: int
    created_at: datetime
    download_url: str | None = None


class WidgetComplaintIn(BaseModel):
    """Public widget submission — identifies the student by email."""
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=5000)
    category_id: uuid.UUID | None = None
    priority: Priority = "medium"
    email: EmailStr
    full_name: str = Field(min_length=1, max_length=255)
    is_anonymous: bool = False
    is_public: bool = False

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class WidgetComplaintOut(BaseModel):
    success: bool = True
    ticket_number: str
    message: str = "Complaint submitted successfully"
