"""Pydantic schemas for admin user management."""
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["STUDENT", "ADMIN"]


class AdminUserCreate(BaseModel):
    """Create a student or staff account (admin only)."""
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8, max_length=72)
    role: Role = "ADMIN"
    department: str | None = Field(default=None, max_length=100)
    batch: str | None = Field(default=None, max_length=20)


class AdminUserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    role: Role | None = None
    is_active: bool | None = None
    department: str | None = Field(default=None, max_length=100)


class AdminUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    role: str
    is_active: bool
    department: str | None
    batch: str | None = None
    created_at: datetime


class AdminUserListResponse(BaseModel):
    items: list[AdminUserOut]
    total: int
    page: int
    page_size: int


class StaffOut(BaseModel):
    """Assignable staff member with current open workload."""
    id: uuid.UUID
    name: str
    email: str
    department: str | None = None
    open_complaints: int = 0
