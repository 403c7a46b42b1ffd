import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    complaint_id: uuid.UUID | None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationOut]
    unread: int


class EmailPreferenceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    notify_status_change: bool = True
    notify_new_comment: bool = True
    notify_assignment: bool = True
    notify_sla_warning: bool = True


class EmailPreferenceUpdate(BaseModel):
    """Partial update; omitted switches keep their current value."""
    notify_status_change: bool | None = None
    notify_new_comment: bool | None = None
    notify_assignment: bool | None = None
    notify_sla_warning: bool | None = None
