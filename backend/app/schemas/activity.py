import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    action: str
    actor_email: str | None
    before_state: str | None
    after_state: str | None
    notes: str | None
    created_at: datetime
