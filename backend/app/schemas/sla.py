import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.complaint import Priority


class SlaPolicyIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    priority: Priority
    response_hours: int = Field(gt=0)
    resolution_hours: int = Field(gt=0)
    is_active: bool = True

    @model_validator(mode="after")
    def response_before_resolution(self):
        if self.response_hours > self.resolution_hours:
            raise ValueError("response_hours cannot exceed resolution_hours")
        return self


class SlaPolicyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    priority: str
    response_hours: int
    resolution_hours: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
