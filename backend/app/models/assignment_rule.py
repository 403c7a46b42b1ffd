"""SQLAlchemy model for complaint assignment rules."""
import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin, UUIDMixin


class AssignmentRule(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "assignment_rules"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)  # higher first
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # {"category_id": str?, "priority": str?, "keywords": [str]?}
    conditions: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    assigned_to: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
