"""Per-user switches for notification e-mails."""
import uuid

from sqlalchemy import Boolean, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin, UUIDMixin


class EmailPreference(Base, UUIDMixin, TimestampMixin):
    """One row per user; a user without a row receives every e-mail."""

    __tablename__ = "email_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    notify_status_change: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_new_comment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_assignment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_sla_warning: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
