from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from nido.core.ids import gen_id

from nido.models.base import Base, JSONType, TimestampMixin


class NotificationType:
    REMINDER_20MIN = "verification_reminder_20min"
    REMINDER_24HRS = "verification_reminder_24hrs"


class ScheduledNotification(TimestampMixin, Base):
    __tablename__ = "scheduled_notifications"
    __table_args__ = (
        Index("ix_scheduled_notifications_due", "sent", "scheduled_for"),
        Index("ix_scheduled_notifications_owner", "owner_id", "sent"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("ntf"))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("owners.id"), nullable=False)
    verification_id: Mapped[str] = mapped_column(String, ForeignKey("verifications.id"), nullable=False)

    notification_type: Mapped[str] = mapped_column(String(80), nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # {"email": ..., "subject": ..., "urgent": bool}
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
