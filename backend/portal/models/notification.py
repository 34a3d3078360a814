import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from portal.db.base import Base


class NotificationType(str, Enum):
    schedule_change = "schedule_change"
    timetable = "timetable"
    system = "system"
    announcement = "announcement"


class NotificationChannel(str, Enum):
    in_app = "in_app"
    email = "email"


class AudienceScope(str, Enum):
    custom = "custom"
    course = "course"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sender_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[NotificationType] = mapped_column(
        SAEnum(NotificationType, name="notification_type"),
        nullable=False,
        default=NotificationType.system,
    )
    channels: Mapped[list] = mapped_column(JSON, nullable=False, default=lambda: [NotificationChannel.in_app.value])
    audience_scope: Mapped[AudienceScope] = mapped_column(
        SAEnum(AudienceScope, name="notification_audience_scope"),
        nullable=False,
        default=AudienceScope.custom,
    )
    course_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
