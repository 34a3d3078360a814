import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from portal.db.base import Base
from portal.models.schedule import Weekday, weekday_enum


class ScheduleChangeStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    declined = "declined"


class ScheduleChangeRequest(Base):
    __tablename__ = "schedule_change_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slot_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    course_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    current_day_of_week: Mapped[Weekday] = mapped_column(weekday_enum, nullable=False)
    current_start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    current_end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    requested_day_of_week: Mapped[Weekday | None] = mapped_column(weekday_enum, nullable=True)
    requested_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    requested_end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ScheduleChangeStatus] = mapped_column(
        SAEnum(ScheduleChangeStatus, name="schedule_change_status"),
        nullable=False,
        default=ScheduleChangeStatus.pending,
        index=True,
    )
    approved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    declined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
