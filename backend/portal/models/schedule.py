import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from portal.db.base import Base


class Weekday(str, Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"
    sunday = "Sunday"

    @classmethod
    def parse(cls, value: "str | Weekday") -> "Weekday":
        if isinstance(value, Weekday):
            return value
        key = str(value).strip().lower()
        for day in cls:
            if key in {day.name, day.name[:3]}:
                return day
        raise ValueError(f"Invalid day of week: {value!r}")

    @property
    def order(self) -> int:
        return list(Weekday).index(self)


weekday_enum = SAEnum(
    Weekday,
    name="weekday",
    values_callable=lambda members: [member.value for member in members],
)


class _SlotColumns:
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    day_of_week: Mapped[Weekday] = mapped_column(weekday_enum, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class TeacherScheduleSlot(_SlotColumns, Base):
    """A teacher's weekly slot; `course_id` is empty for private slots."""

    __tablename__ = "teacher_schedule_slots"

    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    course_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)


class CourseScheduleSlot(_SlotColumns, Base):
    """Course-side mirror of a teacher slot, read by the student timetable."""

    __tablename__ = "course_schedule_slots"

    course_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
