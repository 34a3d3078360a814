from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from portal.models.schedule import Weekday
from portal.models.schedule_change_request import ScheduleChangeStatus

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$")


def normalize_time(value: str) -> str:
    """Return `value` as zero-padded HH:MM; seconds are dropped."""
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError("Time must be in HH:MM 24-hour format")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def _optional_day(value: str | Weekday | None) -> Weekday | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return Weekday.parse(value)


def _optional_time(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return normalize_time(value)


class CourseSummary(BaseModel):
    id: str
    name: str | None = None


class TeacherSummary(BaseModel):
    id: str
    name: str
    email: str


class ScheduleSlotOut(BaseModel):
    id: str
    teacher_id: str | None = Field(default=None, alias="teacherId")
    course_id: str | None = Field(default=None, alias="courseId")
    course: CourseSummary | None = None
    day_of_week: Weekday = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    location: str | None = None
    notes: str | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_slot(cls, slot, course=None) -> "ScheduleSlotOut":
        if course is not None:
            course_summary = CourseSummary(id=course.id, name=course.name)
        elif slot.course_id:
            course_summary = CourseSummary(id=slot.course_id, name=None)
        else:
            course_summary = None
        return cls(
            id=slot.id,
            teacher_id=slot.teacher_id,
            course_id=slot.course_id,
            course=course_summary,
            day_of_week=slot.day_of_week,
            start_time=slot.start_time,
            end_time=slot.end_time,
            location=slot.location,
            notes=slot.notes,
            created_at=slot.created_at,
            updated_at=slot.updated_at,
        )


class TeacherSlotCreate(BaseModel):
    day_of_week: Weekday = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    course_id: str | None = Field(default=None, alias="courseId")
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=1000)

    model_config = {"populate_by_name": True}

    @field_validator("day_of_week", mode="before")
    @classmethod
    def parse_day(cls, value):
        return Weekday.parse(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def parse_time(cls, value: str) -> str:
        return normalize_time(value)


class TeacherSlotUpdate(BaseModel):
    """Partial update; an empty `courseId` string detaches the slot from its course."""

    day_of_week: Weekday | None = Field(default=None, alias="dayOfWeek")
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    course_id: str | None = Field(default=None, alias="courseId")
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=1000)

    model_config = {"populate_by_name": True}

    @field_validator("day_of_week", mode="before")
    @classmethod
    def parse_day(cls, value):
        return _optional_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def parse_time(cls, value: str | None) -> str | None:
        return _optional_time(value)


class ScheduleChangeRequestCreate(BaseModel):
    # slotId and reason are checked by the workflow so that a missing value
    # maps to 400 rather than a body validation error.
    slot_id: str | None = Field(default=None, alias="slotId")
    requested_day_of_week: Weekday | None = Field(default=None, alias="requestedDayOfWeek")
    requested_start_time: str | None = Field(default=None, alias="requestedStartTime")
    requested_end_time: str | None = Field(default=None, alias="requestedEndTime")
    reason: str | None = Field(default=None, max_length=2000)

    model_config = {"populate_by_name": True}

    @field_validator("requested_day_of_week", mode="before")
    @classmethod
    def parse_day(cls, value):
        return _optional_day(value)

    @field_validator("requested_start_time", "requested_end_time")
    @classmethod
    def parse_time(cls, value: str | None) -> str | None:
        return _optional_time(value)


class ScheduleChangeDecline(BaseModel):
    decline_reason: str | None = Field(default=None, alias="declineReason", max_length=2000)

    model_config = {"populate_by_name": True}


class SlotTimesOut(BaseModel):
    day_of_week: Weekday | None = Field(default=None, alias="dayOfWeek")
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")

    model_config = {"populate_by_name": True}


class ScheduleChangeRequestOut(BaseModel):
    id: str
    slot_id: str = Field(alias="slotId")
    teacher_id: str = Field(alias="teacherId")
    course_id: str | None = Field(default=None, alias="courseId")
    teacher: TeacherSummary | None = None
    course: CourseSummary | None = None
    current_slot: SlotTimesOut = Field(alias="currentSlot")
    requested_slot: SlotTimesOut = Field(alias="requestedSlot")
    reason: str
    status: ScheduleChangeStatus
    declined_reason: str | None = Field(default=None, alias="declinedReason")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True}


class ScheduleChangeRequestList(BaseModel):
    requests: list[ScheduleChangeRequestOut]


class ScheduleChangeResult(BaseModel):
    message: str
    request_id: str | None = Field(default=None, alias="requestId")
    slot: ScheduleSlotOut | None = None

    model_config = {"populate_by_name": True}
