"""Typed access to the teacher-side and course-side schedule slot tables.

A logical weekly slot is stored twice: once in `teacher_schedule_slots` (what a
teacher sees) and once in `course_schedule_slots` (what students of the course
see). Callers go through `ScheduleStore` and `sync_course_slot` instead of
touching both tables themselves. Storage errors propagate unchanged.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.models.schedule import CourseScheduleSlot, TeacherScheduleSlot, Weekday

SLOT_FIELDS = ("day_of_week", "start_time", "end_time", "location", "notes")


@dataclass(frozen=True)
class SlotTimes:
    day_of_week: Weekday | None
    start_time: str | None
    end_time: str | None

    @classmethod
    def of(cls, slot: TeacherScheduleSlot | CourseScheduleSlot) -> "SlotTimes":
        return cls(slot.day_of_week, slot.start_time, slot.end_time)

    @property
    def is_complete(self) -> bool:
        return bool(self.day_of_week and self.start_time and self.end_time)

    def matches(self, slot: TeacherScheduleSlot | CourseScheduleSlot) -> bool:
        return (
            slot.day_of_week == self.day_of_week
            and slot.start_time == self.start_time
            and slot.end_time == self.end_time
        )

    def label(self) -> str:
        day = self.day_of_week.value if self.day_of_week else "?"
        return f"{day} {self.start_time}-{self.end_time}"


def _slot_sort_key(slot: TeacherScheduleSlot | CourseScheduleSlot) -> tuple[int, str]:
    return slot.day_of_week.order, slot.start_time


class ScheduleStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_teacher_slot(self, slot_id: str) -> TeacherScheduleSlot | None:
        return self.db.get(TeacherScheduleSlot, slot_id)

    def get_owned_teacher_slot(self, slot_id: str, teacher_id: str) -> TeacherScheduleSlot | None:
        return self.db.execute(
            select(TeacherScheduleSlot).where(
                TeacherScheduleSlot.id == slot_id,
                TeacherScheduleSlot.teacher_id == teacher_id,
            )
        ).scalar_one_or_none()

    def list_teacher_slots(self, teacher_id: str) -> list[TeacherScheduleSlot]:
        slots = self.db.execute(
            select(TeacherScheduleSlot).where(TeacherScheduleSlot.teacher_id == teacher_id)
        ).scalars()
        return sorted(slots, key=_slot_sort_key)

    def list_course_slots_for(self, course_id: str, teacher_id: str) -> list[CourseScheduleSlot]:
        return list(
            self.db.execute(
                select(CourseScheduleSlot)
                .where(
                    CourseScheduleSlot.course_id == course_id,
                    CourseScheduleSlot.teacher_id == teacher_id,
                )
                .order_by(CourseScheduleSlot.created_at, CourseScheduleSlot.id)
            ).scalars()
        )

    def list_course_slots(self, course_ids: Iterable[str]) -> list[CourseScheduleSlot]:
        ids = list(dict.fromkeys(course_ids))
        if not ids:
            return []
        slots = self.db.execute(
            select(CourseScheduleSlot).where(CourseScheduleSlot.course_id.in_(ids))
        ).scalars()
        return sorted(slots, key=_slot_sort_key)

    def update_course_slot(self, slot_id: str, fields: dict[str, Any]) -> CourseScheduleSlot | None:
        slot = self.db.get(CourseScheduleSlot, slot_id)
        if slot is None:
            return None
        self._apply(slot, fields)
        self.db.flush()
        return slot

    def insert_course_slot(self, fields: dict[str, Any]) -> CourseScheduleSlot:
        slot = CourseScheduleSlot(**fields)
        self.db.add(slot)
        self.db.flush()
        return slot

    def update_teacher_slot(self, slot_id: str, fields: dict[str, Any]) -> TeacherScheduleSlot | None:
        slot = self.db.get(TeacherScheduleSlot, slot_id)
        if slot is None:
            return None
        self._apply(slot, fields)
        self.db.flush()
        return slot

    def insert_teacher_slot(self, fields: dict[str, Any]) -> TeacherScheduleSlot:
        slot = TeacherScheduleSlot(**fields)
        self.db.add(slot)
        self.db.flush()
        return slot

    def delete_teacher_slot(self, slot_id: str) -> bool:
        slot = self.db.get(TeacherScheduleSlot, slot_id)
        if slot is None:
            return False
        self.db.delete(slot)
        self.db.flush()
        return True

    @staticmethod
    def _apply(slot: TeacherScheduleSlot | CourseScheduleSlot, fields: dict[str, Any]) -> None:
        for key, value in fields.items():
            setattr(slot, key, value)
