from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.core.exceptions import ResourceNotFoundError, StorageError
from portal.db.transactions import commit_or_raise
from portal.models.course import Course, CourseEnrollment
from portal.models.user import User, UserRole
from portal.schemas.schedule import ScheduleSlotOut, TeacherSlotCreate, TeacherSlotUpdate
from portal.services import realtime
from portal.services.audit import log_activity
from portal.services.schedule_store import ScheduleStore, SlotTimes
from portal.services.slot_sync import sync_course_slot

logger = logging.getLogger(__name__)


class TimetableService:
    """Direct slot edits by admins and the per-role timetable views."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.store = ScheduleStore(db)
        self.events = realtime.EventBuffer()

    def teacher_timetable(self, teacher_id: str) -> list[ScheduleSlotOut]:
        slots = self.store.list_teacher_slots(teacher_id)
        courses = self._courses({slot.course_id for slot in slots if slot.course_id})
        return [ScheduleSlotOut.from_slot(slot, courses.get(slot.course_id)) for slot in slots]

    def student_timetable(self, student_id: str) -> list[ScheduleSlotOut]:
        course_ids = list(
            self.db.execute(
                select(CourseEnrollment.course_id).where(CourseEnrollment.student_id == student_id)
            ).scalars()
        )
        slots = self.store.list_course_slots(course_ids)
        courses = self._courses(set(course_ids))
        return [ScheduleSlotOut.from_slot(slot, courses.get(slot.course_id)) for slot in slots]

    def course_timetable(self, course_id: str) -> list[ScheduleSlotOut]:
        course = self._require_course(course_id)
        return [ScheduleSlotOut.from_slot(slot, course) for slot in self.store.list_course_slots([course_id])]

    def list_teacher_slots(self, teacher_id: str) -> list[ScheduleSlotOut]:
        self._require_teacher(teacher_id)
        return self.teacher_timetable(teacher_id)

    def create_teacher_slot(self, teacher_id: str, payload: TeacherSlotCreate, actor: User) -> ScheduleSlotOut:
        teacher = self._require_teacher(teacher_id)
        course = self._require_course(payload.course_id) if payload.course_id else None

        slot = self.store.insert_teacher_slot(
            {
                "teacher_id": teacher.id,
                "course_id": course.id if course is not None else None,
                "day_of_week": payload.day_of_week,
                "start_time": payload.start_time,
                "end_time": payload.end_time,
                "location": payload.location,
                "notes": payload.notes,
            }
        )
        outcome = sync_course_slot(self.store, slot)
        log_activity(
            self.db,
            user=actor,
            action="timetable.slot.create",
            entity_type="teacher_schedule_slot",
            entity_id=slot.id,
            details={"teacher_id": teacher.id, "course_sync": outcome.value},
        )
        self._slot_changed(slot, action="create")
        self._commit("create teacher slot")
        return ScheduleSlotOut.from_slot(slot, course)

    def update_teacher_slot(self, slot_id: str, payload: TeacherSlotUpdate, actor: User) -> ScheduleSlotOut:
        existing = self.store.get_teacher_slot(slot_id)
        if existing is None:
            raise ResourceNotFoundError("schedule_slot", slot_id, message="Slot not found")
        previous = SlotTimes.of(existing)

        fields: dict = {}
        if payload.day_of_week:
            fields["day_of_week"] = payload.day_of_week
        if payload.start_time:
            fields["start_time"] = payload.start_time
        if payload.end_time:
            fields["end_time"] = payload.end_time

        provided = payload.model_fields_set
        course = None
        if payload.course_id:
            course = self._require_course(payload.course_id)
            fields["course_id"] = course.id
        elif payload.course_id == "":
            fields["course_id"] = None
        elif existing.course_id:
            course = self.db.get(Course, existing.course_id)
        if "location" in provided:
            fields["location"] = payload.location
        if "notes" in provided:
            fields["notes"] = payload.notes

        slot = self.store.update_teacher_slot(slot_id, fields)
        outcome = sync_course_slot(self.store, slot, previous)
        log_activity(
            self.db,
            user=actor,
            action="timetable.slot.update",
            entity_type="teacher_schedule_slot",
            entity_id=slot.id,
            details={"from": previous.label(), "to": SlotTimes.of(slot).label(), "course_sync": outcome.value},
        )
        self._slot_changed(slot, action="update")
        self._commit("update teacher slot")
        return ScheduleSlotOut.from_slot(slot, course)

    def delete_teacher_slot(self, slot_id: str, actor: User) -> None:
        existing = self.store.get_teacher_slot(slot_id)
        if existing is None:
            raise ResourceNotFoundError("schedule_slot", slot_id, message="Slot not found")
        teacher_id = existing.teacher_id
        self.store.delete_teacher_slot(slot_id)
        log_activity(
            self.db,
            user=actor,
            action="timetable.slot.delete",
            entity_type="teacher_schedule_slot",
            entity_id=slot_id,
            details={"teacher_id": teacher_id},
        )
        self.events.queue(
            realtime.ADMIN_TIMETABLE_REFRESH,
            {"scope": "teacher", "teacherId": teacher_id, "slotId": slot_id, "action": "delete"},
        )
        self._commit("delete teacher slot")
        logger.info("Deleted teacher slot %s; its course schedule mirror is kept", slot_id)

    def _slot_changed(self, slot, *, action: str) -> None:
        self.events.queue(
            realtime.ADMIN_TIMETABLE_REFRESH,
            {"scope": "teacher", "teacherId": slot.teacher_id, "slotId": slot.id, "action": action},
        )
        if slot.course_id:
            self.events.queue(realtime.STUDENT_TIMETABLE_REFRESH, {"courseId": slot.course_id})

    def _commit(self, operation: str) -> None:
        try:
            commit_or_raise(self.db, operation)
        except StorageError:
            self.events.discard()
            raise
        self.events.emit_all()

    def _require_teacher(self, teacher_id: str) -> User:
        teacher = self.db.get(User, teacher_id)
        if teacher is None or teacher.role != UserRole.teacher:
            raise ResourceNotFoundError("teacher", teacher_id, message="Teacher not found")
        return teacher

    def _require_course(self, course_id: str) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise ResourceNotFoundError("course", course_id, message="Course not found")
        return course

    def _courses(self, course_ids: set[str]) -> dict[str, Course]:
        if not course_ids:
            return {}
        return {course.id: course for course in self.db.execute(select(Course).where(Course.id.in_(course_ids))).scalars()}
