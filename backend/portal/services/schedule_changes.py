"""Teacher schedule change requests and their admin review.

A request moves one way: pending -> approved or pending -> declined. The move
is claimed with a conditional UPDATE so that two admins acting on the same
request cannot both apply it. Approval rewrites the teacher slot and mirrors it
into the course table, then notifies the teacher and the enrolled students.
"""
from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.exceptions import (
    AlreadyProcessedError,
    ResourceNotFoundError,
    StorageError,
    ValidationFailedError,
)
from portal.db.transactions import commit_or_raise
from portal.models.course import Course, CourseEnrollment
from portal.models.notification import NotificationType
from portal.models.schedule_change_request import ScheduleChangeRequest, ScheduleChangeStatus
from portal.models.user import User
from portal.schemas.schedule import (
    CourseSummary,
    ScheduleChangeRequestCreate,
    ScheduleChangeRequestOut,
    ScheduleChangeResult,
    ScheduleSlotOut,
    SlotTimesOut,
    TeacherSummary,
)
from portal.services import realtime
from portal.services.audit import log_activity
from portal.services.notifications import notify_many, notify_one
from portal.services.schedule_store import ScheduleStore, SlotTimes
from portal.services.slot_sync import sync_course_slot

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Schedule change request not found or already processed"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def current_times(request: ScheduleChangeRequest) -> SlotTimes:
    return SlotTimes(request.current_day_of_week, request.current_start_time, request.current_end_time)


def requested_updates(request: ScheduleChangeRequest) -> dict:
    """Slot fields the teacher asked to change; absent fields keep their value."""
    updates: dict = {}
    if request.requested_day_of_week:
        updates["day_of_week"] = request.requested_day_of_week
    if request.requested_start_time:
        updates["start_time"] = request.requested_start_time
    if request.requested_end_time:
        updates["end_time"] = request.requested_end_time
    return updates


def enrolled_student_ids(db: Session, course_id: str) -> list[str]:
    return list(
        db.execute(select(CourseEnrollment.student_id).where(CourseEnrollment.course_id == course_id)).scalars()
    )


class ScheduleChangeWorkflow:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.store = ScheduleStore(db)
        self.events = realtime.EventBuffer()

    def submit(self, teacher: User, payload: ScheduleChangeRequestCreate) -> ScheduleChangeRequest:
        reason = _normalize_text(payload.reason)
        if not payload.slot_id or not reason:
            raise ValidationFailedError("Slot ID and reason are required")

        slot = self.store.get_owned_teacher_slot(payload.slot_id, teacher.id)
        if slot is None:
            raise ResourceNotFoundError(
                "schedule_slot",
                payload.slot_id,
                message="Slot not found or you don't have permission",
            )

        request = ScheduleChangeRequest(
            slot_id=slot.id,
            teacher_id=teacher.id,
            course_id=slot.course_id,
            current_day_of_week=slot.day_of_week,
            current_start_time=slot.start_time,
            current_end_time=slot.end_time,
            requested_day_of_week=payload.requested_day_of_week,
            requested_start_time=payload.requested_start_time,
            requested_end_time=payload.requested_end_time,
            reason=reason,
            status=ScheduleChangeStatus.pending,
        )
        self.db.add(request)
        self.db.flush()
        log_activity(
            self.db,
            user=teacher,
            action="schedule_change.request",
            entity_type="schedule_change_request",
            entity_id=request.id,
            details={"slot_id": slot.id, "course_id": slot.course_id},
        )
        self._queue(
            realtime.ADMIN_NOTIFICATIONS_REFRESH,
            {"type": "schedule_change_request", "teacherId": teacher.id},
        )
        self._commit("submit schedule change request")
        logger.info("Teacher %s requested a change to slot %s (%s)", teacher.id, slot.id, request.id)
        return request

    def list_pending(self) -> list[ScheduleChangeRequestOut]:
        requests = list(
            self.db.execute(
                select(ScheduleChangeRequest)
                .where(ScheduleChangeRequest.status == ScheduleChangeStatus.pending)
                .order_by(ScheduleChangeRequest.created_at.desc())
            ).scalars()
        )
        return self._hydrate(requests)

    def list_for_teacher(self, teacher_id: str) -> list[ScheduleChangeRequestOut]:
        requests = list(
            self.db.execute(
                select(ScheduleChangeRequest)
                .where(ScheduleChangeRequest.teacher_id == teacher_id)
                .order_by(ScheduleChangeRequest.created_at.desc())
            ).scalars()
        )
        return self._hydrate(requests)

    def approve(self, request_id: str, admin: User) -> ScheduleChangeResult:
        request = self._load_pending(request_id)
        updates = requested_updates(request)
        previous = current_times(request)

        try:
            self._claim(
                request_id,
                status=ScheduleChangeStatus.approved,
                approved_by_id=admin.id,
                approved_at=_utc_now(),
            )
            slot = None
            if updates:
                slot = self.store.update_teacher_slot(request.slot_id, updates)
                if slot is None:
                    raise ResourceNotFoundError("schedule_slot", request.slot_id, message="Slot not found")
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to apply schedule change request %s", request_id)
            raise StorageError(details={"request_id": request_id}) from exc
        except ResourceNotFoundError:
            self.db.rollback()
            raise

        if slot is None:
            notify_one(
                self.db,
                recipient_id=request.teacher_id,
                sender_id=admin.id,
                title="Schedule Change Approved",
                message="Your schedule change request has been approved. No changes were needed.",
                notification_type=NotificationType.schedule_change,
                course_id=request.course_id,
                events=self.events,
            )
            self._queue(realtime.TEACHER_NOTIFICATIONS_REFRESH, {"teacherId": request.teacher_id})
            self._log_review(admin, request, "schedule_change.approve", {"slot_changed": False})
            self._commit("approve schedule change request")
            return ScheduleChangeResult(message="Schedule change request approved", request_id=request.id)

        outcome = sync_course_slot(self.store, slot, previous)
        old_label = previous.label()
        new_label = SlotTimes.of(slot).label()

        notify_one(
            self.db,
            recipient_id=request.teacher_id,
            sender_id=admin.id,
            title="Schedule Change Approved",
            message=(
                "Your schedule change request has been approved. "
                f"Your slot has been updated from {old_label} to {new_label}."
            ),
            notification_type=NotificationType.schedule_change,
            course_id=request.course_id,
            events=self.events,
        )

        course = self.db.get(Course, request.course_id) if request.course_id else None
        notified_students = 0
        if request.course_id:
            course_name = course.name if course is not None else "the course"
            notified_students = notify_many(
                self.db,
                recipient_ids=enrolled_student_ids(self.db, request.course_id),
                sender_id=admin.id,
                title="Class Schedule Changed",
                message=(
                    f'Your class "{course_name}" schedule has been rescheduled from {old_label} to {new_label}. '
                    "Please update your calendar accordingly."
                ),
                notification_type=NotificationType.schedule_change,
                course_id=request.course_id,
                events=self.events,
            )

        self._queue(
            realtime.SCHEDULE_UPDATED,
            {"teacherId": request.teacher_id, "slotId": request.slot_id, "courseId": request.course_id},
        )
        self._queue(realtime.TEACHER_NOTIFICATIONS_REFRESH, {"teacherId": request.teacher_id})
        self._queue(realtime.ADMIN_NOTIFICATIONS_REFRESH, {"type": "schedule_change_approved"})
        if request.course_id:
            self._queue(realtime.STUDENT_TIMETABLE_REFRESH, {"courseId": request.course_id})
            self._queue(realtime.STUDENT_NOTIFICATIONS_REFRESH, {"courseId": request.course_id})

        self._log_review(
            admin,
            request,
            "schedule_change.approve",
            {
                "slot_changed": True,
                "from": old_label,
                "to": new_label,
                "course_sync": outcome.value,
                "notified_students": notified_students,
            },
        )
        self._commit("approve schedule change request")
        return ScheduleChangeResult(
            message="Schedule change approved and slot updated successfully",
            request_id=request.id,
            slot=ScheduleSlotOut.from_slot(slot, course),
        )

    def decline(self, request_id: str, admin: User, reason: str | None = None) -> ScheduleChangeResult:
        request = self._load_pending(request_id)
        decline_reason = _normalize_text(reason)

        try:
            self._claim(
                request_id,
                status=ScheduleChangeStatus.declined,
                declined_by_id=admin.id,
                declined_at=_utc_now(),
                declined_reason=decline_reason,
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to decline schedule change request %s", request_id)
            raise StorageError(details={"request_id": request_id}) from exc
        except AlreadyProcessedError:
            self.db.rollback()
            raise

        message = "Your schedule change request has been declined."
        if decline_reason:
            message += f" Reason: {decline_reason}"
        notify_one(
            self.db,
            recipient_id=request.teacher_id,
            sender_id=admin.id,
            title="Schedule Change Declined",
            message=message,
            notification_type=NotificationType.schedule_change,
            course_id=request.course_id,
            events=self.events,
        )
        self._queue(realtime.TEACHER_NOTIFICATIONS_REFRESH, {"teacherId": request.teacher_id})
        self._queue(realtime.ADMIN_NOTIFICATIONS_REFRESH, {"type": "schedule_change_declined"})
        self._log_review(admin, request, "schedule_change.decline", {"reason": decline_reason})
        self._commit("decline schedule change request")
        return ScheduleChangeResult(message="Schedule change request declined", request_id=request.id)

    def _load_pending(self, request_id: str) -> ScheduleChangeRequest:
        request = self.db.get(ScheduleChangeRequest, request_id)
        if request is None:
            raise ResourceNotFoundError("schedule_change_request", request_id, message=NOT_FOUND_MESSAGE)
        if request.status != ScheduleChangeStatus.pending:
            raise AlreadyProcessedError(request_id)
        return request

    def _claim(self, request_id: str, **values) -> None:
        result = self.db.execute(
            update(ScheduleChangeRequest)
            .where(
                ScheduleChangeRequest.id == request_id,
                ScheduleChangeRequest.status == ScheduleChangeStatus.pending,
            )
            .values(**values)
        )
        if result.rowcount == 0:
            logger.warning("Schedule change request %s was processed concurrently", request_id)
            raise AlreadyProcessedError(request_id)

    def _log_review(self, admin: User, request: ScheduleChangeRequest, action: str, details: dict) -> None:
        log_activity(
            self.db,
            user=admin,
            action=action,
            entity_type="schedule_change_request",
            entity_id=request.id,
            details={"teacher_id": request.teacher_id, "slot_id": request.slot_id, **details},
        )

    def _queue(self, topic: str, payload: dict) -> None:
        self.events.queue(topic, payload)

    def _commit(self, operation: str) -> None:
        try:
            commit_or_raise(self.db, operation)
        except StorageError:
            self.events.discard()
            raise
        self.events.emit_all()

    def _hydrate(self, requests: list[ScheduleChangeRequest]) -> list[ScheduleChangeRequestOut]:
        teacher_ids = {item.teacher_id for item in requests if item.teacher_id}
        course_ids = {item.course_id for item in requests if item.course_id}
        teachers = (
            {user.id: user for user in self.db.execute(select(User).where(User.id.in_(teacher_ids))).scalars()}
            if teacher_ids
            else {}
        )
        courses = (
            {course.id: course for course in self.db.execute(select(Course).where(Course.id.in_(course_ids))).scalars()}
            if course_ids
            else {}
        )

        results: list[ScheduleChangeRequestOut] = []
        for request in requests:
            teacher = teachers.get(request.teacher_id)
            course = courses.get(request.course_id) if request.course_id else None
            results.append(
                ScheduleChangeRequestOut(
                    id=request.id,
                    slot_id=request.slot_id,
                    teacher_id=request.teacher_id,
                    course_id=request.course_id,
                    teacher=(
                        TeacherSummary(id=teacher.id, name=teacher.name, email=teacher.email)
                        if teacher is not None
                        else None
                    ),
                    course=CourseSummary(id=course.id, name=course.name) if course is not None else None,
                    current_slot=SlotTimesOut(
                        day_of_week=request.current_day_of_week,
                        start_time=request.current_start_time,
                        end_time=request.current_end_time,
                    ),
                    requested_slot=SlotTimesOut(
                        day_of_week=request.requested_day_of_week or request.current_day_of_week,
                        start_time=request.requested_start_time or request.current_start_time,
                        end_time=request.requested_end_time or request.current_end_time,
                    ),
                    reason=request.reason,
                    status=request.status,
                    declined_reason=request.declined_reason,
                    created_at=request.created_at,
                )
            )
        return results
