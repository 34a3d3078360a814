from __future__ import annotations

from enum import Enum
import logging

from sqlalchemy.exc import SQLAlchemyError

from portal.models.schedule import CourseScheduleSlot, TeacherScheduleSlot
from portal.services.schedule_store import SLOT_FIELDS, ScheduleStore, SlotTimes

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    skipped = "skipped"
    unchanged = "unchanged"
    updated = "updated"
    created = "created"
    ambiguous = "ambiguous"
    failed = "failed"


def _pick_for_update(candidates: list[CourseScheduleSlot], previous: SlotTimes) -> CourseScheduleSlot | None:
    for candidate in candidates:
        if previous.matches(candidate):
            return candidate
    same_day = [item for item in candidates if item.day_of_week == previous.day_of_week]
    if len(same_day) == 1:
        return same_day[0]
    if len(candidates) == 1:
        return candidates[0]
    return None


def sync_course_slot(
    store: ScheduleStore,
    slot: TeacherScheduleSlot,
    previous: SlotTimes | None = None,
) -> SyncOutcome:
    """Mirror `slot` into `course_schedule_slots`.

    `previous` is the teacher slot's day/start/end before the change; without
    it the slot is treated as new. With an old snapshot the course row to move
    is chosen by exact old match, then a unique old-day match, then a sole
    candidate. Two or more candidates with none of those matches leave the
    course table untouched. Failures are logged and reported as `failed`,
    never raised.
    """
    if not slot.course_id or not slot.teacher_id:
        logger.debug("Slot %s has no course or teacher; nothing to mirror", slot.id)
        return SyncOutcome.skipped

    target = SlotTimes.of(slot)
    try:
        with store.db.begin_nested():
            candidates = store.list_course_slots_for(slot.course_id, slot.teacher_id)
            logger.debug(
                "Mirroring slot %s (%s) against %d course slot(s)",
                slot.id,
                target.label(),
                len(candidates),
            )

            chosen: CourseScheduleSlot | None = None
            if previous is not None and previous.is_complete:
                chosen = _pick_for_update(candidates, previous)
                if chosen is None and len(candidates) > 1:
                    if any(target.matches(item) for item in candidates):
                        return SyncOutcome.unchanged
                    logger.warning(
                        "Cannot tell which of %d course slots mirrors teacher slot %s (was %s); left unchanged",
                        len(candidates),
                        slot.id,
                        previous.label(),
                    )
                    return SyncOutcome.ambiguous
            else:
                if any(target.matches(item) for item in candidates):
                    return SyncOutcome.unchanged
                if len(candidates) == 1:
                    chosen = candidates[0]

            values = {field: getattr(slot, field) for field in SLOT_FIELDS}
            if chosen is not None:
                store.update_course_slot(chosen.id, values)
                logger.info("Course slot %s now %s", chosen.id, target.label())
                return SyncOutcome.updated

            created = store.insert_course_slot(
                {**values, "course_id": slot.course_id, "teacher_id": slot.teacher_id}
            )
            logger.info("Created course slot %s for %s", created.id, target.label())
            return SyncOutcome.created
    except SQLAlchemyError:
        logger.exception("Failed to mirror teacher slot %s into course schedule", slot.id)
        return SyncOutcome.failed
