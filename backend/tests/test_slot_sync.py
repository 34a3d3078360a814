from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from factories import make_course, make_course_slot, make_teacher_slot, make_user
from portal.models.schedule import CourseScheduleSlot, TeacherScheduleSlot, Weekday
from portal.models.user import UserRole
from portal.services.schedule_store import ScheduleStore, SlotTimes
from portal.services.slot_sync import SyncOutcome, sync_course_slot


def _course_rows(db, course_id):
    return list(
        db.execute(
            select(CourseScheduleSlot)
            .where(CourseScheduleSlot.course_id == course_id)
            .order_by(CourseScheduleSlot.start_time)
        ).scalars()
    )


def _setup(db):
    teacher = make_user(db, role=UserRole.teacher)
    course = make_course(db, teacher=teacher)
    return teacher, course


def _move(store, slot, **fields):
    previous = SlotTimes.of(slot)
    store.update_teacher_slot(slot.id, fields)
    return previous


def test_exact_match_without_snapshot_is_noop(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    mirror = make_course_slot(db, course=course, teacher=teacher, day=Weekday.monday, start="09:00", end="10:00")
    store = ScheduleStore(db)

    assert sync_course_slot(store, slot) == SyncOutcome.unchanged
    assert sync_course_slot(store, slot) == SyncOutcome.unchanged

    rows = _course_rows(db, course.id)
    assert [row.id for row in rows] == [mirror.id]
    assert rows[0].updated_at is None


def test_sole_candidate_is_updated_when_snapshot_matches_nothing(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.tuesday, start="10:00", end="11:00")
    mirror = make_course_slot(db, course=course, teacher=teacher, day=Weekday.friday, start="08:00", end="09:00")
    store = ScheduleStore(db)

    previous = _move(store, slot, day_of_week=Weekday.wednesday, start_time="14:00", end_time="15:00")
    assert sync_course_slot(store, slot, previous) == SyncOutcome.updated

    rows = _course_rows(db, course.id)
    assert len(rows) == 1
    assert rows[0].id == mirror.id
    assert (rows[0].day_of_week, rows[0].start_time, rows[0].end_time) == (Weekday.wednesday, "14:00", "15:00")


def test_ambiguous_candidates_leave_course_table_untouched(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.tuesday, start="10:00", end="11:00")
    make_course_slot(db, course=course, teacher=teacher, day=Weekday.monday, start="08:00", end="09:00")
    make_course_slot(db, course=course, teacher=teacher, day=Weekday.thursday, start="12:00", end="13:00")
    store = ScheduleStore(db)

    previous = _move(store, slot, day_of_week=Weekday.wednesday, start_time="14:00", end_time="15:00")
    assert sync_course_slot(store, slot, previous) == SyncOutcome.ambiguous

    rows = _course_rows(db, course.id)
    assert len(rows) == 2
    assert {(row.day_of_week, row.start_time) for row in rows} == {
        (Weekday.monday, "08:00"),
        (Weekday.thursday, "12:00"),
    }


def test_exact_old_match_wins_over_other_candidates(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.tuesday, start="10:00", end="11:00")
    target = make_course_slot(db, course=course, teacher=teacher, day=Weekday.tuesday, start="10:00", end="11:00")
    other = make_course_slot(db, course=course, teacher=teacher, day=Weekday.thursday, start="10:00", end="11:00")
    store = ScheduleStore(db)

    previous = _move(store, slot, day_of_week=Weekday.wednesday, start_time="14:00", end_time="15:00")
    assert sync_course_slot(store, slot, previous) == SyncOutcome.updated

    db.refresh(target)
    db.refresh(other)
    assert (target.day_of_week, target.start_time) == (Weekday.wednesday, "14:00")
    assert (other.day_of_week, other.start_time) == (Weekday.thursday, "10:00")


def test_unique_old_day_match_is_updated(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.tuesday, start="10:00", end="11:00")
    same_day = make_course_slot(db, course=course, teacher=teacher, day=Weekday.tuesday, start="13:00", end="14:00")
    make_course_slot(db, course=course, teacher=teacher, day=Weekday.friday, start="10:00", end="11:00")
    store = ScheduleStore(db)

    previous = _move(store, slot, start_time="15:00", end_time="16:00")
    assert sync_course_slot(store, slot, previous) == SyncOutcome.updated

    db.refresh(same_day)
    assert (same_day.day_of_week, same_day.start_time, same_day.end_time) == (Weekday.tuesday, "15:00", "16:00")


def test_no_candidates_creates_mirror_row(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    store = ScheduleStore(db)

    previous = _move(store, slot, start_time="11:00", end_time="12:00")
    assert sync_course_slot(store, slot, previous) == SyncOutcome.created

    rows = _course_rows(db, course.id)
    assert len(rows) == 1
    assert rows[0].teacher_id == teacher.id
    assert (rows[0].day_of_week, rows[0].start_time, rows[0].end_time) == (Weekday.monday, "11:00", "12:00")
    assert rows[0].location == "Room 12"


def test_slot_without_course_is_skipped(db):
    teacher = make_user(db, role=UserRole.teacher)
    slot = make_teacher_slot(db, teacher=teacher, course=None, day=Weekday.monday, start="09:00", end="10:00")

    assert sync_course_slot(ScheduleStore(db), slot) == SyncOutcome.skipped
    assert db.execute(select(CourseScheduleSlot)).first() is None


def test_storage_failure_is_reported_not_raised(db, monkeypatch):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    store = ScheduleStore(db)

    def broken_insert(fields):
        raise OperationalError("INSERT INTO course_schedule_slots", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store, "insert_course_slot", broken_insert)

    assert sync_course_slot(store, slot) == SyncOutcome.failed
    db.commit()
    assert db.get(TeacherScheduleSlot, slot.id) is not None
    assert _course_rows(db, course.id) == []


def test_create_intent_moves_single_stale_candidate(db):
    teacher, course = _setup(db)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    stale = make_course_slot(db, course=course, teacher=teacher, day=Weekday.friday, start="08:00", end="09:00")

    assert sync_course_slot(ScheduleStore(db), slot) == SyncOutcome.updated

    rows = _course_rows(db, course.id)
    assert [row.id for row in rows] == [stale.id]
    assert (rows[0].day_of_week, rows[0].start_time, rows[0].end_time) == (Weekday.monday, "09:00", "10:00")
