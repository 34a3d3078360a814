from sqlalchemy import select

from factories import auth_headers, enroll, make_course, make_course_slot, make_teacher_slot, make_user
from portal.models.activity_log import ActivityLog
from portal.models.course import Course
from portal.models.schedule import CourseScheduleSlot, Weekday
from portal.models.user import User, UserRole


def seed(db):
    admin = make_user(db, role=UserRole.admin)
    teacher = make_user(db, role=UserRole.teacher)
    student = make_user(db, role=UserRole.student)
    course = make_course(db, teacher=teacher, code="CHEM110", name="Chemistry")
    enroll(db, course, student)
    seeded = {
        "teacher_id": teacher.id,
        "course_id": course.id,
        "admin_headers": auth_headers(admin),
        "teacher_headers": auth_headers(teacher),
        "student_headers": auth_headers(student),
    }
    db.commit()
    return seeded


def course_rows(db, course_id):
    db.expire_all()
    return list(
        db.execute(select(CourseScheduleSlot).where(CourseScheduleSlot.course_id == course_id)).scalars()
    )


def test_admin_slot_lifecycle_keeps_course_mirror_in_step(client, db, emitted_events):
    seeded = seed(db)
    teacher_id = seeded["teacher_id"]

    created = client.post(
        f"/api/admin/timetable/teachers/{teacher_id}/slots",
        json={
            "dayOfWeek": "monday",
            "startTime": "9:00",
            "endTime": "10:00",
            "courseId": seeded["course_id"],
            "location": "Lab 2",
        },
        headers=seeded["admin_headers"],
    )
    assert created.status_code == 201
    slot = created.json()
    assert slot["dayOfWeek"] == "Monday"
    assert slot["startTime"] == "09:00"
    assert slot["course"]["name"] == "Chemistry"

    [mirror] = course_rows(db, seeded["course_id"])
    assert (mirror.day_of_week, mirror.start_time, mirror.location) == (Weekday.monday, "09:00", "Lab 2")

    updated = client.put(
        f"/api/admin/timetable/teachers/slots/{slot['id']}",
        json={"startTime": "11:00", "endTime": "12:00"},
        headers=seeded["admin_headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["startTime"] == "11:00"
    assert updated.json()["location"] == "Lab 2"

    [moved] = course_rows(db, seeded["course_id"])
    assert moved.id == mirror.id
    assert (moved.day_of_week, moved.start_time, moved.end_time) == (Weekday.monday, "11:00", "12:00")

    deleted = client.delete(f"/api/admin/timetable/teachers/slots/{slot['id']}", headers=seeded["admin_headers"])
    assert deleted.status_code == 200
    assert client.get(f"/api/admin/timetable/teachers/{teacher_id}/slots", headers=seeded["admin_headers"]).json() == []
    assert len(course_rows(db, seeded["course_id"])) == 1

    actions = [
        payload["action"] for topic, payload in emitted_events if topic == "admin-timetable-refresh"
    ]
    assert actions == ["create", "update", "delete"]
    logged = set(db.execute(select(ActivityLog.action)).scalars())
    assert {"timetable.slot.create", "timetable.slot.update", "timetable.slot.delete"} <= logged


def test_direct_edit_creates_mirror_when_course_has_none(client, db):
    seeded = seed(db)
    teacher = db.get(User, seeded["teacher_id"])
    course = db.get(Course, seeded["course_id"])
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    slot_id = slot.id
    db.commit()
    assert course_rows(db, seeded["course_id"]) == []

    response = client.put(
        f"/api/admin/timetable/teachers/slots/{slot_id}",
        json={"startTime": "11:00", "endTime": "12:00"},
        headers=seeded["admin_headers"],
    )
    assert response.status_code == 200

    [mirror] = course_rows(db, seeded["course_id"])
    assert (mirror.day_of_week, mirror.start_time, mirror.end_time) == (Weekday.monday, "11:00", "12:00")
    assert mirror.teacher_id == seeded["teacher_id"]


def test_update_can_detach_course(client, db):
    seeded = seed(db)
    teacher = db.get(User, seeded["teacher_id"])
    course = db.get(Course, seeded["course_id"])
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.friday, start="13:00", end="14:00")
    slot_id = slot.id
    db.commit()

    response = client.put(
        f"/api/admin/timetable/teachers/slots/{slot_id}",
        json={"courseId": "", "notes": "office hours"},
        headers=seeded["admin_headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["courseId"] is None
    assert body["notes"] == "office hours"
    assert body["location"] == "Room 12"


def test_unknown_teacher_course_or_slot_is_not_found(client, db):
    seeded = seed(db)
    headers = seeded["admin_headers"]

    assert client.get("/api/admin/timetable/teachers/nobody/slots", headers=headers).status_code == 404
    assert client.get("/api/admin/timetable/courses/nothing/slots", headers=headers).status_code == 404
    missing_course = client.post(
        f"/api/admin/timetable/teachers/{seeded['teacher_id']}/slots",
        json={"dayOfWeek": "Monday", "startTime": "09:00", "endTime": "10:00", "courseId": "nothing"},
        headers=headers,
    )
    assert missing_course.status_code == 404
    assert missing_course.json()["message"] == "Course not found"
    assert client.delete("/api/admin/timetable/teachers/slots/nothing", headers=headers).status_code == 404


def test_role_views_are_sorted_by_weekday_then_start(client, db):
    seeded = seed(db)
    teacher = db.get(User, seeded["teacher_id"])
    course = db.get(Course, seeded["course_id"])
    make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.friday, start="08:00", end="09:00")
    make_teacher_slot(db, teacher=teacher, course=None, day=Weekday.monday, start="13:00", end="14:00")
    make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    make_course_slot(db, course=course, teacher=teacher, day=Weekday.wednesday, start="10:00", end="11:00")
    make_course_slot(db, course=course, teacher=teacher, day=Weekday.tuesday, start="15:00", end="16:00")
    other = make_course(db, teacher=teacher, code="ART100", name="Art")
    make_course_slot(db, course=other, teacher=teacher, day=Weekday.monday, start="08:00", end="09:00")
    db.commit()

    mine = client.get("/api/teacher/timetable", headers=seeded["teacher_headers"])
    assert mine.status_code == 200
    assert [(item["dayOfWeek"], item["startTime"]) for item in mine.json()] == [
        ("Monday", "09:00"),
        ("Monday", "13:00"),
        ("Friday", "08:00"),
    ]

    student_view = client.get("/api/student/timetable", headers=seeded["student_headers"])
    assert student_view.status_code == 200
    assert [(item["dayOfWeek"], item["startTime"]) for item in student_view.json()] == [
        ("Tuesday", "15:00"),
        ("Wednesday", "10:00"),
    ]
    assert {item["course"]["name"] for item in student_view.json()} == {"Chemistry"}

    course_view = client.get(
        f"/api/admin/timetable/courses/{seeded['course_id']}/slots",
        headers=seeded["admin_headers"],
    )
    assert course_view.status_code == 200
    assert len(course_view.json()) == 2
