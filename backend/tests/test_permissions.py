from factories import auth_headers, make_course, make_teacher_slot, make_user, seed_classroom, submit_request
from portal.api.permissions import Capability, has_capability
from portal.core.security import create_access_token
from portal.models.schedule import Weekday
from portal.models.user import UserRole


def test_capability_table():
    assert has_capability(UserRole.admin, Capability.review_schedule_requests)
    assert has_capability(UserRole.super_admin, Capability.manage_timetables)
    assert has_capability(UserRole.co_admin, Capability.view_schedule_requests)
    assert not has_capability(UserRole.co_admin, Capability.review_schedule_requests)
    assert not has_capability(UserRole.co_admin, Capability.manage_timetables)
    assert has_capability(UserRole.teacher, Capability.request_schedule_change)
    assert not has_capability(UserRole.student, Capability.request_schedule_change)
    assert has_capability(UserRole.teacher, Capability.view_own_timetable)
    assert not has_capability(UserRole.teacher, Capability.view_enrolled_timetable)
    assert has_capability(UserRole.student, Capability.view_enrolled_timetable)
    assert not has_capability(UserRole.student, Capability.view_own_timetable)
    assert not has_capability(UserRole.admin, Capability.view_own_timetable)


def test_co_admin_can_read_but_not_review(client, db):
    co_admin = make_user(db, role=UserRole.co_admin)
    teacher = make_user(db, role=UserRole.teacher)
    headers = auth_headers(co_admin)
    teacher_id = teacher.id
    db.commit()

    assert client.get("/api/admin/schedule-change-requests", headers=headers).status_code == 200
    assert client.get(f"/api/admin/timetable/teachers/{teacher_id}/slots", headers=headers).status_code == 200
    assert client.post("/api/admin/schedule-change/any/approve", headers=headers).status_code == 403
    assert client.post("/api/admin/schedule-change/any/decline", headers=headers).status_code == 403
    created = client.post(
        f"/api/admin/timetable/teachers/{teacher_id}/slots",
        json={"dayOfWeek": "Monday", "startTime": "09:00", "endTime": "10:00"},
        headers=headers,
    )
    assert created.status_code == 403


def test_students_and_teachers_stay_in_their_lane(client, db):
    teacher = make_user(db, role=UserRole.teacher)
    student = make_user(db, role=UserRole.student)
    course = make_course(db, teacher=teacher)
    slot = make_teacher_slot(db, teacher=teacher, course=course, day=Weekday.monday, start="09:00", end="10:00")
    slot_id = slot.id
    teacher_headers = auth_headers(teacher)
    student_headers = auth_headers(student)
    db.commit()

    request_change = client.post(
        "/api/teacher/timetable/request-change",
        json={"slotId": slot_id, "reason": "clash"},
        headers=student_headers,
    )
    assert request_change.status_code == 403
    assert client.get("/api/teacher/timetable", headers=student_headers).status_code == 403
    assert client.get("/api/student/timetable", headers=teacher_headers).status_code == 403
    assert client.get("/api/admin/schedule-change-requests", headers=teacher_headers).status_code == 403
    assert client.get("/api/activity/logs", headers=teacher_headers).status_code == 403


def test_requests_need_a_valid_token(client, db):
    teacher = make_user(db, role=UserRole.teacher)
    teacher.is_active = False
    inactive_headers = auth_headers(teacher)
    db.commit()

    assert client.get("/api/teacher/timetable").status_code in {401, 403}
    bogus = client.get("/api/teacher/timetable", headers={"Authorization": "Bearer not-a-token"})
    assert bogus.status_code == 401
    unknown = client.get(
        "/api/teacher/timetable",
        headers={"Authorization": f"Bearer {create_access_token('missing-user')}"},
    )
    assert unknown.status_code == 401
    assert client.get("/api/teacher/timetable", headers=inactive_headers).status_code == 403


def test_activity_log_records_who_reviewed_what(client, db):
    seeded = seed_classroom(db)
    admin_id = seeded["admin"].id
    teacher_id = seeded["teacher"].id
    request_id = submit_request(client, seeded)
    assert client.post(
        f"/api/admin/schedule-change/{request_id}/approve",
        headers=seeded["admin_headers"],
    ).status_code == 200

    response = client.get(
        "/api/activity/logs",
        params={"entityType": "schedule_change_request", "entityId": request_id},
        headers=seeded["admin_headers"],
    )
    assert response.status_code == 200
    entries = {entry["action"]: entry for entry in response.json()}
    assert set(entries) == {"schedule_change.request", "schedule_change.approve"}
    assert entries["schedule_change.request"]["actorId"] == teacher_id
    assert entries["schedule_change.request"]["actorRole"] == "teacher"
    assert entries["schedule_change.approve"]["actorId"] == admin_id
    assert entries["schedule_change.approve"]["actorRole"] == "admin"
    assert entries["schedule_change.approve"]["entityId"] == request_id
    assert entries["schedule_change.approve"]["details"]["course_sync"] == "updated"

    approvals = client.get(
        "/api/activity/logs",
        params={"action": "schedule_change.approve"},
        headers=seeded["admin_headers"],
    )
    assert [entry["entityId"] for entry in approvals.json()] == [request_id]
