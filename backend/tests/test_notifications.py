import pytest
from sqlalchemy import select
from starlette.websockets import WebSocketDisconnect

from factories import auth_headers, make_user, seed_classroom, submit_request
from portal.models.notification import AudienceScope, Notification, NotificationType
from portal.models.user import UserRole
from portal.services import notifications as notification_service
from portal.services.notifications import notify_many, notify_one


def test_notify_many_deduplicates_recipients(db, monkeypatch):
    pushed = []
    monkeypatch.setattr(
        notification_service,
        "publish_realtime_notification",
        lambda notification, event="notification.created", events=None: pushed.append(notification.recipient_id),
    )
    admin = make_user(db, role=UserRole.admin)
    students = [make_user(db, role=UserRole.student) for _ in range(3)]
    ids = [student.id for student in students]

    count = notify_many(
        db,
        recipient_ids=[ids[0], ids[1], ids[0], ids[2], ""],
        sender_id=admin.id,
        title="Class Schedule Changed",
        message="Moved",
        notification_type=NotificationType.schedule_change,
        course_id="course-1",
    )
    db.commit()

    assert count == 3
    assert sorted(pushed) == sorted(ids)
    rows = list(db.execute(select(Notification)).scalars())
    assert sorted(row.recipient_id for row in rows) == sorted(ids)
    assert {row.audience_scope for row in rows} == {AudienceScope.course}
    assert all(row.channels == ["in_app"] for row in rows)


def test_notify_many_with_no_recipients_writes_nothing(db):
    assert notify_many(db, recipient_ids=[], sender_id=None, title="t", message="m") == 0
    assert db.execute(select(Notification)).first() is None


def test_failed_notification_write_does_not_break_caller(db):
    teacher = make_user(db, role=UserRole.teacher)
    teacher_id = teacher.id

    assert notify_one(db, recipient_id=teacher_id, sender_id=None, title="Broken", message=None) is None

    stored = notify_one(db, recipient_id=teacher_id, sender_id=None, title="Fine", message="ok")
    db.commit()
    assert stored is not None
    titles = [row.title for row in db.execute(select(Notification)).scalars()]
    assert titles == ["Fine"]


def test_notification_read_endpoints(client, db):
    teacher = make_user(db, role=UserRole.teacher)
    other = make_user(db, role=UserRole.teacher)
    teacher_id = teacher.id
    headers = auth_headers(teacher)
    other_headers = auth_headers(other)
    for title in ("First", "Second", "Third"):
        db.add(Notification(recipient_id=teacher_id, title=title, message=f"{title} message"))
    db.commit()

    listed = client.get("/api/notifications", headers=headers)
    assert listed.status_code == 200
    assert len(listed.json()) == 3
    first_id = listed.json()[0]["id"]
    assert client.get("/api/notifications", headers=other_headers).json() == []

    assert client.post(f"/api/notifications/{first_id}/read", headers=other_headers).status_code == 404
    read = client.post(f"/api/notifications/{first_id}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["is_read"] is True
    assert read.json()["read_at"] is not None

    unread = client.get("/api/notifications", params={"is_read": False}, headers=headers)
    assert len(unread.json()) == 2

    read_all = client.post("/api/notifications/read-all", headers=headers)
    assert read_all.json() == {"updated": 2}
    assert client.get("/api/notifications", params={"is_read": False}, headers=headers).json() == []


def test_websocket_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/notifications/ws") as websocket:
            websocket.receive_json()


def test_websocket_connects_and_answers_ping(client, db):
    teacher = make_user(db, role=UserRole.teacher)
    teacher_id = teacher.id
    headers = auth_headers(teacher)
    token = headers["Authorization"].split(" ", 1)[1]
    db.commit()

    with client.websocket_connect(f"/api/notifications/ws?token={token}") as websocket:
        assert websocket.receive_json() == {"event": "connected", "user_id": teacher_id, "role": "teacher"}
        websocket.send_text("ping")
        assert websocket.receive_json() == {"event": "pong"}


def test_websocket_follows_a_change_request_to_approval(client, db):
    seeded = seed_classroom(db)
    teacher_id = seeded["teacher"].id
    token = seeded["teacher_headers"]["Authorization"].split(" ", 1)[1]

    with client.websocket_connect(f"/api/notifications/ws?token={token}") as websocket:
        assert websocket.receive_json()["event"] == "connected"

        request_id = submit_request(client, seeded)
        approved = client.post(
            f"/api/admin/schedule-change/{request_id}/approve",
            headers=seeded["admin_headers"],
        )
        assert approved.status_code == 200

        received = [websocket.receive_json() for _ in range(7)]

    assert [message["event"] for message in received] == [
        "admin-notifications-refresh",
        "notification.created",
        "schedule-updated",
        "teacher-notifications-refresh",
        "admin-notifications-refresh",
        "student-timetable-refresh",
        "student-notifications-refresh",
    ]
    notification = received[1]["notification"]
    assert notification["recipient_id"] == teacher_id
    assert notification["title"] == "Schedule Change Approved"
    assert received[5]["courseId"] == seeded["course_id"]
