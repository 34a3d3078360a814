"""Seed demo accounts, one course and a teacher timetable for manual API checks.

Run:
  PYTHONPATH=backend python scripts/seed_demo.py

Authentication is handled outside this service, so the script prints a bearer
token per account instead of a password.
"""

from __future__ import annotations

import os
from typing import Iterable

from sqlalchemy import select

from portal.core.security import create_access_token
from portal.db.bootstrap import ensure_runtime_schema_compatibility
from portal.db.session import SessionLocal
from portal.models.course import Course, CourseEnrollment
from portal.models.schedule import TeacherScheduleSlot
from portal.models.user import User, UserRole
from portal.schemas.schedule import TeacherSlotCreate
from portal.services.timetable import TimetableService

COURSE_CODE = "DEMO-PHY101"


def _env_email(key: str, default: str) -> str:
    value = os.getenv(key, "").strip()
    return value or default


DEMO_ACCOUNTS = {
    "admin": {"name": "Demo Admin", "email": _env_email("DEMO_ADMIN_EMAIL", "admin.demo@example.com"), "role": UserRole.admin},
    "co_admin": {
        "name": "Demo Co-Admin",
        "email": _env_email("DEMO_COADMIN_EMAIL", "coadmin.demo@example.com"),
        "role": UserRole.co_admin,
    },
    "teacher": {
        "name": "Demo Teacher",
        "email": _env_email("DEMO_TEACHER_EMAIL", "teacher.demo@example.com"),
        "role": UserRole.teacher,
    },
    "student_a": {
        "name": "Demo Student A",
        "email": _env_email("DEMO_STUDENTA_EMAIL", "studenta.demo@example.com"),
        "role": UserRole.student,
    },
    "student_b": {
        "name": "Demo Student B",
        "email": _env_email("DEMO_STUDENTB_EMAIL", "studentb.demo@example.com"),
        "role": UserRole.student,
    },
}

DEMO_SLOTS = [
    {"dayOfWeek": "Monday", "startTime": "09:00", "endTime": "10:00", "location": "Lab 1"},
    {"dayOfWeek": "Tuesday", "startTime": "10:00", "endTime": "11:00", "location": "Room 204"},
    {"dayOfWeek": "Thursday", "startTime": "14:00", "endTime": "15:00", "location": "Room 204"},
]


def _upsert_user(*, name: str, email: str, role: UserRole) -> User:
    with SessionLocal() as session:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing is None:
            existing = User(name=name, email=email, role=role, is_active=True)
            session.add(existing)
        else:
            existing.name = name
            existing.role = role
            existing.is_active = True
        session.commit()
        session.refresh(existing)
        return existing


def _upsert_course(teacher: User, students: list[User]) -> Course:
    with SessionLocal() as session:
        course = session.execute(select(Course).where(Course.code == COURSE_CODE)).scalar_one_or_none()
        if course is None:
            course = Course(code=COURSE_CODE, name="Demo Physics", teacher_id=teacher.id)
            session.add(course)
            session.flush()
        else:
            course.teacher_id = teacher.id

        enrolled = set(
            session.execute(
                select(CourseEnrollment.student_id).where(CourseEnrollment.course_id == course.id)
            ).scalars()
        )
        for student in students:
            if student.id not in enrolled:
                session.add(CourseEnrollment(course_id=course.id, student_id=student.id))
        session.commit()
        session.refresh(course)
        return course


def _seed_slots(teacher: User, course: Course, admin: User) -> int:
    with SessionLocal() as session:
        has_slots = session.execute(
            select(TeacherScheduleSlot.id).where(TeacherScheduleSlot.teacher_id == teacher.id)
        ).first()
        if has_slots is not None:
            return 0
        service = TimetableService(session)
        actor = session.get(User, admin.id)
        for item in DEMO_SLOTS:
            service.create_teacher_slot(teacher.id, TeacherSlotCreate(courseId=course.id, **item), actor)
        return len(DEMO_SLOTS)


def _print_accounts(items: Iterable[tuple[str, User]]) -> None:
    print("\nDemo accounts ready:")
    for label, user in items:
        token = create_access_token(user.id, role=user.role.value)
        print(f"  - {label}: {user.email} | role={user.role.value}")
        print(f"      Authorization: Bearer {token}")
    print("\nTry:")
    print("  - teacher: POST /api/teacher/timetable/request-change for the Tuesday slot")
    print("  - admin: POST /api/admin/schedule-change/{requestId}/approve")
    print("  - students: GET /api/student/timetable shows the moved slot")


def main() -> None:
    ensure_runtime_schema_compatibility()
    users = {key: _upsert_user(**item) for key, item in DEMO_ACCOUNTS.items()}
    course = _upsert_course(users["teacher"], [users["student_a"], users["student_b"]])
    created = _seed_slots(users["teacher"], course, users["admin"])
    print(f"Course {course.code}: {created} new slot(s)")
    _print_accounts(users.items())


if __name__ == "__main__":
    main()
