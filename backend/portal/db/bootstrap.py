from __future__ import annotations

import logging

from sqlalchemy import inspect

from portal.db.base import Base
from portal.db.session import engine
import portal.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "is_active"},
    "courses": {"id", "code", "name", "teacher_id"},
    "course_students": {"course_id", "student_id"},
    "teacher_schedule_slots": {"id", "teacher_id", "course_id", "day_of_week", "start_time", "end_time"},
    "course_schedule_slots": {"id", "course_id", "teacher_id", "day_of_week", "start_time", "end_time"},
    "schedule_change_requests": {
        "id",
        "slot_id",
        "teacher_id",
        "status",
        "current_day_of_week",
        "requested_day_of_week",
    },
    "notifications": {"id", "recipient_id", "read_at", "channels"},
    "activity_logs": {"id", "actor_id", "actor_role", "action", "entity_type", "entity_id", "details"},
}


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
