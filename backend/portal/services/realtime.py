"""Fire-and-forget live events for connected portal clients."""
from __future__ import annotations

import logging

from anyio import from_thread

from portal.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)

TEACHER_NOTIFICATIONS_REFRESH = "teacher-notifications-refresh"
ADMIN_NOTIFICATIONS_REFRESH = "admin-notifications-refresh"
STUDENT_TIMETABLE_REFRESH = "student-timetable-refresh"
STUDENT_NOTIFICATIONS_REFRESH = "student-notifications-refresh"
SCHEDULE_UPDATED = "schedule-updated"
ADMIN_TIMETABLE_REFRESH = "admin-timetable-refresh"


def emit_event(topic: str, payload: dict) -> None:
    message = {"event": topic, **payload}
    try:
        from_thread.run(notification_hub.broadcast, message)
    except Exception:  # pragma: no cover - runtime environment dependent
        logger.debug("Unable to broadcast %s event", topic, exc_info=True)


def push_to_user(user_id: str, payload: dict) -> None:
    try:
        from_thread.run(notification_hub.publish, user_id, payload)
    except Exception:  # pragma: no cover - runtime environment dependent
        logger.debug("Unable to push realtime payload to user %s", user_id, exc_info=True)


class EventBuffer:
    """Holds broadcasts and per-user pushes until the surrounding transaction has committed."""

    def __init__(self) -> None:
        self._events: list[tuple[str | None, str, dict]] = []

    def queue(self, topic: str, payload: dict) -> None:
        self._events.append((None, topic, payload))

    def queue_push(self, user_id: str, payload: dict) -> None:
        self._events.append((user_id, payload.get("event", ""), payload))

    def discard(self) -> None:
        self._events.clear()

    def emit_all(self) -> None:
        events, self._events = self._events, []
        for user_id, topic, payload in events:
            if user_id is None:
                emit_event(topic, payload)
            else:
                push_to_user(user_id, payload)
