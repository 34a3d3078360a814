from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.models.notification import AudienceScope, Notification, NotificationChannel, NotificationType
from portal.services import realtime

logger = logging.getLogger(__name__)


def _safe_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.isoformat()


def notification_to_event_payload(notification: Notification, *, event: str = "notification.created") -> dict:
    return {
        "event": event,
        "notification": {
            "id": notification.id,
            "recipient_id": notification.recipient_id,
            "sender_id": notification.sender_id,
            "title": notification.title,
            "message": notification.message,
            "notification_type": notification.notification_type.value,
            "course_id": notification.course_id,
            "is_read": notification.is_read,
            "created_at": _safe_iso(notification.created_at) or datetime.now(timezone.utc).isoformat(),
        },
    }


def publish_realtime_notification(
    notification: Notification,
    *,
    event: str = "notification.created",
    events: realtime.EventBuffer | None = None,
) -> None:
    """Push `notification` to its recipient, or queue the push on `events` until commit."""
    payload = notification_to_event_payload(notification, event=event)
    if events is not None:
        events.queue_push(notification.recipient_id, payload)
    else:
        realtime.push_to_user(notification.recipient_id, payload)


def _persist(
    db: Session,
    records: list[Notification],
    events: realtime.EventBuffer | None = None,
) -> list[Notification]:
    # SAVEPOINT keeps a failed insert from aborting the caller's transaction.
    try:
        with db.begin_nested():
            db.add_all(records)
    except SQLAlchemyError:
        logger.exception(
            "Failed to store %d notification(s) titled %r",
            len(records),
            records[0].title if records else None,
        )
        return []

    for record in records:
        publish_realtime_notification(record, events=events)
    return records


def notify_one(
    db: Session,
    *,
    recipient_id: str,
    sender_id: str | None,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    course_id: str | None = None,
    events: realtime.EventBuffer | None = None,
) -> Notification | None:
    record = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        title=title,
        message=message,
        notification_type=notification_type,
        channels=[NotificationChannel.in_app.value],
        audience_scope=AudienceScope.custom,
        course_id=course_id,
    )
    stored = _persist(db, [record], events)
    return stored[0] if stored else None


def notify_many(
    db: Session,
    *,
    recipient_ids: Iterable[str],
    sender_id: str | None,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    course_id: str | None = None,
    events: realtime.EventBuffer | None = None,
) -> int:
    unique_ids = [item for item in dict.fromkeys(recipient_ids) if item]
    if not unique_ids:
        return 0

    scope = AudienceScope.course if course_id else AudienceScope.custom
    records = [
        Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            title=title,
            message=message,
            notification_type=notification_type,
            channels=[NotificationChannel.in_app.value],
            audience_scope=scope,
            course_id=course_id,
        )
        for recipient_id in unique_ids
    ]
    stored = _persist(db, records, events)
    if stored:
        logger.info("Notified %d recipient(s): %s", len(stored), title)
    return len(stored)


def mark_read(notification: Notification) -> Notification:
    if notification.read_at is None:
        notification.read_at = datetime.now(timezone.utc)
    return notification


def mark_all_read(db: Session, *, recipient_id: str) -> list[Notification]:
    unread = list(
        db.execute(
            select(Notification).where(
                Notification.recipient_id == recipient_id,
                Notification.read_at.is_(None),
            )
        ).scalars()
    )
    now = datetime.now(timezone.utc)
    for notification in unread:
        notification.read_at = now
    return unread
