from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from portal.models.activity_log import ActivityLog
from portal.models.user import User

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    user: User | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an audit row in the caller's transaction; it commits or rolls back with the change."""
    record = ActivityLog(
        actor_id=user.id if user is not None else None,
        actor_role=user.role.value if user is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details={key: value for key, value in (details or {}).items() if value is not None},
    )
    db.add(record)
    logger.debug("Audit %s on %s %s by %s", action, entity_type, entity_id, record.actor_id)
    return record
