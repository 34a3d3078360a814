from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.exceptions import StorageError

logger = logging.getLogger(__name__)


def commit_or_raise(db: Session, operation: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s", operation)
        raise StorageError() from exc
