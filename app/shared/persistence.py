"""Commit helper that maps database failures onto StoreError"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StoreError

logger = logging.getLogger(__name__)


def commit(db: Session, action: str, *refresh) -> None:
    """
    Commit the session and refresh the given instances.

    Raises:
        StoreError: the commit failed; the session has been rolled back
    """
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to {action}: {e}")
        raise StoreError(f"Failed to {action}") from e
    for instance in refresh:
        db.refresh(instance)
