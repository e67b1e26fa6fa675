# backend/core/database_utils.py

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from .exceptions import ConflictError

logger = logging.getLogger(__name__)


def commit_or_conflict(db: Session, conflict_message: str) -> None:
    """
    Commit the session, turning a unique-constraint violation into a
    ConflictError. Of two racing inserts that both passed a pre-check,
    only one commit succeeds.
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"Integrity error on commit: {e.orig}")
        raise ConflictError(conflict_message)


LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally (use with ``escape=LIKE_ESCAPE``)."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
