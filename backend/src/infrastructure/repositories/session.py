"""Session scope shared by the SQL repositories."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Generator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import get_db_session
from errors import StoreUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def store_session(
    session_factory: sessionmaker,
    error_factory: Callable[[str], StoreUnavailable]
) -> Generator[Session, None, None]:
    """Session committed on success and rolled back on error.

    SQLAlchemy errors are converted with error_factory so callers only ever
    see the store error taxonomy.
    """
    try:
        with get_db_session(session_factory) as session:
            yield session
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}", exc_info=True)
        raise error_factory(str(e)) from e


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
