"""Session helper shared by the SQL stores."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from reminders_kernel.exceptions import PersistenceError
from reminders_kernel.logging_config import get_logger

logger = get_logger("stores")


@contextmanager
def store_session(
    session_factory: sessionmaker[Session],
    operation: str,
) -> Generator[Session, None, None]:
    """
    One session per store call: commit on success, roll back on error.

    SQLAlchemy failures surface as PersistenceError; every other exception
    propagates unchanged.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            "store_operation_failed",
            extra={"operation": operation, "error": str(exc)},
        )
        raise PersistenceError(operation, str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
