"""
Process-wide engine and session factory.

The CLI initializes one engine from ``database_url``; every store gets the
session factory injected and opens its own short session per call, so
cycles running on separate job threads never share a session.

``sqlite:///:memory:`` is served through a StaticPool: all sessions see
the same in-memory database, which is what the test suite relies on.
PostgreSQL URLs get ``pool_pre_ping`` so a job that wakes after a long
sleep does not pick up a dead connection.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from reminders_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_sqlite(database_url: str) -> bool:
    return ":memory:" in database_url or database_url.rstrip("/") == "sqlite:"


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Create the engine and session factory, replacing any previous ones."""
    global _engine, _SessionFactory

    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        # job threads share the engine
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(database_url, **kwargs)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "in_memory": _is_memory_sqlite(database_url)},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Raises:
        RuntimeError: If init_engine_from_url() has not run.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def create_tables(engine: Engine | None = None) -> None:
    """Create every reminders table that does not exist yet."""
    import reminders_kernel.models  # noqa: F401  (registers the tables)
    from reminders_kernel.db.base import Base

    target = engine or get_engine()
    Base.metadata.create_all(target)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose the engine and forget the session factory. FOR TESTING ONLY."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
