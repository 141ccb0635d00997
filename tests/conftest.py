"""
Pytest fixtures for the reminders test suite.

Provides:
- In-memory SQLite engine with every table created, one per test
- Seeding helpers for users, obligations and portfolio rows
- Deterministic clock fixed at 2024-03-15 09:00 UTC
- Structured log capture

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL; defaults to in-memory SQLite.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from reminders_kernel.db.base import Base
from reminders_kernel.db.engine import create_tables, init_engine_from_url, reset_engine
from reminders_kernel.domain.clock import DeterministicClock
from reminders_kernel.domain.types import (
    Frequency,
    Obligation,
    ObligationKind,
    User,
)
from reminders_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from reminders_kernel.models import UserModel
from reminders_kernel.stores import SqlObligationStore

FIXED_NOW = datetime(2024, 3, 15, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture reminders logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.settle(obligation_id)
            logs = captured_logs()
            assert any(r["message"] == "obligation_settled" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("reminders")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    engine = init_engine_from_url(os.environ.get("DATABASE_URL", "sqlite:///:memory:"))
    create_tables(engine)
    yield engine
    Base.metadata.drop_all(engine)
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def clock():
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def obligation_store(session_factory, clock):
    return SqlObligationStore(session_factory, clock=clock)


# =============================================================================
# Seeding helpers
# =============================================================================


@pytest.fixture
def make_user(session_factory):
    """Insert a user row and return its DTO."""

    def _make(name: str = "Ana", **overrides) -> User:
        user = User(
            user_id=overrides.pop("user_id", uuid4()),
            name=name,
            email=overrides.pop("email", f"{name.lower()}@example.com"),
            **overrides,
        )
        with session_factory() as session:
            session.add(UserModel.from_dto(user))
            session.commit()
        return user

    return _make


@pytest.fixture
def make_obligation(obligation_store):
    """Insert a pending obligation and return the stored DTO."""

    def _make(
        user_id: UUID,
        title: str = "Rent",
        amount: str = "1500.00",
        due_date: date = date(2024, 3, 15),
        kind: ObligationKind = ObligationKind.EXPENSE,
        frequency: Frequency = Frequency.NONE,
        **overrides,
    ) -> Obligation:
        return obligation_store.insert(
            Obligation(
                obligation_id=uuid4(),
                user_id=user_id,
                kind=kind,
                title=title,
                amount=Decimal(amount),
                due_date=due_date,
                frequency=frequency,
                **overrides,
            )
        )

    return _make


@pytest.fixture
def add_rows(session_factory):
    """Insert arbitrary ORM rows (goals, investments, achievements)."""

    def _add(*rows) -> None:
        with session_factory() as session:
            session.add_all(rows)
            session.commit()

    return _add
