"""
Store contracts consumed by the recurrence engine and the dispatcher.

Each contract is a ``typing.Protocol`` so tests can pass in-memory fakes
and production wires the SQLAlchemy implementations from this package.

Failure modes (all implementations):
    - PersistenceError when the underlying store fails.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence, runtime_checkable
from uuid import UUID

from reminders_kernel.domain.types import (
    Achievement,
    DeliveryAttempt,
    Goal,
    Investment,
    JobStatus,
    MonthlyTotals,
    NotificationJob,
    Obligation,
    ObligationKind,
    User,
)


@runtime_checkable
class ObligationStore(Protocol):
    def get(self, obligation_id: UUID) -> Obligation | None: ...

    def find_due_today(self, kind: ObligationKind, day: date) -> list[Obligation]: ...

    def find_overdue(
        self,
        kind: ObligationKind,
        as_of: date,
        window_days: int | None = None,
    ) -> list[Obligation]: ...

    def settle(self, obligation_id: UUID) -> Obligation:
        """Mark settled; settling an already settled obligation returns it unchanged."""
        ...

    def insert(self, obligation: Obligation) -> Obligation: ...

    def find_by_predecessor(self, predecessor_id: UUID) -> Obligation | None: ...

    def monthly_totals(self, user_id: UUID, year: int, month: int) -> MonthlyTotals: ...


@runtime_checkable
class UserDirectory(Protocol):
    def find_active_users(self) -> list[User]: ...

    def get_user(self, user_id: UUID) -> User | None: ...


@runtime_checkable
class NotificationAudit(Protocol):
    def record_job(self, job: NotificationJob) -> None: ...

    def update_status(
        self,
        job_id: UUID,
        status: JobStatus,
        attempts: Sequence[DeliveryAttempt] = (),
        error: str | None = None,
        provider_used: str | None = None,
        provider_message_id: str | None = None,
    ) -> None: ...

    def was_notified(self, subject_id: UUID, cycle_name: str, day: date) -> bool: ...

    def mark_notified(self, subject_id: UUID, cycle_name: str, day: date) -> None: ...

    def recent_jobs(self, limit: int = 50) -> list[NotificationJob]: ...


@runtime_checkable
class PortfolioStore(Protocol):
    def find_maturing_investments(self, day: date) -> list[Investment]: ...

    def find_goals_ending(self, as_of: date, days: int) -> list[Goal]: ...

    def find_active_goals(self, as_of: date) -> list[Goal]: ...

    def find_achievements_on(self, day: date) -> list[Achievement]: ...
