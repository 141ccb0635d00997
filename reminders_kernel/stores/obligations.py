"""
SqlObligationStore -- SQLAlchemy implementation of ObligationStore.

Contract:
    Every method opens its own session.  ``settle`` is a single atomic
    UPDATE of one row and is idempotent on an already settled obligation.
    ``insert`` of a successor whose predecessor already has one raises
    IdempotencyViolationError (unique constraint on predecessor_id).
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from reminders_kernel.domain.clock import Clock, SystemClock
from reminders_kernel.domain.types import (
    MonthlyTotals,
    Obligation,
    ObligationKind,
    ObligationStatus,
)
from reminders_kernel.exceptions import (
    IdempotencyViolationError,
    ObligationNotFoundError,
    PersistenceError,
)
from reminders_kernel.logging_config import get_logger
from reminders_kernel.models.obligation import ObligationModel
from reminders_kernel.stores._session import store_session

logger = get_logger("stores.obligations")


class SqlObligationStore:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def get(self, obligation_id: UUID) -> Obligation | None:
        with store_session(self._session_factory, "obligations.get") as session:
            model = session.get(ObligationModel, obligation_id)
            return model.to_dto() if model else None

    def find_due_today(self, kind: ObligationKind, day: date) -> list[Obligation]:
        with store_session(self._session_factory, "obligations.find_due_today") as session:
            stmt = (
                select(ObligationModel)
                .where(
                    ObligationModel.kind == kind.value,
                    ObligationModel.status == ObligationStatus.PENDING.value,
                    ObligationModel.due_date == day,
                )
                .order_by(ObligationModel.due_date, ObligationModel.title)
            )
            return [m.to_dto() for m in session.scalars(stmt).unique()]

    def find_overdue(
        self,
        kind: ObligationKind,
        as_of: date,
        window_days: int | None = None,
    ) -> list[Obligation]:
        """Pending obligations due before ``as_of``, optionally within a window."""
        with store_session(self._session_factory, "obligations.find_overdue") as session:
            conditions = [
                ObligationModel.kind == kind.value,
                ObligationModel.status == ObligationStatus.PENDING.value,
                ObligationModel.due_date < as_of,
            ]
            if window_days is not None:
                conditions.append(
                    ObligationModel.due_date >= as_of - timedelta(days=window_days)
                )
            stmt = (
                select(ObligationModel)
                .where(*conditions)
                .order_by(ObligationModel.due_date, ObligationModel.title)
            )
            return [m.to_dto() for m in session.scalars(stmt).unique()]

    def settle(self, obligation_id: UUID) -> Obligation:
        with store_session(self._session_factory, "obligations.settle") as session:
            model = session.get(ObligationModel, obligation_id)
            if model is None:
                raise ObligationNotFoundError(str(obligation_id))
            if model.status == ObligationStatus.SETTLED.value:
                logger.info(
                    "obligation_already_settled",
                    extra={"obligation_id": str(obligation_id)},
                )
                return model.to_dto()
            model.status = ObligationStatus.SETTLED.value
            model.settled_at = self._clock.now()
            session.flush()
            return model.to_dto()

    def insert(self, obligation: Obligation) -> Obligation:
        session = self._session_factory()
        try:
            session.add(ObligationModel.from_dto(obligation))
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if obligation.predecessor_id is not None:
                raise IdempotencyViolationError(str(obligation.predecessor_id)) from exc
            raise PersistenceError("obligations.insert", str(exc)) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError("obligations.insert", str(exc)) from exc
        finally:
            session.close()
        stored = self.get(obligation.obligation_id)
        if stored is None:
            raise PersistenceError("obligations.insert", "row not readable after insert")
        return stored

    def find_by_predecessor(self, predecessor_id: UUID) -> Obligation | None:
        with store_session(
            self._session_factory, "obligations.find_by_predecessor",
        ) as session:
            stmt = select(ObligationModel).where(
                ObligationModel.predecessor_id == predecessor_id
            )
            model = session.scalars(stmt).unique().first()
            return model.to_dto() if model else None

    def monthly_totals(self, user_id: UUID, year: int, month: int) -> MonthlyTotals:
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        with store_session(self._session_factory, "obligations.monthly_totals") as session:
            stmt = (
                select(ObligationModel.kind, func.sum(ObligationModel.amount))
                .where(
                    ObligationModel.user_id == user_id,
                    ObligationModel.due_date >= first,
                    ObligationModel.due_date <= last,
                )
                .group_by(ObligationModel.kind)
            )
            sums = {kind: Decimal(str(total or 0)) for kind, total in session.execute(stmt)}
        return MonthlyTotals(
            user_id=user_id,
            year=year,
            month=month,
            revenue=sums.get(ObligationKind.REVENUE.value, Decimal("0")),
            expense=sums.get(ObligationKind.EXPENSE.value, Decimal("0")),
        )
