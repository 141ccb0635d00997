"""
RecurrenceEngine -- settle an obligation and generate its successor.

Responsibility:
    Marks an obligation settled and, when it recurs, inserts the pending
    successor due at the next occurrence, bounded by the recurrence end
    date.

Architecture position:
    Kernel > Services.  Depends on the ObligationStore contract and the
    pure recurrence functions; holds no mutable state between calls.

Invariants enforced:
    - A settled obligation has at most one successor: the engine checks
      ``find_by_predecessor`` first and the store's unique constraint on
      ``predecessor_id`` catches races past that check.
    - Successor due date is strictly later than its predecessor's.
    - Settlement stands even when successor creation fails; the failure is
      logged and returned as ``SettlementResult.warning``.

Failure modes:
    - ObligationNotFoundError for an unknown id (nothing is settled).
    - PersistenceError from the settle write itself propagates.

Settle and successor insert are two store writes, not one transaction.
A crash between them leaves a settled obligation without a successor;
re-settling repairs the chain because settle is idempotent and the guard
only blocks when a successor exists.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable
from uuid import UUID, uuid4

from reminders_kernel.domain.recurrence import is_within_recurrence, next_occurrence
from reminders_kernel.domain.types import (
    ZERO,
    BulkSettlementResult,
    Obligation,
    ObligationStatus,
    SettlementOutcome,
    SettlementResult,
)
from reminders_kernel.exceptions import (
    IdempotencyViolationError,
    RemindersError,
)
from reminders_kernel.logging_config import LogContext, get_logger
from reminders_kernel.stores.contracts import ObligationStore

logger = get_logger("services.recurrence_engine")


class RecurrenceEngine:
    """Settle-and-regenerate for recurring expenses and revenues."""

    def __init__(
        self,
        store: ObligationStore,
        *,
        end_date_inclusive: bool = True,
    ):
        self._store = store
        self._end_date_inclusive = end_date_inclusive

    def settle(self, obligation_id: UUID) -> SettlementResult:
        with LogContext.bind(subject_id=str(obligation_id)):
            settled = self._store.settle(obligation_id)
            logger.info(
                "obligation_settled",
                extra={
                    "obligation_id": str(obligation_id),
                    "kind": settled.kind.value,
                    "frequency": settled.frequency.value,
                },
            )

            if not settled.is_recurring:
                return SettlementResult(obligation=settled)

            try:
                successor = self._create_successor(settled)
            except IdempotencyViolationError as exc:
                logger.warning(
                    "successor_already_exists",
                    extra={"obligation_id": str(obligation_id)},
                )
                return SettlementResult(obligation=settled, warning=str(exc))
            except RemindersError as exc:
                logger.warning(
                    "successor_creation_failed",
                    extra={
                        "obligation_id": str(obligation_id),
                        "error_code": exc.code,
                        "error": str(exc),
                    },
                )
                return SettlementResult(
                    obligation=settled,
                    warning=f"successor creation failed: {exc}",
                )

            return SettlementResult(obligation=settled, successor=successor)

    def settle_many(self, obligation_ids: Iterable[UUID]) -> BulkSettlementResult:
        """Settle each id independently; one failure never blocks the rest."""
        outcomes: list[SettlementOutcome] = []
        for obligation_id in obligation_ids:
            try:
                result = self.settle(obligation_id)
            except RemindersError as exc:
                logger.warning(
                    "bulk_settle_item_failed",
                    extra={
                        "obligation_id": str(obligation_id),
                        "error_code": exc.code,
                    },
                )
                outcomes.append(
                    SettlementOutcome(
                        obligation_id=obligation_id,
                        success=False,
                        error=str(exc),
                        error_code=exc.code,
                    )
                )
                continue
            outcomes.append(
                SettlementOutcome(
                    obligation_id=obligation_id, success=True, result=result,
                )
            )

        succeeded = sum(1 for o in outcomes if o.success)
        return BulkSettlementResult(
            total=len(outcomes),
            succeeded=succeeded,
            failed=len(outcomes) - succeeded,
            outcomes=tuple(outcomes),
        )

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _create_successor(self, settled: Obligation) -> Obligation | None:
        if self._store.find_by_predecessor(settled.obligation_id) is not None:
            raise IdempotencyViolationError(str(settled.obligation_id))

        next_due = next_occurrence(settled.due_date, settled.frequency)
        if next_due is None:
            return None

        if not is_within_recurrence(
            next_due,
            settled.recurrence_end_date,
            inclusive=self._end_date_inclusive,
        ):
            logger.info(
                "recurrence_ended",
                extra={
                    "obligation_id": str(settled.obligation_id),
                    "next_due": next_due,
                    "recurrence_end_date": settled.recurrence_end_date,
                },
            )
            return None

        successor = replace(
            settled,
            obligation_id=uuid4(),
            due_date=next_due,
            status=ObligationStatus.PENDING,
            interest=ZERO,
            penalty=ZERO,
            predecessor_id=settled.obligation_id,
            settled_at=None,
        )
        stored = self._store.insert(successor)
        logger.info(
            "successor_created",
            extra={
                "obligation_id": str(settled.obligation_id),
                "successor_id": str(stored.obligation_id),
                "due_date": stored.due_date,
            },
        )
        return stored
