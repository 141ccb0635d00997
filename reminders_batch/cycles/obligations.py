"""
Cycles over expenses and revenues: overdue and due today.
"""

from __future__ import annotations

from datetime import date

from reminders_batch.cycles.base import CycleContext, ScanItem, money
from reminders_kernel.domain.types import Obligation, ObligationKind


def _obligation_payload(obligation: Obligation) -> dict:
    return {
        "title": obligation.title,
        "amount": money(obligation.amount),
        "due_date": obligation.due_date.isoformat(),
        "category": obligation.category_name,
        "description": obligation.description,
    }


class OverdueObligationsCycle:
    """Pending expenses whose due date passed within the alert window."""

    @property
    def cycle_name(self) -> str:
        return "overdue-obligations"

    @property
    def description(self) -> str:
        return "Pending expenses past their due date"

    @property
    def uses_markers(self) -> bool:
        return True

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        overdue = context.obligations.find_overdue(
            ObligationKind.EXPENSE,
            today,
            window_days=context.settings.overdue_window_days,
        )
        return tuple(
            ScanItem(
                user_id=o.user_id,
                template_id="expense_overdue",
                subject_id=o.obligation_id,
                payload={
                    **_obligation_payload(o),
                    "days_overdue": (today - o.due_date).days,
                },
            )
            for o in overdue
        )


class DueTodayCycle:
    """Pending expenses and revenues due today."""

    _TEMPLATES = {
        ObligationKind.EXPENSE: "expense_due_today",
        ObligationKind.REVENUE: "revenue_due_today",
    }

    @property
    def cycle_name(self) -> str:
        return "due-today"

    @property
    def description(self) -> str:
        return "Expenses and revenues due today"

    @property
    def uses_markers(self) -> bool:
        return True

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        items: list[ScanItem] = []
        for kind in (ObligationKind.EXPENSE, ObligationKind.REVENUE):
            for o in context.obligations.find_due_today(kind, today):
                items.append(
                    ScanItem(
                        user_id=o.user_id,
                        template_id=self._TEMPLATES[kind],
                        subject_id=o.obligation_id,
                        payload=_obligation_payload(o),
                    )
                )
        return tuple(items)
