"""
Monthly report cycle: previous month's revenue, expenses and balance.
"""

from __future__ import annotations

from datetime import date

from reminders_batch.cycles.base import CycleContext, ScanItem, money


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


class MonthlyReportCycle:
    """One report per active user who opted into email."""

    @property
    def cycle_name(self) -> str:
        return "monthly-report"

    @property
    def description(self) -> str:
        return "Previous month revenue and expense summary"

    @property
    def uses_markers(self) -> bool:
        return False

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        year, month = previous_month(today)
        items: list[ScanItem] = []
        for user in context.users.find_active_users():
            if not user.email_notifications:
                continue
            totals = context.obligations.monthly_totals(user.user_id, year, month)
            items.append(
                ScanItem(
                    user_id=user.user_id,
                    template_id="monthly_report",
                    payload={
                        "period": f"{year:04d}-{month:02d}",
                        "revenue": money(totals.revenue),
                        "expense": money(totals.expense),
                        "balance": money(totals.balance),
                        "positive": totals.balance >= 0,
                        "negative": totals.balance < 0,
                    },
                )
            )
        return tuple(items)
