"""
Cycles over investments, goals and achievements.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from reminders_batch.cycles.base import CycleContext, ScanItem, money


class MaturingInvestmentsCycle:
    @property
    def cycle_name(self) -> str:
        return "maturing-investments"

    @property
    def description(self) -> str:
        return "Investments with redemption date today"

    @property
    def uses_markers(self) -> bool:
        return True

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        return tuple(
            ScanItem(
                user_id=inv.user_id,
                template_id="investment_maturing",
                subject_id=inv.investment_id,
                payload={
                    "investment": inv.name,
                    "amount": money(inv.amount),
                    "redemption_date": inv.redemption_date.isoformat(),
                },
            )
            for inv in context.portfolio.find_maturing_investments(today)
        )


class GoalProgressCycle:
    """Goals ending within the alert window that are behind target."""

    @property
    def cycle_name(self) -> str:
        return "goal-progress"

    @property
    def description(self) -> str:
        return "Goals ending soon and behind target"

    @property
    def uses_markers(self) -> bool:
        return True

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        threshold = Decimal(str(context.settings.goal_progress_threshold))
        goals = context.portfolio.find_goals_ending(
            today, context.settings.goal_alert_days,
        )
        return tuple(
            ScanItem(
                user_id=g.user_id,
                template_id="goal_progress",
                subject_id=g.goal_id,
                payload={
                    "title": g.title,
                    "progress": f"{g.progress * 100:.0f}",
                    "current": money(g.current_amount),
                    "target": money(g.target_amount),
                    "end_date": g.end_date.isoformat(),
                    "days_left": (g.end_date - today).days,
                },
            )
            for g in goals
            if g.progress < threshold
        )


class GoalUpdateReminderCycle:
    """Monthly nudge to update the progress of every running goal."""

    @property
    def cycle_name(self) -> str:
        return "goal-update-reminder"

    @property
    def description(self) -> str:
        return "Monthly nudge to update goal progress"

    @property
    def uses_markers(self) -> bool:
        return True

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        return tuple(
            ScanItem(
                user_id=g.user_id,
                template_id="goal_update",
                subject_id=g.goal_id,
                payload={"title": g.title, "end_date": g.end_date.isoformat()},
            )
            for g in context.portfolio.find_active_goals(today)
        )


class AchievementCycle:
    @property
    def cycle_name(self) -> str:
        return "achievement-check"

    @property
    def description(self) -> str:
        return "Achievements unlocked today"

    @property
    def uses_markers(self) -> bool:
        return True

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]:
        return tuple(
            ScanItem(
                user_id=a.user_id,
                template_id="achievement_unlocked",
                subject_id=a.achievement_id,
                payload={"title": a.title, "description": a.description},
            )
            for a in context.portfolio.find_achievements_on(today)
        )
