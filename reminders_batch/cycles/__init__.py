"""
reminders_batch.cycles -- Scheduled notification scans.
"""

from reminders_batch.cycles.base import (
    CycleContext,
    CycleRegistry,
    NotificationCycle,
    ScanItem,
)
from reminders_batch.cycles.obligations import DueTodayCycle, OverdueObligationsCycle
from reminders_batch.cycles.portfolio import (
    AchievementCycle,
    GoalProgressCycle,
    GoalUpdateReminderCycle,
    MaturingInvestmentsCycle,
)
from reminders_batch.cycles.reports import MonthlyReportCycle

__all__ = [
    "AchievementCycle",
    "CycleContext",
    "CycleRegistry",
    "DueTodayCycle",
    "GoalProgressCycle",
    "GoalUpdateReminderCycle",
    "MaturingInvestmentsCycle",
    "MonthlyReportCycle",
    "NotificationCycle",
    "OverdueObligationsCycle",
    "ScanItem",
    "default_cycle_registry",
]


def default_cycle_registry() -> CycleRegistry:
    """A CycleRegistry pre-loaded with every built-in cycle."""
    registry = CycleRegistry()
    registry.register(OverdueObligationsCycle())
    registry.register(DueTodayCycle())
    registry.register(MaturingInvestmentsCycle())
    registry.register(GoalProgressCycle())
    registry.register(MonthlyReportCycle())
    registry.register(AchievementCycle())
    registry.register(GoalUpdateReminderCycle())
    return registry
