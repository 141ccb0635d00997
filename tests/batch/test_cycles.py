"""
Tests for the built-in notification cycles.

Each scan runs against the SQLite stores seeded through the conftest
helpers; the dispatcher is not involved.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from reminders_batch.cycles import (
    AchievementCycle,
    CycleContext,
    CycleRegistry,
    DueTodayCycle,
    GoalProgressCycle,
    GoalUpdateReminderCycle,
    MaturingInvestmentsCycle,
    MonthlyReportCycle,
    NotificationCycle,
    OverdueObligationsCycle,
    default_cycle_registry,
)
from reminders_batch.cycles.reports import previous_month
from reminders_config.schema import DispatchConfig
from reminders_kernel.domain.types import ObligationKind
from reminders_kernel.exceptions import UnknownCycleError
from reminders_kernel.models import AchievementModel, GoalModel, InvestmentModel
from reminders_kernel.stores import SqlPortfolioStore, SqlUserDirectory

TODAY = date(2024, 3, 15)


@pytest.fixture
def context(obligation_store, session_factory):
    return CycleContext(
        obligations=obligation_store,
        users=SqlUserDirectory(session_factory),
        portfolio=SqlPortfolioStore(session_factory),
        settings=DispatchConfig(overdue_window_days=7, goal_alert_days=7, goal_progress_threshold=0.8),
    )


# =============================================================================
# Registry
# =============================================================================


class TestRegistry:
    def test_default_registry_has_every_cycle(self):
        registry = default_cycle_registry()
        assert registry.list_cycles() == (
            "achievement-check",
            "due-today",
            "goal-progress",
            "goal-update-reminder",
            "maturing-investments",
            "monthly-report",
            "overdue-obligations",
        )
        assert len(registry) == 7

    def test_cycles_satisfy_protocol(self):
        registry = default_cycle_registry()
        for name in registry.list_cycles():
            assert isinstance(registry.get(name), NotificationCycle)

    def test_duplicate_registration(self):
        registry = CycleRegistry()
        registry.register(DueTodayCycle())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(DueTodayCycle())

    def test_unknown_lists_available(self):
        registry = CycleRegistry()
        registry.register(DueTodayCycle())
        with pytest.raises(UnknownCycleError) as exc_info:
            registry.get("weekly-digest")
        assert exc_info.value.available == ["due-today"]
        assert "due-today" in registry
        assert "weekly-digest" not in registry


# =============================================================================
# Obligation cycles
# =============================================================================


class TestDueToday:
    def test_expenses_and_revenues_due_today(self, context, make_user, make_obligation):
        ana = make_user()
        rent = make_obligation(ana.user_id, title="Rent")
        salary = make_obligation(ana.user_id, title="Salary", amount="4200", kind=ObligationKind.REVENUE)
        make_obligation(ana.user_id, title="Water", due_date=TODAY + timedelta(days=1))

        items = DueTodayCycle().scan(context, TODAY)

        assert [(i.template_id, i.subject_id) for i in items] == [
            ("expense_due_today", rent.obligation_id),
            ("revenue_due_today", salary.obligation_id),
        ]
        assert items[0].payload["amount"] == "1500.00"
        assert items[0].payload["due_date"] == "2024-03-15"

    def test_settled_obligation_not_reported(self, context, make_user, make_obligation, obligation_store):
        ana = make_user()
        rent = make_obligation(ana.user_id)
        obligation_store.settle(rent.obligation_id)

        assert DueTodayCycle().scan(context, TODAY) == ()


class TestOverdue:
    def test_window_and_days_overdue(self, context, make_user, make_obligation):
        ana = make_user()
        make_obligation(ana.user_id, title="Phone", due_date=TODAY - timedelta(days=3))
        make_obligation(ana.user_id, title="Ancient", due_date=TODAY - timedelta(days=30))
        make_obligation(ana.user_id, title="Bonus", due_date=TODAY - timedelta(days=2),
                        kind=ObligationKind.REVENUE)

        items = OverdueObligationsCycle().scan(context, TODAY)

        assert [i.payload["title"] for i in items] == ["Phone"]
        assert items[0].template_id == "expense_overdue"
        assert items[0].payload["days_overdue"] == 3


# =============================================================================
# Portfolio cycles
# =============================================================================


class TestPortfolioCycles:
    def test_maturing_investments(self, context, make_user, add_rows):
        ana = make_user()
        add_rows(
            InvestmentModel(user_id=ana.user_id, name="CDB", amount=Decimal("1000"), redemption_date=TODAY),
            InvestmentModel(user_id=ana.user_id, name="Later", amount=Decimal("10"),
                            redemption_date=TODAY + timedelta(days=1)),
        )

        items = MaturingInvestmentsCycle().scan(context, TODAY)

        assert [i.payload["investment"] for i in items] == ["CDB"]
        assert items[0].payload["amount"] == "1000.00"

    def test_goal_progress_only_behind_target(self, context, make_user, add_rows):
        ana = make_user()
        add_rows(
            GoalModel(user_id=ana.user_id, title="Trip", target_amount=Decimal("5000"),
                      current_amount=Decimal("1000"), end_date=TODAY + timedelta(days=5)),
            GoalModel(user_id=ana.user_id, title="Nearly", target_amount=Decimal("100"),
                      current_amount=Decimal("90"), end_date=TODAY + timedelta(days=5)),
            GoalModel(user_id=ana.user_id, title="Far", target_amount=Decimal("100"),
                      current_amount=Decimal("0"), end_date=TODAY + timedelta(days=60)),
        )

        items = GoalProgressCycle().scan(context, TODAY)

        assert [i.payload["title"] for i in items] == ["Trip"]
        assert items[0].payload["progress"] == "20"
        assert items[0].payload["days_left"] == 5

    def test_goal_update_reminder_covers_running_goals(self, context, make_user, add_rows):
        ana = make_user()
        add_rows(
            GoalModel(user_id=ana.user_id, title="House", target_amount=Decimal("90000"),
                      current_amount=Decimal("100"), end_date=TODAY + timedelta(days=400)),
            GoalModel(user_id=ana.user_id, title="Done", target_amount=Decimal("10"),
                      current_amount=Decimal("10"), end_date=TODAY - timedelta(days=1)),
        )

        items = GoalUpdateReminderCycle().scan(context, TODAY)

        assert [i.payload["title"] for i in items] == ["House"]

    def test_achievements_unlocked_today(self, context, make_user, add_rows):
        ana = make_user()
        add_rows(
            AchievementModel(user_id=ana.user_id, title="First saving", description="Saved once",
                             unlocked_on=TODAY),
            AchievementModel(user_id=ana.user_id, title="Old", unlocked_on=TODAY - timedelta(days=1)),
        )

        items = AchievementCycle().scan(context, TODAY)

        assert [i.payload["title"] for i in items] == ["First saving"]
        assert items[0].template_id == "achievement_unlocked"


# =============================================================================
# Monthly report
# =============================================================================


class TestMonthlyReport:
    @pytest.mark.parametrize(
        "today, expected",
        [
            (date(2024, 3, 1), (2024, 2)),
            (date(2024, 1, 1), (2023, 12)),
            (date(2024, 12, 31), (2024, 11)),
        ],
    )
    def test_previous_month(self, today, expected):
        assert previous_month(today) == expected

    def test_totals_for_previous_month(self, context, make_user, make_obligation):
        ana = make_user()
        make_user("Bruno", email_notifications=False)
        make_obligation(ana.user_id, title="Salary", amount="3000", kind=ObligationKind.REVENUE,
                        due_date=date(2024, 2, 5))
        make_obligation(ana.user_id, title="Rent", amount="1500", due_date=date(2024, 2, 10))
        make_obligation(ana.user_id, title="March rent", amount="1500", due_date=date(2024, 3, 10))

        items = MonthlyReportCycle().scan(context, date(2024, 3, 1))

        assert len(items) == 1
        payload = items[0].payload
        assert items[0].user_id == ana.user_id
        assert items[0].subject_id is None
        assert payload["period"] == "2024-02"
        assert (payload["revenue"], payload["expense"], payload["balance"]) == (
            "3000.00", "1500.00", "1500.00",
        )
        assert payload["positive"] is True

    def test_negative_balance_flag(self, context, make_user, make_obligation):
        ana = make_user()
        make_obligation(ana.user_id, amount="200", due_date=date(2024, 2, 10))

        payload = MonthlyReportCycle().scan(context, date(2024, 3, 1))[0].payload

        assert payload["balance"] == "-200.00"
        assert payload["negative"] is True
        assert MonthlyReportCycle().uses_markers is False
