"""SqlPortfolioStore -- read side of goals, investments and achievements."""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from reminders_kernel.domain.types import Achievement, Goal, Investment
from reminders_kernel.models.portfolio import (
    AchievementModel,
    GoalModel,
    InvestmentModel,
)
from reminders_kernel.stores._session import store_session


class SqlPortfolioStore:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def find_maturing_investments(self, day: date) -> list[Investment]:
        with store_session(self._session_factory, "investments.find_maturing") as session:
            stmt = select(InvestmentModel).where(
                InvestmentModel.active.is_(True),
                InvestmentModel.redemption_date == day,
            )
            return [m.to_dto() for m in session.scalars(stmt)]

    def find_goals_ending(self, as_of: date, days: int) -> list[Goal]:
        """Active goals whose end date falls in ``[as_of, as_of + days]``."""
        with store_session(self._session_factory, "goals.find_ending") as session:
            stmt = (
                select(GoalModel)
                .where(
                    GoalModel.active.is_(True),
                    GoalModel.end_date >= as_of,
                    GoalModel.end_date <= as_of + timedelta(days=days),
                )
                .order_by(GoalModel.end_date)
            )
            return [m.to_dto() for m in session.scalars(stmt)]

    def find_active_goals(self, as_of: date) -> list[Goal]:
        """Active goals not yet past their end date."""
        with store_session(self._session_factory, "goals.find_active") as session:
            stmt = (
                select(GoalModel)
                .where(GoalModel.active.is_(True), GoalModel.end_date >= as_of)
                .order_by(GoalModel.end_date)
            )
            return [m.to_dto() for m in session.scalars(stmt)]

    def find_achievements_on(self, day: date) -> list[Achievement]:
        with store_session(self._session_factory, "achievements.find_on") as session:
            stmt = select(AchievementModel).where(AchievementModel.unlocked_on == day)
            return [m.to_dto() for m in session.scalars(stmt)]
