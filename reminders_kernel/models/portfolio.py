"""
ORM models for goals, investments and achievements.

These tables exist so the notification scans have data to read; their
CRUD lives with the wider application.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reminders_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from reminders_kernel.domain.types import Achievement, Goal, Investment


class GoalModel(TimestampedBase):
    __tablename__ = "goals"

    __table_args__ = (Index("ix_goals_active_end", "active", "end_date"),)

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False,
    )
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self) -> Goal:
        from reminders_kernel.domain.types import Goal

        return Goal(
            goal_id=self.id,
            user_id=self.user_id,
            title=self.title,
            target_amount=Decimal(self.target_amount),
            current_amount=Decimal(self.current_amount),
            end_date=self.end_date,
            active=self.active,
        )


class InvestmentModel(TimestampedBase):
    __tablename__ = "investments"

    __table_args__ = (
        Index("ix_investments_active_redemption", "active", "redemption_date"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    redemption_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self) -> Investment:
        from reminders_kernel.domain.types import Investment

        return Investment(
            investment_id=self.id,
            user_id=self.user_id,
            name=self.name,
            amount=Decimal(self.amount),
            redemption_date=self.redemption_date,
            active=self.active,
        )


class AchievementModel(TimestampedBase):
    __tablename__ = "achievements"

    __table_args__ = (Index("ix_achievements_unlocked_on", "unlocked_on"),)

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unlocked_on: Mapped[date] = mapped_column(Date, nullable=False)

    def to_dto(self) -> Achievement:
        from reminders_kernel.domain.types import Achievement

        return Achievement(
            achievement_id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            unlocked_on=self.unlocked_on,
        )
