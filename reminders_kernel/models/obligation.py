"""
ORM models for obligations and their categories.

Contract:
    ObligationModel persists expenses and revenues in one table keyed by
    ``kind``.  ``to_dto()`` / ``from_dto()`` round-trip with the frozen
    ``Obligation`` DTO.

Invariants enforced:
    - ``predecessor_id`` is UNIQUE: a settled obligation has at most one
      successor, even when two settlements race past the engine's guard.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reminders_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from reminders_kernel.domain.types import Obligation


class CategoryModel(TimestampedBase):
    """User-defined expense or revenue category."""

    __tablename__ = "categories"

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)


class ObligationModel(TimestampedBase):
    """Persistent expense or revenue."""

    __tablename__ = "obligations"

    __table_args__ = (
        UniqueConstraint("predecessor_id", name="uq_obligations_predecessor"),
        Index("ix_obligations_kind_status_due", "kind", "status", "due_date"),
        Index("ix_obligations_user_due", "user_id", "due_date"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    frequency: Mapped[str] = mapped_column(String(30), nullable=False, default="none")
    recurrence_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("categories.id"), nullable=True,
    )
    interest: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    penalty: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    withholding: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    predecessor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("obligations.id"), nullable=True,
    )
    settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    category: Mapped[CategoryModel | None] = relationship(
        CategoryModel, lazy="joined",
    )

    def to_dto(self) -> Obligation:
        from reminders_kernel.domain.recurrence import parse_frequency
        from reminders_kernel.domain.types import (
            Frequency,
            Obligation,
            ObligationKind,
            ObligationStatus,
        )

        return Obligation(
            obligation_id=self.id,
            user_id=self.user_id,
            kind=ObligationKind(self.kind),
            title=self.title,
            amount=Decimal(self.amount),
            due_date=self.due_date,
            frequency=parse_frequency(self.frequency) or Frequency.NONE,
            status=ObligationStatus(self.status),
            recurrence_end_date=self.recurrence_end_date,
            category_id=self.category_id,
            category_name=self.category.name if self.category else None,
            description=self.description,
            interest=Decimal(self.interest or 0),
            penalty=Decimal(self.penalty or 0),
            withholding=Decimal(self.withholding or 0),
            predecessor_id=self.predecessor_id,
            settled_at=self.settled_at,
        )

    @classmethod
    def from_dto(cls, dto: Obligation) -> ObligationModel:
        return cls(
            id=dto.obligation_id,
            user_id=dto.user_id,
            kind=dto.kind.value,
            title=dto.title,
            description=dto.description,
            amount=dto.amount,
            due_date=dto.due_date,
            frequency=dto.frequency.value,
            recurrence_end_date=dto.recurrence_end_date,
            category_id=dto.category_id,
            interest=dto.interest,
            penalty=dto.penalty,
            withholding=dto.withholding,
            status=dto.status.value,
            predecessor_id=dto.predecessor_id,
            settled_at=dto.settled_at,
        )
