"""ORM model for notification recipients."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from reminders_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from reminders_kernel.domain.types import User


class UserModel(TimestampedBase):
    __tablename__ = "users"

    __table_args__ = (Index("ix_users_active", "active"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    preferred_channel: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email_notifications: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False,
    )
    sms_notifications: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )

    def to_dto(self) -> User:
        from reminders_kernel.domain.types import Channel, User

        return User(
            user_id=self.id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            active=self.active,
            preferred_channel=(
                Channel(self.preferred_channel) if self.preferred_channel else None
            ),
            email_notifications=self.email_notifications,
            sms_notifications=self.sms_notifications,
        )

    @classmethod
    def from_dto(cls, dto: User) -> UserModel:
        return cls(
            id=dto.user_id,
            name=dto.name,
            email=dto.email,
            phone=dto.phone,
            active=dto.active,
            preferred_channel=(
                dto.preferred_channel.value if dto.preferred_channel else None
            ),
            email_notifications=dto.email_notifications,
            sms_notifications=dto.sms_notifications,
        )
