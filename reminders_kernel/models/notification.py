"""
ORM models for the notification audit trail.

Contract:
    NotificationJobModel records each job sent by a cycle or alert, with
    its DeliveryAttemptModel rows in provider call order.
    NotificationMarkerModel records that a subject was notified by a cycle
    on a given day.

Invariants enforced:
    - (subject_id, cycle_name, notified_on) is UNIQUE on markers.
    - DeliveryAttemptModel.position preserves fallback order.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reminders_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from reminders_kernel.domain.types import DeliveryAttempt, NotificationJob


class NotificationJobModel(TimestampedBase):
    __tablename__ = "notification_jobs"

    __table_args__ = (
        Index("ix_notification_jobs_cycle", "cycle_name"),
        Index("ix_notification_jobs_status", "status"),
        Index("ix_notification_jobs_created_at", "created_at"),
    )

    cycle_name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    recipient: Mapped[str] = mapped_column(String(320), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    template_id: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    subject_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    provider_used: Mapped[str | None] = mapped_column(String(50), nullable=True)
    provider_message_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    attempts: Mapped[list[DeliveryAttemptModel]] = relationship(
        "DeliveryAttemptModel",
        back_populates="job",
        order_by="DeliveryAttemptModel.position",
        cascade="all, delete-orphan",
    )

    def to_dto(self) -> NotificationJob:
        from reminders_kernel.domain.types import Channel, JobStatus, NotificationJob

        return NotificationJob(
            job_id=self.id,
            cycle_name=self.cycle_name,
            user_id=self.user_id,
            recipient=self.recipient,
            channel=Channel(self.channel),
            template_id=self.template_id,
            payload=self.payload or {},
            subject_id=self.subject_id,
            status=JobStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto: NotificationJob) -> NotificationJobModel:
        return cls(
            id=dto.job_id,
            cycle_name=dto.cycle_name,
            user_id=dto.user_id,
            recipient=dto.recipient,
            channel=dto.channel.value,
            template_id=dto.template_id,
            payload=_json_safe(dto.payload) or None,
            subject_id=dto.subject_id,
            status=dto.status.value,
        )


class DeliveryAttemptModel(TimestampedBase):
    __tablename__ = "delivery_attempts"

    __table_args__ = (Index("ix_delivery_attempts_job", "job_id", "position"),)

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("notification_jobs.id"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    result: Mapped[str] = mapped_column(String(20), nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    message_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    job: Mapped[NotificationJobModel] = relationship(
        NotificationJobModel, back_populates="attempts",
    )

    def to_dto(self) -> DeliveryAttempt:
        from reminders_kernel.domain.types import AttemptResult, DeliveryAttempt

        return DeliveryAttempt(
            provider=self.provider,
            attempted_at=self.attempted_at,
            result=AttemptResult(self.result),
            error=self.error,
            duration_ms=self.duration_ms,
            message_id=self.message_id,
        )


class NotificationMarkerModel(TimestampedBase):
    """A subject was notified by a cycle on a calendar day."""

    __tablename__ = "notification_markers"

    __table_args__ = (
        UniqueConstraint(
            "subject_id", "cycle_name", "notified_on",
            name="uq_notification_markers_subject_cycle_day",
        ),
    )

    subject_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    cycle_name: Mapped[str] = mapped_column(String(100), nullable=False)
    notified_on: Mapped[date] = mapped_column(Date, nullable=False)


def _json_safe(payload: dict) -> dict:
    """Stringify values the JSON column cannot store natively."""
    safe: dict = {}
    for key, val in payload.items():
        if val is None or isinstance(val, (str, int, float, bool)):
            safe[key] = val
        else:
            safe[key] = str(val)
    return safe
