"""
SqlNotificationAudit -- persistent record of jobs, attempts and day markers.

Contract:
    ``record_job`` inserts the job as pending; ``update_status`` writes
    the final status together with the ordered delivery attempts.
    ``mark_notified`` is idempotent: a second mark for the same
    (subject, cycle, day) is a no-op.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from reminders_kernel.domain.types import (
    DeliveryAttempt,
    JobStatus,
    NotificationJob,
)
from reminders_kernel.exceptions import PersistenceError
from reminders_kernel.logging_config import get_logger
from reminders_kernel.models.notification import (
    DeliveryAttemptModel,
    NotificationJobModel,
    NotificationMarkerModel,
)
from reminders_kernel.stores._session import store_session

logger = get_logger("stores.audit")


class SqlNotificationAudit:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def record_job(self, job: NotificationJob) -> None:
        with store_session(self._session_factory, "audit.record_job") as session:
            session.add(NotificationJobModel.from_dto(job))

    def update_status(
        self,
        job_id: UUID,
        status: JobStatus,
        attempts: Sequence[DeliveryAttempt] = (),
        error: str | None = None,
        provider_used: str | None = None,
        provider_message_id: str | None = None,
    ) -> None:
        with store_session(self._session_factory, "audit.update_status") as session:
            model = session.get(NotificationJobModel, job_id)
            if model is None:
                raise PersistenceError("audit.update_status", f"unknown job {job_id}")
            model.status = status.value
            model.error = error
            model.provider_used = provider_used
            model.provider_message_id = provider_message_id
            offset = len(model.attempts)
            for position, attempt in enumerate(attempts, start=offset):
                model.attempts.append(
                    DeliveryAttemptModel(
                        position=position,
                        provider=attempt.provider,
                        attempted_at=attempt.attempted_at,
                        result=attempt.result.value,
                        error=attempt.error,
                        duration_ms=attempt.duration_ms,
                        message_id=attempt.message_id,
                    )
                )

    def was_notified(self, subject_id: UUID, cycle_name: str, day: date) -> bool:
        with store_session(self._session_factory, "audit.was_notified") as session:
            stmt = select(NotificationMarkerModel.id).where(
                NotificationMarkerModel.subject_id == subject_id,
                NotificationMarkerModel.cycle_name == cycle_name,
                NotificationMarkerModel.notified_on == day,
            )
            return session.scalars(stmt).first() is not None

    def mark_notified(self, subject_id: UUID, cycle_name: str, day: date) -> None:
        session = self._session_factory()
        try:
            session.add(
                NotificationMarkerModel(
                    subject_id=subject_id, cycle_name=cycle_name, notified_on=day,
                )
            )
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.debug(
                "marker_already_present",
                extra={"subject_id": str(subject_id), "cycle_name": cycle_name},
            )
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError("audit.mark_notified", str(exc)) from exc
        finally:
            session.close()

    def recent_jobs(self, limit: int = 50) -> list[NotificationJob]:
        with store_session(self._session_factory, "audit.recent_jobs") as session:
            stmt = (
                select(NotificationJobModel)
                .order_by(NotificationJobModel.created_at.desc())
                .limit(limit)
            )
            return [m.to_dto() for m in session.scalars(stmt)]

    def attempts_for(self, job_id: UUID) -> list[DeliveryAttempt]:
        with store_session(self._session_factory, "audit.attempts_for") as session:
            stmt = (
                select(DeliveryAttemptModel)
                .where(DeliveryAttemptModel.job_id == job_id)
                .order_by(DeliveryAttemptModel.position)
            )
            return [m.to_dto() for m in session.scalars(stmt)]
