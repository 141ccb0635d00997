"""
AlertEvaluator -- threshold checks on precomputed metrics.

Contract:
    ``evaluate(reading)`` compares a metric with its configured threshold
    and returns an Alert or None.  ``dispatch(alert)`` logs global alerts
    and delivers user-scoped ones through ``Dispatcher.deliver`` on the
    user's preferred channel, falling back to email when the user has no
    address on it or has opted out of it.  ``run(readings)`` does both for
    a batch.

Metric values arrive already computed; nothing here aggregates.
"""

from __future__ import annotations

import operator
from typing import Callable, Iterable
from uuid import uuid4

from reminders_batch.dispatcher import Dispatcher
from reminders_kernel.domain.clock import Clock, SystemClock
from reminders_kernel.domain.types import (
    Alert,
    AlertRunResult,
    AlertThreshold,
    Channel,
    Comparator,
    JobOutcome,
    MetricReading,
    NotificationJob,
    Severity,
    User,
)
from reminders_kernel.logging_config import get_logger
from reminders_kernel.stores.contracts import UserDirectory

logger = get_logger("batch.alerts")

ALERT_CYCLE = "alerts"

_COMPARE: dict[Comparator, Callable[[float, float], bool]] = {
    Comparator.LT: operator.lt,
    Comparator.LE: operator.le,
    Comparator.GT: operator.gt,
    Comparator.GE: operator.ge,
    Comparator.EQ: operator.eq,
    Comparator.NE: operator.ne,
}

_URGENT = frozenset({Severity.HIGH, Severity.CRITICAL})


def _accepts(user: User, channel: Channel) -> bool:
    opted_in = user.sms_notifications if channel is Channel.SMS else user.email_notifications
    return opted_in and bool(user.address_for(channel))


class AlertEvaluator:
    def __init__(
        self,
        thresholds: Iterable[AlertThreshold],
        dispatcher: Dispatcher,
        users: UserDirectory,
        clock: Clock | None = None,
        template_id: str = "alert",
    ):
        self._thresholds = {t.metric: t for t in thresholds}
        self._dispatcher = dispatcher
        self._users = users
        self._clock = clock or SystemClock()
        self._template_id = template_id

    @property
    def metrics(self) -> list[str]:
        return sorted(self._thresholds)

    def evaluate(self, reading: MetricReading) -> Alert | None:
        threshold = self._thresholds.get(reading.name)
        if threshold is None:
            logger.debug("metric_without_threshold", extra={"metric": reading.name})
            return None
        if not _COMPARE[threshold.comparator](reading.value, threshold.threshold):
            return None

        return Alert(
            metric=reading.name,
            value=reading.value,
            threshold=threshold.threshold,
            comparator=threshold.comparator,
            severity=threshold.severity,
            message=threshold.message or (
                f"{reading.name} {threshold.comparator.value} {threshold.threshold}"
            ),
            user_id=reading.user_id,
            raised_at=self._clock.now(),
        )

    def dispatch(self, alert: Alert) -> JobOutcome | None:
        """Deliver a user alert; global alerts are only logged (returns None)."""
        log_extra = {
            "metric": alert.metric,
            "value": alert.value,
            "threshold": alert.threshold,
            "severity": alert.severity.value,
        }
        if alert.is_global:
            logger.warning("global_alert_raised", extra=log_extra)
            return None

        logger.info("user_alert_raised", extra={**log_extra, "user_id": str(alert.user_id)})
        user = self._users.get_user(alert.user_id)
        if user is None:
            return JobOutcome(job_id=None, success=False, error=f"Unknown user {alert.user_id}")

        channel = user.preferred_channel or Channel.EMAIL
        if not _accepts(user, channel):
            channel = Channel.EMAIL
        if not _accepts(user, channel):
            return JobOutcome(job_id=None, success=False, error="user has no reachable address")
        recipient = user.address_for(channel)

        job = NotificationJob(
            job_id=uuid4(),
            cycle_name=ALERT_CYCLE,
            user_id=user.user_id,
            recipient=recipient,
            channel=channel,
            template_id=self._template_id,
            payload={
                "name": user.name,
                "metric": alert.metric,
                "value": alert.value,
                "threshold": alert.threshold,
                "severity": alert.severity.value,
                "message": alert.message,
                "critical": alert.severity in _URGENT,
            },
        )
        return self._dispatcher.deliver(job)

    def run(self, readings: Iterable[MetricReading]) -> AlertRunResult:
        evaluated = 0
        alerts: list[Alert] = []
        delivered = failed = 0
        for reading in readings:
            evaluated += 1
            alert = self.evaluate(reading)
            if alert is None:
                continue
            alerts.append(alert)
            outcome = self.dispatch(alert)
            if outcome is None:
                continue
            if outcome.success:
                delivered += 1
            else:
                failed += 1

        logger.info(
            "alert_run_completed",
            extra={
                "evaluated": evaluated,
                "raised": len(alerts),
                "delivered": delivered,
                "failed": failed,
            },
        )
        return AlertRunResult(
            evaluated=evaluated,
            raised=len(alerts),
            delivered=delivered,
            failed=failed,
            alerts=tuple(alerts),
        )
