"""
Tests for reminders_batch.alerts.AlertEvaluator.

Delivery is replaced by a recording dispatcher so the tests see exactly
which jobs the evaluator builds.
"""

from uuid import uuid4

import pytest

from reminders_batch.alerts import ALERT_CYCLE, AlertEvaluator
from reminders_kernel.domain.types import (
    AlertThreshold,
    Channel,
    Comparator,
    JobOutcome,
    MetricReading,
    Severity,
    User,
)


class RecordingDispatcher:
    def __init__(self, succeed=True):
        self.jobs = []
        self._succeed = succeed

    def deliver(self, job, mark_day=None):
        self.jobs.append(job)
        return JobOutcome(
            job_id=job.job_id,
            success=self._succeed,
            error=None if self._succeed else "brevo: HTTP 500",
        )


class InMemoryUsers:
    def __init__(self, *users):
        self._users = {u.user_id: u for u in users}

    def find_active_users(self):
        return list(self._users.values())

    def get_user(self, user_id):
        return self._users.get(user_id)


THRESHOLDS = [
    AlertThreshold("budget_used", Comparator.GE, 0.9, Severity.HIGH, "Budget almost exhausted"),
    AlertThreshold("savings_rate", Comparator.LT, 0.1, Severity.LOW),
    AlertThreshold("failed_jobs", Comparator.GT, 10, Severity.CRITICAL),
]


@pytest.fixture
def evaluator_for(clock):
    def _build(*users, succeed=True):
        dispatcher = RecordingDispatcher(succeed=succeed)
        evaluator = AlertEvaluator(THRESHOLDS, dispatcher, InMemoryUsers(*users), clock=clock)
        return evaluator, dispatcher

    return _build


class TestEvaluate:
    @pytest.mark.parametrize(
        "comparator, value, threshold, raised",
        [
            (Comparator.LT, 1, 2, True),
            (Comparator.LT, 2, 2, False),
            (Comparator.LE, 2, 2, True),
            (Comparator.GT, 3, 2, True),
            (Comparator.GT, 2, 2, False),
            (Comparator.GE, 2, 2, True),
            (Comparator.EQ, 2, 2, True),
            (Comparator.NE, 2, 2, False),
        ],
    )
    def test_comparators(self, clock, comparator, value, threshold, raised):
        evaluator = AlertEvaluator(
            [AlertThreshold("m", comparator, threshold, Severity.MEDIUM)],
            RecordingDispatcher(),
            InMemoryUsers(),
            clock=clock,
        )
        assert (evaluator.evaluate(MetricReading("m", value)) is not None) is raised

    def test_alert_fields(self, evaluator_for, clock):
        evaluator, _ = evaluator_for()
        user_id = uuid4()

        alert = evaluator.evaluate(MetricReading("budget_used", 0.95, user_id=user_id))

        assert alert.severity is Severity.HIGH
        assert alert.message == "Budget almost exhausted"
        assert alert.user_id == user_id
        assert alert.raised_at == clock.now()

    def test_default_message(self, evaluator_for):
        evaluator, _ = evaluator_for()
        alert = evaluator.evaluate(MetricReading("savings_rate", 0.05))
        assert alert.message == "savings_rate lt 0.1"
        assert alert.is_global

    def test_metric_without_threshold(self, evaluator_for):
        evaluator, _ = evaluator_for()
        assert evaluator.evaluate(MetricReading("unknown", 1.0)) is None
        assert evaluator.metrics == ["budget_used", "failed_jobs", "savings_rate"]


class TestDispatch:
    def test_global_alert_is_logged_not_sent(self, evaluator_for, captured_logs):
        evaluator, dispatcher = evaluator_for()
        alert = evaluator.evaluate(MetricReading("failed_jobs", 25))

        assert evaluator.dispatch(alert) is None
        assert dispatcher.jobs == []
        record = next(r for r in captured_logs() if r["message"] == "global_alert_raised")
        assert record["level"] == "WARNING"
        assert record["severity"] == "critical"

    def test_user_alert_uses_preferred_channel(self, evaluator_for):
        ana = User(uuid4(), "Ana", email="ana@example.com", phone="11987654321",
                   preferred_channel=Channel.SMS, sms_notifications=True)
        evaluator, dispatcher = evaluator_for(ana)

        outcome = evaluator.dispatch(
            evaluator.evaluate(MetricReading("budget_used", 0.95, user_id=ana.user_id))
        )

        assert outcome.success
        (job,) = dispatcher.jobs
        assert job.cycle_name == ALERT_CYCLE
        assert job.channel is Channel.SMS
        assert job.recipient == "11987654321"
        assert job.template_id == "alert"
        assert job.payload["critical"] is True
        assert job.payload["name"] == "Ana"

    def test_falls_back_to_email_without_phone(self, evaluator_for):
        ana = User(uuid4(), "Ana", email="ana@example.com", preferred_channel=Channel.SMS)
        evaluator, dispatcher = evaluator_for(ana)

        evaluator.dispatch(evaluator.evaluate(MetricReading("savings_rate", 0.0, user_id=ana.user_id)))

        assert dispatcher.jobs[0].channel is Channel.EMAIL
        assert dispatcher.jobs[0].payload["critical"] is False

    def test_sms_opt_out_falls_back_to_email(self, evaluator_for):
        ana = User(uuid4(), "Ana", email="ana@example.com", phone="11987654321",
                   preferred_channel=Channel.SMS, sms_notifications=False)
        evaluator, dispatcher = evaluator_for(ana)

        evaluator.dispatch(evaluator.evaluate(MetricReading("budget_used", 0.95, user_id=ana.user_id)))

        (job,) = dispatcher.jobs
        assert job.channel is Channel.EMAIL
        assert job.recipient == "ana@example.com"

    def test_opted_out_everywhere_is_unreachable(self, evaluator_for):
        ana = User(uuid4(), "Ana", email="ana@example.com", phone="11987654321",
                   preferred_channel=Channel.SMS, email_notifications=False)
        evaluator, dispatcher = evaluator_for(ana)

        outcome = evaluator.dispatch(
            evaluator.evaluate(MetricReading("budget_used", 0.95, user_id=ana.user_id))
        )

        assert not outcome.success
        assert outcome.error == "user has no reachable address"
        assert dispatcher.jobs == []

    def test_unreachable_user(self, evaluator_for):
        ghost = User(uuid4(), "Ghost")
        evaluator, dispatcher = evaluator_for(ghost)

        outcome = evaluator.dispatch(
            evaluator.evaluate(MetricReading("savings_rate", 0.0, user_id=ghost.user_id))
        )

        assert not outcome.success
        assert outcome.error == "user has no reachable address"
        assert dispatcher.jobs == []

    def test_unknown_user(self, evaluator_for):
        evaluator, _ = evaluator_for()
        user_id = uuid4()
        outcome = evaluator.dispatch(
            evaluator.evaluate(MetricReading("savings_rate", 0.0, user_id=user_id))
        )
        assert outcome.error == f"Unknown user {user_id}"


class TestRun:
    def test_counts(self, evaluator_for, captured_logs):
        ana = User(uuid4(), "Ana", email="ana@example.com")
        evaluator, _ = evaluator_for(ana)

        result = evaluator.run(
            [
                MetricReading("budget_used", 0.5, user_id=ana.user_id),
                MetricReading("budget_used", 0.99, user_id=ana.user_id),
                MetricReading("failed_jobs", 11),
                MetricReading("savings_rate", 0.0, user_id=uuid4()),
            ]
        )

        assert (result.evaluated, result.raised, result.delivered, result.failed) == (4, 3, 1, 1)
        assert [a.metric for a in result.alerts] == ["budget_used", "failed_jobs", "savings_rate"]
        assert any(r["message"] == "alert_run_completed" for r in captured_logs())

    def test_failed_delivery_counted(self, evaluator_for):
        ana = User(uuid4(), "Ana", email="ana@example.com")
        evaluator, _ = evaluator_for(ana, succeed=False)

        result = evaluator.run([MetricReading("budget_used", 1.0, user_id=ana.user_id)])

        assert (result.delivered, result.failed) == (0, 1)
