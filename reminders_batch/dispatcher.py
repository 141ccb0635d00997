"""
Dispatcher -- scan, build and send one notification cycle.

Contract:
    ``run_cycle(name)`` walks Idle -> Scanning -> Building -> Sending -> Idle
    and returns a CycleResult with ``total == succeeded + failed``.
    ``deliver(job)`` is the single send path shared by cycles and alerts:
    audit record, provider chain, final status, day marker.

Architecture: reminders_batch.  Depends on store contracts, the template
    catalog and the ChannelSender; holds no per-run state on the instance
    beyond the observable cycle state map.

Invariants enforced:
    - A store failure while scanning raises PersistenceError out of
      ``run_cycle``; the cycle is retried only at its next trigger.
    - A malformed item (ValidationError) is logged and counted as failed;
      the remaining items still go out.
    - No two jobs in one run share (recipient, subject, day); with markers
      enabled, subjects notified earlier the same day are skipped.
    - Sends are sequential with a fixed delay between consecutive sends.
    - One job's exception never aborts the cycle.
    - A recorded job always gets a terminal status; a delivered job counts
      as succeeded even when its status or marker write fails.
    - Overlapping runs of one cycle each keep their own state; the
      cycle reads IDLE only after the last of them finishes.

Non-goals:
    - No cross-instance exactly-once: two processes against one store
      can both send before either writes its marker.
"""

from __future__ import annotations

import threading
import time
from datetime import date
from typing import Callable, Mapping, Sequence
from uuid import UUID, uuid4

from reminders_batch.cycles.base import (
    CycleContext,
    CycleRegistry,
    NotificationCycle,
    ScanItem,
)
from reminders_delivery.sender import ChannelSender
from reminders_delivery.templates import TemplateCatalog
from reminders_kernel.domain.clock import Clock, SystemClock
from reminders_kernel.domain.types import (
    Channel,
    CycleResult,
    CycleState,
    JobOutcome,
    JobStatus,
    NotificationJob,
    User,
)
from reminders_kernel.exceptions import PersistenceError, ValidationError
from reminders_kernel.logging_config import LogContext, get_logger
from reminders_kernel.stores.contracts import NotificationAudit

logger = get_logger("batch.dispatcher")

DEFAULT_CHANNELS: tuple[Channel, ...] = (Channel.EMAIL,)


class Dispatcher:
    def __init__(
        self,
        cycles: CycleRegistry,
        context: CycleContext,
        catalog: TemplateCatalog,
        sender: ChannelSender,
        audit: NotificationAudit,
        clock: Clock | None = None,
        *,
        cycle_channels: Mapping[str, Sequence[Channel]] | None = None,
        send_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._cycles = cycles
        self._context = context
        self._catalog = catalog
        self._sender = sender
        self._audit = audit
        self._clock = clock or SystemClock()
        self._cycle_channels = {k: tuple(v) for k, v in (cycle_channels or {}).items()}
        self._send_delay = send_delay_seconds
        self._sleep = sleep
        # cycle name -> {run id: state}, in run start order
        self._states: dict[str, dict[str, CycleState]] = {}
        self._states_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def state(self, cycle_name: str) -> CycleState:
        """State of the latest unfinished run of ``cycle_name``, IDLE if none."""
        with self._states_lock:
            runs = self._states.get(cycle_name)
            return next(reversed(runs.values())) if runs else CycleState.IDLE

    def run_cycle(self, cycle_name: str) -> CycleResult:
        """
        Run one cycle end to end.

        Raises:
            UnknownCycleError: If no cycle is registered under ``cycle_name``.
            PersistenceError: If the scan cannot read the stores.
        """
        cycle = self._cycles.get(cycle_name)
        run_id = str(uuid4())
        with LogContext.bind(correlation_id=run_id, cycle_name=cycle_name):
            try:
                return self._run(cycle, run_id)
            finally:
                self._transition(cycle_name, run_id, CycleState.IDLE)

    def deliver(self, job: NotificationJob, mark_day: date | None = None) -> JobOutcome:
        """
        Send one job and record the outcome.  Never raises.

        ``mark_day`` sets the notified marker for the job's subject after a
        successful send.  Once the job is recorded it always reaches a
        terminal status.  Audit or marker write failures after a send are
        logged and do not change the delivery outcome.
        """
        with LogContext.bind(
            job_id=str(job.job_id),
            user_id=str(job.user_id) if job.user_id else None,
            subject_id=str(job.subject_id) if job.subject_id else None,
        ):
            started_at = self._clock.now()
            try:
                content = job.content or self._catalog.render_message(
                    job.template_id, job.channel, job.payload,
                )
                self._audit.record_job(job)
            except Exception as exc:
                return self._job_failed(job, exc, started_at)

            try:
                result = self._sender.send(job.channel, job.recipient, content)
            except Exception as exc:
                outcome = self._job_failed(job, exc, started_at)
                self._record_status(job, JobStatus.FAILED, error=outcome.error)
                return outcome
            completed_at = self._clock.now()

            if result.success and mark_day is not None and job.subject_id:
                try:
                    self._audit.mark_notified(job.subject_id, job.cycle_name, mark_day)
                except Exception:
                    logger.warning(
                        "notified_marker_failed",
                        extra={"as_of": mark_day},
                        exc_info=True,
                    )
            self._record_status(
                job,
                JobStatus.SENT if result.success else JobStatus.FAILED,
                attempts=result.attempts,
                error=result.error,
                provider_used=result.provider_used,
                provider_message_id=result.provider_message_id,
            )

            logger.info(
                "job_completed",
                extra={
                    "success": result.success,
                    "provider": result.provider_used,
                    "attempt_count": len(result.attempts),
                },
            )
            return JobOutcome(
                job_id=job.job_id,
                success=result.success,
                result=result,
                error=result.error,
                started_at=started_at,
                completed_at=completed_at,
            )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _job_failed(self, job: NotificationJob, exc: Exception, started_at) -> JobOutcome:
        logger.exception(
            "job_failed",
            extra={"template_id": job.template_id, "channel": job.channel.value},
        )
        return JobOutcome(
            job_id=job.job_id,
            success=False,
            error=f"{type(exc).__name__}: {exc}",
            started_at=started_at,
            completed_at=self._clock.now(),
        )

    def _record_status(self, job: NotificationJob, status: JobStatus, **fields) -> None:
        try:
            self._audit.update_status(job.job_id, status, **fields)
        except Exception:
            logger.warning(
                "job_status_not_recorded",
                extra={"status": status.value},
                exc_info=True,
            )

    def _transition(self, cycle_name: str, run_id: str, state: CycleState) -> None:
        with self._states_lock:
            runs = self._states.setdefault(cycle_name, {})
            previous = runs.get(run_id, CycleState.IDLE)
            if state is CycleState.IDLE:
                runs.pop(run_id, None)
            else:
                runs[run_id] = state
        if previous is not state:
            logger.debug(
                "cycle_state_changed",
                extra={"from_state": previous.value, "to_state": state.value},
            )

    def _run(self, cycle: NotificationCycle, run_id: str) -> CycleResult:
        name = cycle.cycle_name
        today = self._clock.today()
        started_at = self._clock.now()
        start = time.monotonic()
        logger.info("cycle_started", extra={"as_of": today})

        self._transition(name, run_id, CycleState.SCANNING)
        try:
            items = cycle.scan(self._context, today)
        except PersistenceError:
            logger.exception("cycle_scan_failed")
            raise

        self._transition(name, run_id, CycleState.BUILDING)
        jobs, build_failures, skipped = self._build(cycle, items, today)

        self._transition(name, run_id, CycleState.SENDING)
        outcomes: list[JobOutcome] = list(build_failures)
        mark_day = today if cycle.uses_markers else None
        for index, job in enumerate(jobs):
            if index > 0 and self._send_delay > 0:
                self._sleep(self._send_delay)
            outcomes.append(self.deliver(job, mark_day=mark_day))

        succeeded = sum(1 for o in outcomes if o.success)
        failed = len(outcomes) - succeeded
        failures = tuple(
            f"{o.job_id or '-'}: {o.error}" for o in outcomes if not o.success
        )
        duration_ms = int((time.monotonic() - start) * 1000)

        logger.info(
            "cycle_completed",
            extra={
                "scanned": len(items),
                "total": len(outcomes),
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "duration_ms": duration_ms,
            },
        )
        return CycleResult(
            cycle_name=name,
            total=len(outcomes),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            failures=failures,
            outcomes=tuple(outcomes),
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=duration_ms,
        )

    def _build(
        self,
        cycle: NotificationCycle,
        items: Sequence[ScanItem],
        today: date,
    ) -> tuple[list[NotificationJob], list[JobOutcome], int]:
        """Resolve recipients, drop duplicates, render.  Returns (jobs, failures, skipped)."""
        channels = self._cycle_channels.get(cycle.cycle_name, DEFAULT_CHANNELS)
        users: dict[UUID, User | None] = {}
        seen: set[tuple[str, str, str]] = set()
        jobs: list[NotificationJob] = []
        failures: list[JobOutcome] = []
        skipped = 0

        for item in items:
            if (
                cycle.uses_markers
                and item.subject_id is not None
                and self._audit.was_notified(item.subject_id, cycle.cycle_name, today)
            ):
                skipped += 1
                continue

            try:
                if item.user_id not in users:
                    users[item.user_id] = self._context.users.get_user(item.user_id)
                user = users[item.user_id]
                if user is None:
                    raise ValidationError(f"Unknown user {item.user_id}", field="user_id")

                for channel in channels:
                    job = self._make_job(cycle.cycle_name, item, user, channel)
                    if job is None:
                        continue
                    key = job.dedupe_key(today)
                    if key in seen:
                        skipped += 1
                        continue
                    seen.add(key)
                    jobs.append(job)
            except ValidationError as exc:
                logger.warning(
                    "item_rejected",
                    extra={
                        "subject_id": str(item.subject_id) if item.subject_id else None,
                        "template_id": item.template_id,
                        "error_code": exc.code,
                        "error": str(exc),
                    },
                )
                failures.append(JobOutcome(job_id=None, success=False, error=str(exc)))

        return jobs, failures, skipped

    def _make_job(
        self,
        cycle_name: str,
        item: ScanItem,
        user: User,
        channel: Channel,
    ) -> NotificationJob | None:
        """A rendered job, or None when the user is not reachable on ``channel``."""
        if channel is Channel.EMAIL and not user.email_notifications:
            return None
        if channel is Channel.SMS and not user.sms_notifications:
            return None
        recipient = user.address_for(channel)
        if not recipient:
            return None

        payload = {"name": user.name, **item.payload}
        content = self._catalog.render_message(item.template_id, channel, payload)
        return NotificationJob(
            job_id=uuid4(),
            cycle_name=cycle_name,
            user_id=user.user_id,
            recipient=recipient,
            channel=channel,
            template_id=item.template_id,
            payload=payload,
            subject_id=item.subject_id,
            content=content,
        )
