"""
JobRegistry -- named cron jobs, each on its own background thread.

Contract:
    ``register(name, cron, action)`` adds a stopped job.  ``start`` /
    ``stop`` control one job, ``start_all`` / ``stop_all`` every job,
    ``run_now`` fires an action synchronously on the caller's thread and
    ``status`` reports every job.

Architecture: reminders_batch.  Owned by the application root; there is
    no module-level registry.

Invariants enforced:
    - All timestamps come from the injected Clock (configured timezone).
    - Cron evaluation is pure (``reminders_batch.domain.schedule``).
    - An action failure is logged and recorded; it never kills the loop.
    - ``stop`` takes effect between runs; a running action is not
      interrupted.

Non-goals:
    - NOT a distributed scheduler (no leader election, no persistence of
      next-run state across restarts).
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from reminders_batch.domain.schedule import CronSpec, next_cron_match, parse_cron
from reminders_kernel.domain.clock import Clock, SystemClock
from reminders_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.registry")

JobAction = Callable[[], Any]


@dataclass(frozen=True)
class ScheduledJobStatus:
    name: str
    schedule: str
    running: bool
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_succeeded: bool | None = None
    last_error: str | None = None
    run_count: int = 0


class ScheduledJob:
    """One cron-driven action with its own polling thread."""

    def __init__(
        self,
        name: str,
        spec: CronSpec,
        action: JobAction,
        clock: Clock | None = None,
        poll_interval_seconds: float = 30.0,
    ):
        self.name = name
        self.spec = spec
        self._action = action
        self._clock = clock or SystemClock()
        self._poll_interval = poll_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._next_run_at: datetime | None = None
        self._last_run_at: datetime | None = None
        self._last_succeeded: bool | None = None
        self._last_error: str | None = None
        self._run_count = 0

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self, now: datetime | None = None) -> bool:
        """Fire the action if its next run is due (public for testing).

        The first tick only arms the job.  Returns True when the action ran.
        """
        now = now or self._clock.now()
        if self._next_run_at is None:
            self._next_run_at = next_cron_match(self.spec, now)
            return False
        if now < self._next_run_at:
            return False

        self.run()
        self._next_run_at = next_cron_match(self.spec, now)
        return True

    def run(self) -> Any:
        """Run the action once, recording the outcome.  Failures are logged, not raised."""
        started = self._clock.now()
        start = time.monotonic()
        self._last_run_at = started
        self._run_count += 1
        with LogContext.bind(trace_id=f"{self.name}-{started:%Y%m%dT%H%M}"):
            try:
                result = self._action()
            except Exception as exc:
                self._last_succeeded = False
                self._last_error = f"{type(exc).__name__}: {exc}"
                logger.exception(
                    "job_run_failed",
                    extra={"job_name": self.name, "schedule": self.spec.expression},
                )
                return None

        self._last_succeeded = True
        self._last_error = None
        logger.info(
            "job_run_completed",
            extra={
                "job_name": self.name,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return result

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._next_run_at = None
        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"job-{self.name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "job_started",
            extra={"job_name": self.name, "schedule": self.spec.expression},
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("job_stopped", extra={"job_name": self.name})

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> ScheduledJobStatus:
        return ScheduledJobStatus(
            name=self.name,
            schedule=self.spec.expression,
            running=self.is_running,
            next_run_at=self._next_run_at,
            last_run_at=self._last_run_at,
            last_succeeded=self._last_succeeded,
            last_error=self._last_error,
            run_count=self._run_count,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop. Exits when stop_event is set."""
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("job_tick_exception", extra={"job_name": self.name})
            self._stop_event.wait(timeout=self._seconds_until_next())

    def _seconds_until_next(self) -> float:
        if self._next_run_at is None:
            return self._poll_interval
        remaining = (self._next_run_at - self._clock.now()).total_seconds()
        return max(0.0, min(remaining, self._poll_interval))


class JobRegistry:
    """Name-keyed collection of ScheduledJobs."""

    def __init__(
        self,
        clock: Clock | None = None,
        poll_interval_seconds: float = 30.0,
    ):
        self._clock = clock or SystemClock()
        self._poll_interval = poll_interval_seconds
        self._jobs: dict[str, ScheduledJob] = {}

    def register(self, name: str, cron: str, action: JobAction) -> ScheduledJob:
        """Register a stopped job.

        Raises:
            ValueError: If a job with the same name is already registered.
            InvalidCronExpressionError: If ``cron`` cannot be parsed.
        """
        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        job = ScheduledJob(
            name,
            parse_cron(cron),
            action,
            clock=self._clock,
            poll_interval_seconds=self._poll_interval,
        )
        self._jobs[name] = job
        return job

    def get(self, name: str) -> ScheduledJob:
        """Raises KeyError if not found."""
        if name not in self._jobs:
            raise KeyError(
                f"No job registered: {name}. Available: {sorted(self._jobs)}"
            )
        return self._jobs[name]

    def start(self, name: str) -> None:
        self.get(name).start()

    def stop(self, name: str, timeout: float = 30.0) -> None:
        self.get(name).stop(timeout=timeout)

    def start_all(self) -> None:
        for job in self._jobs.values():
            job.start()

    def stop_all(self, timeout: float = 30.0) -> None:
        for job in self._jobs.values():
            job.stop(timeout=timeout)

    def run_now(self, name: str) -> Any:
        logger.info("job_run_requested", extra={"job_name": name})
        return self.get(name).run()

    def status(self) -> list[ScheduledJobStatus]:
        return [job.status() for job in self._jobs.values()]

    @property
    def names(self) -> list[str]:
        return list(self._jobs)
