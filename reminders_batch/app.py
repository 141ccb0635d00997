"""
RemindersApp -- DI container for the reminders system.

Contract:
    Wires stores, providers, sender, template catalog, cycles, dispatcher,
    recurrence engine and alert evaluator from one RemindersConfig.  The
    single place where all dependencies are composed.

Architecture: reminders_batch (top-level).  Nothing in reminders_kernel,
    reminders_config or reminders_delivery imports from here.

Invariants enforced:
    - One Clock, in the configured timezone, shared by every component.
    - Every enabled cycle in configuration maps to a registered cycle;
      cron expressions are validated when the job registry is built.

Non-goals:
    - Does NOT start jobs automatically -- caller decides.
"""

from __future__ import annotations

import time
from typing import Callable

import httpx
from sqlalchemy.orm import Session, sessionmaker

from reminders_batch.alerts import AlertEvaluator
from reminders_batch.cycles import CycleContext, CycleRegistry, default_cycle_registry
from reminders_batch.dispatcher import Dispatcher
from reminders_batch.registry import JobRegistry
from reminders_config.schema import RemindersConfig
from reminders_delivery.providers import build_providers
from reminders_delivery.providers.smtp import SmtpFactory
from reminders_delivery.sender import ChannelSender
from reminders_delivery.templates import TemplateCatalog
from reminders_kernel.domain.clock import Clock, SystemClock
from reminders_kernel.domain.types import AlertThreshold
from reminders_kernel.exceptions import ConfigurationError
from reminders_kernel.logging_config import get_logger
from reminders_kernel.services.recurrence_engine import RecurrenceEngine
from reminders_kernel.stores import (
    SqlNotificationAudit,
    SqlObligationStore,
    SqlPortfolioStore,
    SqlUserDirectory,
)

logger = get_logger("batch.app")


class RemindersApp:
    def __init__(
        self,
        config: RemindersConfig,
        clock: Clock,
        cycles: CycleRegistry,
        dispatcher: Dispatcher,
        engine: RecurrenceEngine,
        alerts: AlertEvaluator,
        sender: ChannelSender,
        catalog: TemplateCatalog,
    ):
        self.config = config
        self.clock = clock
        self.cycles = cycles
        self.dispatcher = dispatcher
        self.engine = engine
        self.alerts = alerts
        self.sender = sender
        self.catalog = catalog

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: RemindersConfig,
        session_factory: sessionmaker[Session],
        *,
        clock: Clock | None = None,
        cycles: CycleRegistry | None = None,
        http_client: httpx.Client | None = None,
        smtp_factory: SmtpFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> RemindersApp:
        """Create a fully wired application from configuration.

        Args:
            config: Parsed configuration.
            session_factory: Source of sessions; each store call opens one.
            clock: Optional clock for deterministic testing.
            cycles: Optional pre-configured registry; defaults to every
                built-in cycle.
            http_client: Optional shared httpx client for HTTP providers.
            smtp_factory: Optional SMTP connection factory.
            sleep: Inter-message delay function.
        """
        effective_clock = clock or SystemClock(config.timezone)
        registry = cycles if cycles is not None else default_cycle_registry()

        obligations = SqlObligationStore(session_factory, clock=effective_clock)
        users = SqlUserDirectory(session_factory)
        portfolio = SqlPortfolioStore(session_factory)
        audit = SqlNotificationAudit(session_factory)

        sender = ChannelSender(
            build_providers(config, client=http_client, smtp_factory=smtp_factory),
            clock=effective_clock,
        )
        catalog = TemplateCatalog(config.templates)

        for cycle_cfg in config.cycles:
            if cycle_cfg.name not in registry:
                raise ConfigurationError(
                    cycle_cfg.name,
                    f"no such cycle. Available: {list(registry.list_cycles())}",
                )

        dispatcher = Dispatcher(
            registry,
            CycleContext(
                obligations=obligations,
                users=users,
                portfolio=portfolio,
                settings=config.dispatch,
            ),
            catalog,
            sender,
            audit,
            effective_clock,
            cycle_channels={c.name: c.channels for c in config.cycles},
            send_delay_seconds=config.dispatch.send_delay_seconds,
            sleep=sleep,
        )
        engine = RecurrenceEngine(
            obligations,
            end_date_inclusive=config.recurrence.end_date_inclusive,
        )
        alerts = AlertEvaluator(
            (
                AlertThreshold(
                    metric=t.metric,
                    comparator=t.comparator,
                    threshold=t.threshold,
                    severity=t.severity,
                    message=t.message,
                )
                for t in config.alerts.thresholds
            ),
            dispatcher,
            users,
            clock=effective_clock,
            template_id=config.alerts.template_id,
        )

        logger.info(
            "app_initialized",
            extra={
                "config_checksum": config.checksum,
                "timezone": config.timezone,
                "cycles": [c.name for c in config.cycles if c.enabled],
                "providers": sender.check_configuration(),
            },
        )
        return cls(
            config=config,
            clock=effective_clock,
            cycles=registry,
            dispatcher=dispatcher,
            engine=engine,
            alerts=alerts,
            sender=sender,
            catalog=catalog,
        )

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def build_job_registry(self, poll_interval_seconds: float = 30.0) -> JobRegistry:
        """One stopped job per enabled cycle.

        Raises:
            InvalidCronExpressionError: If a cycle's schedule cannot be parsed.
        """
        jobs = JobRegistry(clock=self.clock, poll_interval_seconds=poll_interval_seconds)
        for cycle_cfg in self.config.cycles:
            if not cycle_cfg.enabled:
                continue
            jobs.register(cycle_cfg.name, cycle_cfg.schedule, self._cycle_action(cycle_cfg.name))
        return jobs

    def _cycle_action(self, cycle_name: str) -> Callable[[], object]:
        def action():
            return self.dispatcher.run_cycle(cycle_name)

        return action
