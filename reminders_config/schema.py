"""
RemindersConfig schema.

YAML documents are parsed into these frozen types by the loader and
handed to the application root.  Nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from reminders_kernel.domain.types import Channel, Comparator, Severity

# ---------------------------------------------------------------------------
# Engine / dispatch tuning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurrenceConfig:
    """Recurrence end-date policy."""

    end_date_inclusive: bool = True


@dataclass(frozen=True)
class DispatchConfig:
    send_delay_seconds: float = 1.0
    overdue_window_days: int = 7
    goal_alert_days: int = 7
    goal_progress_threshold: float = 0.8  # goals below this fraction are reminded


# ---------------------------------------------------------------------------
# Channels and providers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmailConfig:
    sender_name: str = "Finance Reminders"
    sender_address: str = "noreply@example.com"


@dataclass(frozen=True)
class SmsConfig:
    sender: str = "Reminders"
    country_code: str = "55"


@dataclass(frozen=True)
class ProviderConfig:
    """One delivery provider; list order within a channel is fallback order."""

    name: str
    channel: Channel
    enabled: bool = True
    timeout_seconds: float = 15.0
    settings: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Cycles, templates, alerts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleConfig:
    name: str
    schedule: str  # five-field cron expression
    enabled: bool = True
    channels: tuple[Channel, ...] = (Channel.EMAIL,)
    description: str = ""


@dataclass(frozen=True)
class TemplateDef:
    template_id: str
    subject: str
    text: str
    html: str | None = None
    sms: str | None = None


@dataclass(frozen=True)
class AlertThresholdDef:
    metric: str
    comparator: Comparator
    threshold: float
    severity: Severity
    message: str | None = None


@dataclass(frozen=True)
class AlertsConfig:
    template_id: str = "alert"
    thresholds: tuple[AlertThresholdDef, ...] = ()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RemindersConfig:
    timezone: str = "UTC"
    database_url: str = "sqlite:///reminders.db"
    log_level: str = "INFO"
    recurrence: RecurrenceConfig = field(default_factory=RecurrenceConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    sms: SmsConfig = field(default_factory=SmsConfig)
    providers: tuple[ProviderConfig, ...] = ()
    cycles: tuple[CycleConfig, ...] = ()
    templates: tuple[TemplateDef, ...] = ()
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    checksum: str = ""

    def providers_for(self, channel: Channel) -> tuple[ProviderConfig, ...]:
        """Enabled providers of a channel in fallback order."""
        return tuple(p for p in self.providers if p.channel is channel and p.enabled)

    def cycle(self, name: str) -> CycleConfig | None:
        for cycle in self.cycles:
            if cycle.name == name:
                return cycle
        return None
