"""
reminders_kernel.domain.types -- Pure frozen dataclasses for obligations,
notification jobs and delivery results.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - All DTOs are frozen (immutable snapshots passed between layers).
    - DeliveryResult.attempts preserves provider call order.
    - CycleResult.total == succeeded + failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ZERO = Decimal("0")


# =============================================================================
# Enums
# =============================================================================


class ObligationKind(str, Enum):
    """Direction of a recurring obligation."""

    EXPENSE = "expense"
    REVENUE = "revenue"


class ObligationStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"


class Frequency(str, Enum):
    """Recurrence frequency of an obligation."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"  # +15 days
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class JobStatus(str, Enum):
    """Notification job lifecycle status."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class AttemptResult(str, Enum):
    """Outcome of a single provider attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Provider not configured, no network call made


class Comparator(str, Enum):
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    EQ = "eq"
    NE = "ne"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CycleState(str, Enum):
    """Dispatcher state machine for one cycle run."""

    IDLE = "idle"
    SCANNING = "scanning"
    BUILDING = "building"
    SENDING = "sending"


# =============================================================================
# Obligation DTOs
# =============================================================================


@dataclass(frozen=True)
class Obligation:
    """Immutable snapshot of an expense or revenue.

    ``predecessor_id`` links a generated successor to the obligation whose
    settlement produced it.  At most one obligation may reference a given
    predecessor.
    """

    obligation_id: UUID
    user_id: UUID
    kind: ObligationKind
    title: str
    amount: Decimal
    due_date: date
    frequency: Frequency = Frequency.NONE
    status: ObligationStatus = ObligationStatus.PENDING
    recurrence_end_date: date | None = None
    category_id: UUID | None = None
    category_name: str | None = None
    description: str | None = None
    interest: Decimal = ZERO
    penalty: Decimal = ZERO
    withholding: Decimal = ZERO
    predecessor_id: UUID | None = None
    settled_at: datetime | None = None

    @property
    def is_recurring(self) -> bool:
        return self.frequency is not Frequency.NONE

    @property
    def is_settled(self) -> bool:
        return self.status is ObligationStatus.SETTLED


@dataclass(frozen=True)
class SettlementResult:
    """Result of ``RecurrenceEngine.settle``.

    ``warning`` is set when successor creation was skipped or failed; the
    settlement itself stands regardless.
    """

    obligation: Obligation
    successor: Obligation | None = None
    warning: str | None = None


@dataclass(frozen=True)
class SettlementOutcome:
    """Per-id entry of a bulk settlement."""

    obligation_id: UUID
    success: bool
    result: SettlementResult | None = None
    error: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class BulkSettlementResult:
    total: int
    succeeded: int
    failed: int
    outcomes: tuple[SettlementOutcome, ...] = ()


@dataclass(frozen=True)
class MonthlyTotals:
    """Revenue and expense sums of one user for one calendar month."""

    user_id: UUID
    year: int
    month: int
    revenue: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.revenue - self.expense


# =============================================================================
# Directory / portfolio DTOs
# =============================================================================


@dataclass(frozen=True)
class User:
    user_id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    active: bool = True
    preferred_channel: Channel | None = None
    email_notifications: bool = True
    sms_notifications: bool = False

    def address_for(self, channel: Channel) -> str | None:
        """Recipient address on the given channel, if the user has one."""
        if channel is Channel.EMAIL:
            return self.email or None
        return self.phone or None


@dataclass(frozen=True)
class Goal:
    goal_id: UUID
    user_id: UUID
    title: str
    target_amount: Decimal
    current_amount: Decimal
    end_date: date
    active: bool = True

    @property
    def progress(self) -> Decimal:
        """Fraction of the target reached, 0 when the target is zero."""
        if self.target_amount <= 0:
            return ZERO
        return self.current_amount / self.target_amount


@dataclass(frozen=True)
class Investment:
    investment_id: UUID
    user_id: UUID
    name: str
    amount: Decimal
    redemption_date: date
    active: bool = True


@dataclass(frozen=True)
class Achievement:
    achievement_id: UUID
    user_id: UUID
    title: str
    unlocked_on: date
    description: str | None = None


# =============================================================================
# Notification DTOs
# =============================================================================


@dataclass(frozen=True)
class MessageContent:
    """Rendered message ready for a provider."""

    subject: str
    text: str
    html: str | None = None


@dataclass(frozen=True)
class NotificationJob:
    """A single message to one recipient on one channel."""

    job_id: UUID
    cycle_name: str
    user_id: UUID | None
    recipient: str
    channel: Channel
    template_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    subject_id: UUID | None = None
    status: JobStatus = JobStatus.PENDING
    content: MessageContent | None = None

    def dedupe_key(self, day: date) -> tuple[str, str, str]:
        """(recipient, subject, calendar day) identity of the job."""
        subject = str(self.subject_id) if self.subject_id else self.template_id
        return (self.recipient, subject, day.isoformat())


@dataclass(frozen=True)
class ProviderReceipt:
    """Successful provider acceptance."""

    provider: str
    message_id: str | None = None


@dataclass(frozen=True)
class DeliveryAttempt:
    provider: str
    attempted_at: datetime
    result: AttemptResult
    error: str | None = None
    duration_ms: int = 0
    message_id: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of ``ChannelSender.send``; attempts are in call order."""

    success: bool
    provider_used: str | None = None
    provider_message_id: str | None = None
    error: str | None = None
    attempts: tuple[DeliveryAttempt, ...] = ()


@dataclass(frozen=True)
class JobOutcome:
    """Per-job entry of a cycle, ``{success, result | error}``."""

    job_id: UUID | None
    success: bool
    result: DeliveryResult | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class CycleResult:
    """Result of ``Dispatcher.run_cycle``.

    ``skipped`` counts items dropped by deduplication; they are not part
    of ``total``.
    """

    cycle_name: str
    total: int
    succeeded: int
    failed: int
    skipped: int = 0
    failures: tuple[str, ...] = ()
    outcomes: tuple[JobOutcome, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0


# =============================================================================
# Alert DTOs
# =============================================================================


@dataclass(frozen=True)
class AlertThreshold:
    metric: str
    comparator: Comparator
    threshold: float
    severity: Severity
    message: str | None = None


@dataclass(frozen=True)
class MetricReading:
    """An already-computed metric value; ``user_id`` None means global."""

    name: str
    value: float
    user_id: UUID | None = None


@dataclass(frozen=True)
class Alert:
    metric: str
    value: float
    threshold: float
    comparator: Comparator
    severity: Severity
    message: str
    user_id: UUID | None = None
    raised_at: datetime | None = None

    @property
    def is_global(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class AlertRunResult:
    evaluated: int
    raised: int
    delivered: int
    failed: int
    alerts: tuple[Alert, ...] = ()
