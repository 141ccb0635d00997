"""
reminders_kernel.domain -- Pure types, clock and recurrence arithmetic.

ZERO I/O (except SystemClock).
"""

from reminders_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from reminders_kernel.domain.recurrence import (
    add_months,
    is_within_recurrence,
    next_occurrence,
    parse_frequency,
)
from reminders_kernel.domain.types import (
    Channel,
    Frequency,
    JobStatus,
    Obligation,
    ObligationKind,
    ObligationStatus,
)

__all__ = [
    "Channel",
    "Clock",
    "DeterministicClock",
    "Frequency",
    "JobStatus",
    "Obligation",
    "ObligationKind",
    "ObligationStatus",
    "SystemClock",
    "add_months",
    "is_within_recurrence",
    "next_occurrence",
    "parse_frequency",
]
