"""
Recurrence -- Pure date arithmetic for recurring obligations.

Responsibility:
    Computes the next due date of a recurring obligation and decides
    whether it still falls inside the recurrence window.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - ``next_occurrence(d, f) > d`` for every recurring frequency.
    - Month arithmetic never produces an invalid date: the day is clamped
      to the last day of the target month, and an anchor sitting on the
      last day of its month lands on the last day of the target month.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from reminders_kernel.domain.types import Frequency

_DAY_STEPS: dict[Frequency, int] = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 15,
}

_MONTH_STEPS: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.BIMONTHLY: 2,
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUAL: 6,
    Frequency.ANNUAL: 12,
}

# Names used by legacy data sets.
_FREQUENCY_ALIASES: dict[str, Frequency] = {
    "nenhuma": Frequency.NONE,
    "diario": Frequency.DAILY,
    "diaria": Frequency.DAILY,
    "semanal": Frequency.WEEKLY,
    "quinzenal": Frequency.BIWEEKLY,
    "mensal": Frequency.MONTHLY,
    "bimestral": Frequency.BIMONTHLY,
    "trimestral": Frequency.QUARTERLY,
    "semestral": Frequency.SEMIANNUAL,
    "anual": Frequency.ANNUAL,
    "yearly": Frequency.ANNUAL,
    "fortnightly": Frequency.BIWEEKLY,
}


def parse_frequency(value: str | Frequency | None) -> Frequency | None:
    """Parse a frequency name, canonical or legacy, case-insensitive.

    Returns None for unrecognized values.  None and "" mean Frequency.NONE.
    """
    if isinstance(value, Frequency):
        return value
    if value is None:
        return Frequency.NONE
    key = value.strip().lower()
    if not key:
        return Frequency.NONE
    try:
        return Frequency(key)
    except ValueError:
        return _FREQUENCY_ALIASES.get(key)


def _is_month_end(day: date) -> bool:
    return day.day == calendar.monthrange(day.year, day.month)[1]


def add_months(anchor: date, months: int) -> date:
    """Add calendar months with end-of-month clamping.

    2024-01-31 + 1 -> 2024-02-29; 2024-02-29 + 1 -> 2024-03-31.
    """
    index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    if _is_month_end(anchor):
        return date(year, month, last_day)
    return date(year, month, min(anchor.day, last_day))


def next_occurrence(anchor: date, frequency: Frequency | str | None) -> date | None:
    """Next due date after ``anchor``, or None when nothing recurs."""
    freq = parse_frequency(frequency)
    if freq is None or freq is Frequency.NONE:
        return None
    if freq in _DAY_STEPS:
        return anchor + timedelta(days=_DAY_STEPS[freq])
    return add_months(anchor, _MONTH_STEPS[freq])


def is_within_recurrence(
    next_date: date,
    end_date: date | None,
    *,
    inclusive: bool = True,
) -> bool:
    """Whether ``next_date`` is still inside the recurrence window."""
    if end_date is None:
        return True
    if inclusive:
        return next_date <= end_date
    return next_date < end_date
