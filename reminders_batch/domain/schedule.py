"""
Pure cron evaluation for notification cycles.

Contract:
    ``parse_cron``, ``matches_cron`` and ``next_cron_match`` are PURE --
    no I/O, no clock reads.  The job loop supplies "now" in the configured
    timezone and sleeps until the returned instant.

Accepted syntax, per field: ``*``, values, ranges (``1-5``), steps
(``*/15``, ``1-10/3``), lists (``1,15``), month names (``jan``) and
weekday names (``mon``).  Weekday 7 is Sunday, same as 0.  The aliases
``@hourly``, ``@daily``, ``@weekly``, ``@monthly`` and ``@yearly`` expand
to their five-field forms.

Day-of-month and day-of-week must both match when both are restricted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from reminders_kernel.exceptions import InvalidCronExpressionError

ALIASES: dict[str, str] = {
    "@hourly": "0 * * * *",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@weekly": "0 0 * * 0",
    "@monthly": "0 0 1 * *",
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
}

_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_DAY_NAMES = {
    name: number
    for number, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))
}


# =============================================================================
# CronSpec
# =============================================================================


@dataclass(frozen=True)
class CronSpec:
    """Parsed ``minute hour day_of_month month day_of_week`` (0=Sunday)."""

    expression: str = "* * * * *"
    minutes: frozenset[int] = field(default_factory=lambda: frozenset(range(60)))
    hours: frozenset[int] = field(default_factory=lambda: frozenset(range(24)))
    days_of_month: frozenset[int] = field(default_factory=lambda: frozenset(range(1, 32)))
    months: frozenset[int] = field(default_factory=lambda: frozenset(range(1, 13)))
    days_of_week: frozenset[int] = field(default_factory=lambda: frozenset(range(7)))


def _value(token: str, names: dict[str, int] | None) -> int:
    if names and token.lower() in names:
        return names[token.lower()]
    return int(token)


def _parse_cron_field(
    field_str: str,
    min_val: int,
    max_val: int,
    names: dict[str, int] | None = None,
) -> frozenset[int]:
    """Expand one cron field into the set of values it allows.

    Raises:
        ValueError: On syntax errors, zero steps or out-of-range values.
    """
    values: set[int] = set()

    for part in field_str.split(","):
        part = part.strip()
        if not part:
            raise ValueError("Empty list element")

        base, _, step_str = part.partition("/")
        step = int(step_str) if step_str else 1
        if step <= 0:
            raise ValueError(f"Step must be positive: {step}")

        if base == "*":
            start, end = min_val, max_val
        elif "-" in base:
            s, e = base.split("-", 1)
            start, end = _value(s, names), _value(e, names)
            if start > end:
                raise ValueError(f"Range start > end: {start}-{end}")
        else:
            start = _value(base, names)
            # "5/10" means every 10 from 5 to the top of the range
            end = max_val if step_str else start

        if start < min_val or end > max_val:
            raise ValueError(f"Value {start}-{end} outside range [{min_val}, {max_val}]")
        values.update(range(start, end + 1, step))

    return frozenset(values)


def parse_cron(expression: str) -> CronSpec:
    """Parse a five-field cron expression or an ``@`` alias.

    Raises:
        InvalidCronExpressionError: If the expression is malformed.
    """
    text = expression.strip()
    if text.startswith("@"):
        if text.lower() not in ALIASES:
            raise InvalidCronExpressionError(expression, f"unknown alias {text}")
        text = ALIASES[text.lower()]

    parts = text.split()
    if len(parts) != 5:
        raise InvalidCronExpressionError(
            expression, f"expected 5 fields, got {len(parts)}"
        )

    try:
        weekdays = _parse_cron_field(parts[4], 0, 7, _DAY_NAMES)
        return CronSpec(
            expression=expression.strip(),
            minutes=_parse_cron_field(parts[0], 0, 59),
            hours=_parse_cron_field(parts[1], 0, 23),
            days_of_month=_parse_cron_field(parts[2], 1, 31),
            months=_parse_cron_field(parts[3], 1, 12, _MONTH_NAMES),
            days_of_week=frozenset(d % 7 for d in weekdays),
        )
    except ValueError as exc:
        raise InvalidCronExpressionError(expression, str(exc)) from exc


def _day_matches(spec: CronSpec, dt: datetime) -> bool:
    # Python weekday(): 0=Monday; cron: 0=Sunday
    cron_dow = (dt.weekday() + 1) % 7
    return (
        dt.day in spec.days_of_month
        and dt.month in spec.months
        and cron_dow in spec.days_of_week
    )


def matches_cron(spec: CronSpec, dt: datetime) -> bool:
    """Check if a datetime matches a cron spec (minute resolution)."""
    return dt.minute in spec.minutes and dt.hour in spec.hours and _day_matches(spec, dt)


def next_cron_match(spec: CronSpec, after: datetime) -> datetime:
    """First datetime strictly after ``after`` that matches ``spec``.

    Non-matching days and hours are skipped whole.  The search gives up
    after 366 days, which only happens for impossible dates like Feb 31.

    Raises:
        ValueError: If nothing matches within that bound.
    """
    candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
    limit = after + timedelta(days=366)

    while candidate <= limit:
        if not _day_matches(spec, candidate):
            candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0)
        elif candidate.hour not in spec.hours:
            candidate = candidate.replace(minute=0) + timedelta(hours=1)
        elif candidate.minute not in spec.minutes:
            candidate += timedelta(minutes=1)
        else:
            return candidate

    raise ValueError(f"No cron match found within 366 days after {after}")
