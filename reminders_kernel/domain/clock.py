"""
Clock -- injectable source of "now" and "today".

Cycles decide what is due by calendar day, and that day depends on the
configured timezone: 02:00 UTC is still the previous day in Sao Paulo.
Every component therefore receives one Clock built from
``RemindersConfig.timezone`` instead of calling ``datetime.now()``.

Failure modes:
    - An unknown timezone name raises ``ZoneInfoNotFoundError`` at
      construction.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


class Clock(ABC):
    """
    Guarantees:
        - ``now()`` is timezone-aware, expressed in the clock's zone.
        - ``today()`` is the calendar date of ``now()`` in that zone.
    """

    @abstractmethod
    def now(self) -> datetime: ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in a named IANA zone."""

    def __init__(self, tz_name: str = "UTC"):
        self._tz = ZoneInfo(tz_name)

    @property
    def tz_name(self) -> str:
        return self._tz.key

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Fixed time for tests and replays.

    ``now()`` only moves through ``advance()`` or ``set_time()``.  With
    ``tz_name`` the fixed instant is reported in that zone, so ``today()``
    follows the same day boundary as a SystemClock in the same zone.
    """

    _DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None, tz_name: str | None = None):
        self._fixed_time = fixed_time or self._DEFAULT_TIME
        self._offset = timedelta()
        self._tz = ZoneInfo(tz_name) if tz_name else None

    def now(self) -> datetime:
        current = self._fixed_time + self._offset
        if self._tz is not None and current.tzinfo is not None:
            return current.astimezone(self._tz)
        return current

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._offset = timedelta()

    def advance(self, seconds: float = 1) -> datetime:
        """Move forward and return the new time."""
        self._offset += timedelta(seconds=seconds)
        return self.now()
