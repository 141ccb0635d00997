"""
Tests for reminders_kernel.domain.recurrence.

Pure date arithmetic: next occurrence per frequency, month-end clamping,
recurrence window boundary and legacy frequency names.
"""

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from reminders_kernel.domain.recurrence import (
    add_months,
    is_within_recurrence,
    next_occurrence,
    parse_frequency,
)
from reminders_kernel.domain.types import Frequency

RECURRING = [f for f in Frequency if f is not Frequency.NONE]


class TestNextOccurrence:
    @pytest.mark.parametrize(
        "frequency, expected",
        [
            (Frequency.DAILY, date(2024, 3, 16)),
            (Frequency.WEEKLY, date(2024, 3, 22)),
            (Frequency.BIWEEKLY, date(2024, 3, 30)),
            (Frequency.MONTHLY, date(2024, 4, 15)),
            (Frequency.BIMONTHLY, date(2024, 5, 15)),
            (Frequency.QUARTERLY, date(2024, 6, 15)),
            (Frequency.SEMIANNUAL, date(2024, 9, 15)),
            (Frequency.ANNUAL, date(2025, 3, 15)),
        ],
    )
    def test_mid_month_anchor(self, frequency, expected):
        assert next_occurrence(date(2024, 3, 15), frequency) == expected

    def test_none_frequency_has_no_next(self):
        assert next_occurrence(date(2024, 3, 15), Frequency.NONE) is None

    def test_unknown_frequency_has_no_next(self):
        assert next_occurrence(date(2024, 3, 15), "hourly") is None

    def test_accepts_legacy_names(self):
        assert next_occurrence(date(2024, 3, 15), "mensal") == date(2024, 4, 15)

    def test_monthly_from_january_31_clamps_to_leap_february(self):
        assert next_occurrence(date(2024, 1, 31), Frequency.MONTHLY) == date(2024, 2, 29)

    def test_monthly_from_leap_day_lands_on_month_end(self):
        assert next_occurrence(date(2024, 2, 29), Frequency.MONTHLY) == date(2024, 3, 31)

    def test_annual_from_leap_day(self):
        assert next_occurrence(date(2024, 2, 29), Frequency.ANNUAL) == date(2025, 2, 28)

    def test_year_rollover(self):
        assert next_occurrence(date(2024, 12, 10), Frequency.MONTHLY) == date(2025, 1, 10)
        assert next_occurrence(date(2024, 11, 30), Frequency.QUARTERLY) == date(2025, 2, 28)

    def test_mid_month_anchor_keeps_day_after_short_month(self):
        assert add_months(date(2024, 2, 28), 1) == date(2024, 3, 28)
        assert add_months(date(2023, 2, 28), 1) == date(2023, 3, 31)


class TestRecurrenceWindow:
    def test_no_end_date_is_unbounded(self):
        assert is_within_recurrence(date(2099, 1, 1), None)

    def test_end_date_is_inclusive_by_default(self):
        assert is_within_recurrence(date(2024, 6, 30), date(2024, 6, 30))

    def test_exclusive_boundary(self):
        assert not is_within_recurrence(
            date(2024, 6, 30), date(2024, 6, 30), inclusive=False,
        )

    def test_after_end_date(self):
        assert not is_within_recurrence(date(2024, 7, 1), date(2024, 6, 30))


class TestParseFrequency:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("monthly", Frequency.MONTHLY),
            ("MONTHLY", Frequency.MONTHLY),
            (" anual ", Frequency.ANNUAL),
            ("quinzenal", Frequency.BIWEEKLY),
            ("trimestral", Frequency.QUARTERLY),
            (None, Frequency.NONE),
            ("", Frequency.NONE),
            (Frequency.WEEKLY, Frequency.WEEKLY),
        ],
    )
    def test_known_values(self, raw, expected):
        assert parse_frequency(raw) is expected

    def test_unknown_value_returns_none(self):
        assert parse_frequency("every-other-tuesday") is None


class TestRecurrenceProperties:
    @given(
        anchor=st.dates(min_value=date(1900, 1, 1), max_value=date(2900, 12, 31)),
        frequency=st.sampled_from(RECURRING),
    )
    def test_next_is_strictly_later(self, anchor, frequency):
        assert next_occurrence(anchor, frequency) > anchor

    @given(
        anchor=st.dates(min_value=date(1900, 1, 1), max_value=date(2900, 12, 31)),
        months=st.integers(min_value=1, max_value=24),
    )
    def test_month_end_anchor_stays_on_month_end(self, anchor, months):
        month_end = (anchor.replace(day=1) + timedelta(days=32)).replace(day=1) - timedelta(days=1)
        result = add_months(month_end, months)
        assert (result + timedelta(days=1)).day == 1
