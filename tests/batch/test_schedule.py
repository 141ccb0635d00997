"""
Tests for reminders_batch.domain.schedule.

Validates pure cron evaluation: parsing, matching and next-match search.
"""

from dataclasses import FrozenInstanceError
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from reminders_batch.domain.schedule import (
    CronSpec,
    _parse_cron_field,
    matches_cron,
    next_cron_match,
    parse_cron,
)
from reminders_kernel.exceptions import InvalidCronExpressionError

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


# =============================================================================
# CronSpec tests
# =============================================================================


class TestCronSpec:
    def test_frozen(self):
        spec = CronSpec()
        with pytest.raises(FrozenInstanceError):
            spec.minutes = frozenset()  # type: ignore[misc]

    def test_defaults_cover_all_values(self):
        spec = CronSpec()
        assert spec.minutes == frozenset(range(60))
        assert spec.days_of_week == frozenset(range(7))


# =============================================================================
# _parse_cron_field tests
# =============================================================================


class TestParseCronField:
    def test_wildcard(self):
        assert _parse_cron_field("*", 0, 59) == frozenset(range(60))

    def test_step(self):
        assert _parse_cron_field("*/15", 0, 59) == frozenset({0, 15, 30, 45})

    def test_range_with_step(self):
        assert _parse_cron_field("1-10/3", 0, 59) == frozenset({1, 4, 7, 10})

    def test_comma_separated(self):
        assert _parse_cron_field("1,5,10", 0, 59) == frozenset({1, 5, 10})

    def test_value_out_of_range(self):
        with pytest.raises(ValueError, match="outside range"):
            _parse_cron_field("60", 0, 59)

    def test_zero_step(self):
        with pytest.raises(ValueError, match="Step must be positive"):
            _parse_cron_field("*/0", 0, 59)


# =============================================================================
# parse_cron tests
# =============================================================================


class TestParseCron:
    def test_daily_at_nine(self):
        spec = parse_cron("0 9 * * *")
        assert spec.expression == "0 9 * * *"
        assert spec.minutes == frozenset({0})
        assert spec.hours == frozenset({9})

    def test_first_of_month(self):
        assert parse_cron("0 8 1 * *").days_of_month == frozenset({1})

    def test_names_and_sunday_as_seven(self):
        spec = parse_cron("30 8 * jan-mar MON,fri,7")
        assert spec.months == frozenset({1, 2, 3})
        assert spec.days_of_week == frozenset({0, 1, 5})

    def test_start_with_step(self):
        assert parse_cron("5/20 * * * *").minutes == frozenset({5, 25, 45})

    @pytest.mark.parametrize(
        "alias, expanded",
        [("@daily", "0 0 * * *"), ("@MONTHLY", "0 0 1 * *"), ("@weekly", "0 0 * * 0")],
    )
    def test_aliases(self, alias, expanded):
        spec = parse_cron(alias)
        assert spec.expression == alias
        assert spec == CronSpec(**{**vars(parse_cron(expanded)), "expression": alias})

    @pytest.mark.parametrize(
        "expression", ["0 9 * *", "abc 9 * * *", "0 25 * * *", "", "@fortnightly", "0 9 * * 8"],
    )
    def test_invalid(self, expression):
        with pytest.raises(InvalidCronExpressionError):
            parse_cron(expression)


# =============================================================================
# matches_cron / next_cron_match tests
# =============================================================================


class TestMatching:
    def test_matches_minute_resolution(self):
        spec = parse_cron("0 9 * * *")
        assert matches_cron(spec, datetime(2024, 3, 15, 9, 0, 42))
        assert not matches_cron(spec, datetime(2024, 3, 15, 9, 1))

    def test_day_of_week_sunday_is_zero(self):
        spec = parse_cron("0 9 * * 0")
        assert matches_cron(spec, datetime(2024, 3, 17, 9, 0))  # Sunday
        assert not matches_cron(spec, datetime(2024, 3, 18, 9, 0))

    def test_next_same_day(self):
        spec = parse_cron("0 9 * * *")
        assert next_cron_match(spec, datetime(2024, 3, 15, 8, 30)) == datetime(2024, 3, 15, 9, 0)

    def test_next_is_strictly_after(self):
        spec = parse_cron("0 9 * * *")
        assert next_cron_match(spec, datetime(2024, 3, 15, 9, 0)) == datetime(2024, 3, 16, 9, 0)

    def test_next_first_of_month_crosses_year(self):
        spec = parse_cron("0 8 1 * *")
        assert next_cron_match(spec, datetime(2024, 12, 15, 10, 0)) == datetime(2025, 1, 1, 8, 0)

    def test_next_keeps_timezone(self):
        spec = parse_cron("0 9 * * *")
        after = datetime(2024, 3, 15, 10, 0, tzinfo=SAO_PAULO)
        result = next_cron_match(spec, after)
        assert result == datetime(2024, 3, 16, 9, 0, tzinfo=SAO_PAULO)
        assert result.tzinfo is SAO_PAULO

    def test_impossible_date_raises(self):
        spec = parse_cron("0 0 31 2 *")
        with pytest.raises(ValueError, match="No cron match"):
            next_cron_match(spec, datetime(2024, 1, 1))
