"""Tests for the fixed-slot schedule calculator."""

from datetime import datetime, timedelta

import pytest

from reportmanager.domain.enums import Schedule
from reportmanager.exceptions import UnknownScheduleError
from reportmanager.schedule.calculator import (
    HOUR_SLOTS,
    MIN_DELAY_SECONDS,
    format_next_run_label,
    next_run,
    next_run_delay,
)

# Monday 2024-01-01
SAMPLE_INSTANTS = [
    datetime(2024, 1, 1, 0, 0, 0),
    datetime(2024, 1, 1, 0, 0, 1),
    datetime(2024, 1, 1, 1, 59, 59),
    datetime(2024, 1, 1, 2, 0, 0),
    datetime(2024, 1, 1, 5, 30, 0),
    datetime(2024, 1, 1, 6, 0, 0),
    datetime(2024, 1, 1, 11, 59, 59, 999999),
    datetime(2024, 1, 1, 12, 0, 0),
    datetime(2024, 1, 1, 23, 59, 59),
    datetime(2024, 1, 3, 14, 15, 0),
    datetime(2024, 1, 7, 23, 0, 0),
    datetime(2024, 2, 29, 18, 0, 0),
    datetime(2024, 12, 31, 23, 30, 0),
]


class TestHourSlots:
    def test_daily2am_exactly_on_slot_advances_a_day(self):
        assert next_run("daily2am", datetime(2024, 1, 1, 2, 0, 0)) == datetime(2024, 1, 2, 2, 0, 0)

    def test_daily2am_before_slot_same_day(self):
        assert next_run("daily2am", datetime(2024, 1, 1, 1, 15)) == datetime(2024, 1, 1, 2, 0)

    def test_daily2am_just_after_slot_goes_to_tomorrow(self):
        assert next_run("daily2am", datetime(2024, 1, 1, 2, 0, 1)) == datetime(2024, 1, 2, 2, 0)

    def test_every6hours_next_slot_same_day(self):
        assert next_run("every6hours", datetime(2024, 1, 1, 5, 0, 0)) == datetime(2024, 1, 1, 6, 0, 0)

    def test_every6hours_wraps_to_midnight(self):
        assert next_run("every6hours", datetime(2024, 1, 1, 23, 0, 0)) == datetime(2024, 1, 2, 0, 0, 0)

    def test_every6hours_mid_slot_skips_to_next(self):
        assert next_run("every6hours", datetime(2024, 1, 1, 6, 30)) == datetime(2024, 1, 1, 12, 0)

    def test_every12hours(self):
        assert next_run("every12hours", datetime(2024, 1, 1, 0, 0, 0)) == datetime(2024, 1, 1, 12, 0)
        assert next_run("every12hours", datetime(2024, 1, 1, 12, 0, 0)) == datetime(2024, 1, 2, 0, 0)

    def test_daily_rolls_over_month_and_year(self):
        assert next_run("daily", datetime(2024, 12, 31, 9, 0)) == datetime(2025, 1, 1, 0, 0)

    def test_accepts_enum(self):
        assert next_run(Schedule.DAILY, datetime(2024, 1, 1, 9, 0)) == datetime(2024, 1, 2, 0, 0)


class TestWeekly:
    def test_wednesday_goes_to_next_monday(self):
        assert next_run("weekly", datetime(2024, 1, 3, 14, 15)) == datetime(2024, 1, 8, 0, 0)

    def test_monday_midnight_exactly_advances_a_week(self):
        assert next_run("weekly", datetime(2024, 1, 1, 0, 0, 0)) == datetime(2024, 1, 8, 0, 0)

    def test_monday_after_midnight_goes_to_next_week(self):
        assert next_run("weekly", datetime(2024, 1, 1, 0, 0, 1)) == datetime(2024, 1, 8, 0, 0)

    def test_sunday_night_goes_to_next_day(self):
        assert next_run("weekly", datetime(2024, 1, 7, 23, 0)) == datetime(2024, 1, 8, 0, 0)


class TestProperties:
    @pytest.mark.parametrize("schedule", [s for s in Schedule if s is not Schedule.DISABLED])
    @pytest.mark.parametrize("now", SAMPLE_INSTANTS)
    def test_strictly_after_now_and_on_a_slot(self, schedule, now):
        result = next_run(schedule, now)

        assert result > now
        assert (result.minute, result.second, result.microsecond) == (0, 0, 0)
        if schedule is Schedule.WEEKLY:
            assert result.weekday() == 0 and result.hour == 0
            assert result - now <= timedelta(weeks=1)
        else:
            assert result.hour in HOUR_SLOTS[schedule]
            assert result - now <= timedelta(days=1)

    def test_disabled_never_fires(self):
        assert next_run("disabled", datetime(2024, 1, 1)) is None
        assert next_run_delay("disabled", datetime(2024, 1, 1)) is None

    def test_unknown_schedule_raises(self):
        with pytest.raises(UnknownScheduleError):
            next_run("hourly", datetime(2024, 1, 1))


class TestDelay:
    def test_delay_is_seconds_until_slot(self):
        assert next_run_delay("daily2am", datetime(2024, 1, 1, 1, 0, 0)) == 3600

    def test_delay_has_floor(self):
        assert next_run_delay("daily2am", datetime(2024, 1, 1, 1, 59, 30)) == MIN_DELAY_SECONDS


class TestLabel:
    def test_morning(self):
        assert format_next_run_label(datetime(2024, 1, 2, 2, 0)) == "Jan 2, 2:00am"

    def test_noon_and_midnight(self):
        assert format_next_run_label(datetime(2024, 3, 15, 12, 5)) == "Mar 15, 12:05pm"
        assert format_next_run_label(datetime(2024, 3, 15, 0, 0)) == "Mar 15, 12:00am"
