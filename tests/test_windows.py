# tests/test_windows.py

"""Unit tests for UTC window boundaries and period keys."""

from datetime import datetime, timedelta, timezone

from courtrank.constants import ResetWindow, Window
from courtrank.scoring.windows import (
    in_current_window,
    month_bounds,
    period_key,
    week_bounds,
)

UTC = timezone.utc


def test_week_starts_monday_midnight_utc():
    start, end = week_bounds(datetime(2026, 10, 17, 15, 30, tzinfo=UTC))

    assert start == datetime(2026, 10, 12, tzinfo=UTC)
    assert start.weekday() == 0
    assert end - start == timedelta(days=7)


def test_week_bounds_convert_other_timezones_to_utc():
    # Monday 01:00 at UTC+2 is still Sunday in UTC
    local = timezone(timedelta(hours=2))
    start, _ = week_bounds(datetime(2026, 10, 12, 1, 0, tzinfo=local))

    assert start == datetime(2026, 10, 5, tzinfo=UTC)


def test_december_month_rolls_into_next_year():
    start, end = month_bounds(datetime(2026, 12, 31, 23, 59, tzinfo=UTC))

    assert start == datetime(2026, 12, 1, tzinfo=UTC)
    assert end == datetime(2027, 1, 1, tzinfo=UTC)


def test_all_time_window_contains_everything():
    now = datetime(2026, 10, 17, tzinfo=UTC)
    assert in_current_window(Window.ALL_TIME, datetime(2001, 1, 1), now)


def test_window_end_is_exclusive():
    now = datetime(2026, 10, 17, tzinfo=UTC)
    next_monday = datetime(2026, 10, 19, tzinfo=UTC)

    assert not in_current_window(Window.WEEKLY, next_monday, now)
    assert in_current_window(Window.WEEKLY, next_monday - timedelta(microseconds=1), now)


def test_period_keys():
    now = datetime(2026, 10, 17, tzinfo=UTC)

    assert period_key(ResetWindow.WEEKLY, now) == "2026-W42"
    assert period_key(ResetWindow.MONTHLY, now) == "2026-10"


def test_iso_week_key_uses_iso_year():
    # 2027-01-01 is a Friday and belongs to ISO week 53 of 2026
    assert period_key(ResetWindow.WEEKLY, datetime(2027, 1, 1, tzinfo=UTC)) == "2026-W53"
