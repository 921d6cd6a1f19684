# src/courtrank/scoring/windows.py

"""UTC calendar windows used for weekly/monthly point buckets.

Weeks are ISO weeks starting Monday 00:00 UTC; months start on day 1
at 00:00 UTC. Naive datetimes are treated as UTC throughout.
"""

from datetime import datetime, timedelta, timezone

from courtrank.constants import ResetWindow, Window


def as_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def week_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of the ISO week containing ``now``."""
    now = as_utc(now)
    start = (now - timedelta(days=now.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return start, start + timedelta(days=7)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of the calendar month of ``now``."""
    now = as_utc(now)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def window_bounds(
    window: Window | ResetWindow, now: datetime
) -> tuple[datetime, datetime] | None:
    """Bounds of the current window, or None for all-time."""
    if window.value == Window.WEEKLY.value:
        return week_bounds(now)
    if window.value == Window.MONTHLY.value:
        return month_bounds(now)
    return None


def in_current_window(
    window: Window | ResetWindow, occurred_at: datetime, now: datetime
) -> bool:
    """Whether ``occurred_at`` falls inside the window that contains ``now``."""
    bounds = window_bounds(window, now)
    if bounds is None:
        return True
    start, end = bounds
    return start <= as_utc(occurred_at) < end


def period_key(window: ResetWindow, now: datetime) -> str:
    """Stable identifier of the period containing ``now``.

    >>> period_key(ResetWindow.WEEKLY, datetime(2026, 10, 17))
    '2026-W42'
    >>> period_key(ResetWindow.MONTHLY, datetime(2026, 10, 17))
    '2026-10'
    """
    now = as_utc(now)
    if window == ResetWindow.WEEKLY:
        iso_year, iso_week, _ = now.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{now.year}-{now.month:02d}"
