# src/courtrank/scoring/points.py

"""
Points calculator: maps one progress event to point and streak deltas.

This module is pure. It reads the player's current streak state and
returns what should change; persisting the result is the caller's job.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Protocol

from courtrank.constants import Window
from courtrank.scoring.windows import as_utc, in_current_window


@dataclass(frozen=True)
class ScoringPolicy:
    """Adjustable point constants."""

    completion_points: int = 10
    # accuracy bonus = round(accuracy / divisor), 0-10 for percentages
    accuracy_divisor: float = 10.0
    # duration bonus = floor(minutes / step), capped
    duration_step_minutes: float = 10.0
    max_duration_bonus: int = 5


DEFAULT_POLICY = ScoringPolicy()


class ScorableEvent(Protocol):
    """The fields of a progress event the calculator reads."""

    completed: bool
    accuracy: float | None
    duration_min: float
    occurred_at: datetime


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None


@dataclass(frozen=True)
class StreakUpdate:
    """Streak state after the event, plus whether it moved."""

    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    changed: bool

    @property
    def state(self) -> StreakState:
        return StreakState(
            self.current_streak, self.longest_streak, self.last_activity_date
        )


@dataclass(frozen=True)
class PointsDelta:
    points_delta: int
    weekly_delta: int
    monthly_delta: int
    streak: StreakUpdate


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def base_points(event: ScorableEvent, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    """Points earned by an event regardless of which windows it lands in."""
    points = policy.completion_points if event.completed else 0

    if event.accuracy is not None:
        points += _round_half_up(event.accuracy / policy.accuracy_divisor)

    duration_bonus = int(math.floor(event.duration_min / policy.duration_step_minutes))
    points += min(max(duration_bonus, 0), policy.max_duration_bonus)

    return points


def advance_streak(state: StreakState, event: ScorableEvent) -> StreakUpdate:
    """Apply one event to the streak.

    Only completed workouts count toward a streak. Events dated before
    the last activity day are late arrivals and leave the streak alone.
    """
    unchanged = StreakUpdate(
        state.current_streak, state.longest_streak, state.last_activity_date, False
    )
    if not event.completed:
        return unchanged

    day = as_utc(event.occurred_at).date()
    last = state.last_activity_date

    # Same day: already counted. Earlier day: late arrival.
    if last is not None and day <= last:
        return unchanged

    if last is not None and day == last + timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return StreakUpdate(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_activity_date=day,
        changed=True,
    )


def calculate_delta(
    event: ScorableEvent,
    state: StreakState,
    now: datetime,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> PointsDelta:
    """Compute the point and streak deltas for one event.

    Weekly and monthly deltas are only credited when the event falls in
    the window containing ``now``; a late event for a past window adds to
    the all-time total only.
    """
    points = base_points(event, policy)
    weekly = points if in_current_window(Window.WEEKLY, event.occurred_at, now) else 0
    monthly = (
        points if in_current_window(Window.MONTHLY, event.occurred_at, now) else 0
    )
    return PointsDelta(
        points_delta=points,
        weekly_delta=weekly,
        monthly_delta=monthly,
        streak=advance_streak(state, event),
    )
