# src/courtrank/services/ingestion.py

"""Idempotent application of progress events to leaderboard entries."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.config import settings
from courtrank.constants import RECENT_WORKOUTS_LIMIT, ResetWindow, Window
from courtrank.db import models
from courtrank.db.models import utcnow
from courtrank.exceptions import ConcurrentUpdateExhaustedError
from courtrank.schemas.leaderboard import LeaderboardEntryRead
from courtrank.schemas.progress import ApplyResult, ProgressEventCreate
from courtrank.scoring.points import (
    DEFAULT_POLICY,
    PointsDelta,
    ScoringPolicy,
    StreakState,
    calculate_delta,
)
from courtrank.scoring.windows import as_utc, period_key
from courtrank.services.achievements import evaluate_entry
from courtrank.services.base import (
    CONFLICT_ERRORS,
    get_ranked_player,
    retry_on_conflict,
)
from courtrank.services.ranking import PERIOD_KEY_FIELDS, WINDOW_FIELDS

logger = logging.getLogger(__name__)


async def _find_processed(
    db: AsyncSession, event_id: str
) -> models.ProcessedEvent | None:
    query = select(models.ProcessedEvent).where(
        models.ProcessedEvent.event_id == event_id
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _duplicate_result(
    db: AsyncSession, event: ProgressEventCreate, attempts: int = 1
) -> ApplyResult | None:
    """A replay result if ``event`` is already in the ledger, else None."""
    processed = await _find_processed(db, event.event_id)
    if processed is None:
        return None

    logger.info(
        "Duplicate progress event ignored",
        extra={"event_id": event.event_id, "player_id": processed.player_id},
    )
    entry = await models.LeaderboardEntry.find_by_player(db, processed.player_id)
    return ApplyResult(
        event_id=event.event_id,
        player_id=processed.player_id,
        applied=False,
        duplicate=True,
        attempts=attempts,
        entry=LeaderboardEntryRead.model_validate(entry) if entry else None,
    )


async def _load_or_create_entry(
    db: AsyncSession, player: models.Player, now: datetime
) -> models.LeaderboardEntry:
    """
    Fetch the player's entry, creating a zeroed one on first write.

    The new row is flushed immediately so that a concurrent first write
    for the same player surfaces as an IntegrityError on the unique
    player_id and goes through the normal retry path.
    """
    entry = await models.LeaderboardEntry.find_by_player(db, player.id)
    if entry is not None:
        return entry

    entry = models.LeaderboardEntry(
        player_id=player.id,
        player_name=player.name,
        skill_level=player.skill_level,
        team_id=player.team_id,
        is_active=player.is_active,
        points=0,
        weekly_points=0,
        monthly_points=0,
        weekly_period_key=period_key(ResetWindow.WEEKLY, now),
        monthly_period_key=period_key(ResetWindow.MONTHLY, now),
        total_events=0,
        total_workouts_completed=0,
        total_duration=0.0,
        total_calories_burned=0.0,
        avg_accuracy=0.0,
        accuracy_samples=0,
        best_accuracy=0.0,
        most_shots_in_session=0,
        longest_workout=0.0,
        most_calories_in_session=0.0,
        recent_workouts=[],
        current_streak=0,
        longest_streak=0,
        rank=0,
        previous_rank=0,
        achievements=[],
    )
    db.add(entry)
    await db.flush()
    logger.debug("Created LeaderboardEntry", extra={"player_id": player.id})
    return entry


def _roll_over_windows(entry: models.LeaderboardEntry, now: datetime) -> None:
    """Zero windowed totals that belong to a period before ``now``'s.

    A window is rolled over by the first write of a new period even if
    the scheduled reset has not run yet. A missing key (rows created
    before keys were tracked) is adopted without zeroing.
    """
    for window in ResetWindow:
        current_key = period_key(window, now)
        key_attr = PERIOD_KEY_FIELDS[window].key
        stored_key = getattr(entry, key_attr)
        if stored_key == current_key:
            continue
        if stored_key is not None:
            setattr(entry, WINDOW_FIELDS[Window(window.value)].key, 0)
            logger.debug(
                "Window rolled over on write",
                extra={
                    "player_id": entry.player_id,
                    "window": window.value,
                    "last_period": stored_key,
                    "period_key": current_key,
                },
            )
        setattr(entry, key_attr, current_key)


def _fold_event(
    entry: models.LeaderboardEntry,
    event: ProgressEventCreate,
    delta: PointsDelta,
    now: datetime,
) -> None:
    """Mutate ``entry`` in place with one event's delta and aggregates."""
    _roll_over_windows(entry, now)
    entry.points += delta.points_delta
    entry.weekly_points += delta.weekly_delta
    entry.monthly_points += delta.monthly_delta

    entry.total_events += 1
    entry.total_duration += event.duration_min
    entry.total_calories_burned += event.calories_burned

    if event.completed:
        entry.total_workouts_completed += 1
        if event.accuracy is not None:
            # Running mean weighted by the samples already folded in
            samples = entry.accuracy_samples + 1
            entry.avg_accuracy = (
                entry.avg_accuracy * entry.accuracy_samples + event.accuracy
            ) / samples
            entry.accuracy_samples = samples
            entry.best_accuracy = max(entry.best_accuracy, event.accuracy)

    if event.shots_attempted is not None:
        entry.most_shots_in_session = max(
            entry.most_shots_in_session, event.shots_attempted
        )
    entry.longest_workout = max(entry.longest_workout, event.duration_min)
    entry.most_calories_in_session = max(
        entry.most_calories_in_session, event.calories_burned
    )

    # New list so the JSON column is marked dirty
    recent = {
        "event_id": event.event_id,
        "occurred_at": as_utc(event.occurred_at).isoformat(),
        "completed": event.completed,
        "accuracy": event.accuracy,
        "duration_min": event.duration_min,
    }
    entry.recent_workouts = [recent, *entry.recent_workouts][:RECENT_WORKOUTS_LIMIT]

    if delta.streak.changed:
        entry.current_streak = delta.streak.current_streak
        entry.longest_streak = delta.streak.longest_streak
        entry.last_activity_date = delta.streak.last_activity_date

    entry.last_event_id = event.event_id


async def _apply_once(
    db: AsyncSession,
    event: ProgressEventCreate,
    now: datetime,
    policy: ScoringPolicy,
    attempt: int,
) -> ApplyResult:
    """One read-modify-write pass. Raises a conflict error on lost races."""
    # A previous attempt may have lost to a writer of this same event
    replay = await _duplicate_result(db, event, attempts=attempt)
    if replay is not None:
        return replay

    player = await get_ranked_player(db, event.player_id)
    entry = await _load_or_create_entry(db, player, now)

    state = StreakState(
        current_streak=entry.current_streak,
        longest_streak=entry.longest_streak,
        last_activity_date=entry.last_activity_date,
    )
    delta = calculate_delta(event, state, now, policy)
    _fold_event(entry, event, delta, now)

    db.add(
        models.ProcessedEvent(
            event_id=event.event_id,
            player_id=player.id,
            points_delta=delta.points_delta,
            weekly_delta=delta.weekly_delta,
            monthly_delta=delta.monthly_delta,
            completed=event.completed,
            accuracy=event.accuracy,
            shots_attempted=event.shots_attempted,
            occurred_at=as_utc(event.occurred_at),
        )
    )
    # Entry UPDATE (version-checked) and ledger INSERT commit together
    await db.commit()

    return ApplyResult(
        event_id=event.event_id,
        player_id=player.id,
        applied=True,
        points_delta=delta.points_delta,
        weekly_delta=delta.weekly_delta,
        monthly_delta=delta.monthly_delta,
        attempts=attempt,
        entry=LeaderboardEntryRead.model_validate(entry),
    )


async def apply_progress_event(
    db: AsyncSession,
    event: ProgressEventCreate,
    *,
    now: datetime | None = None,
    max_attempts: int | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> ApplyResult:
    """
    Apply one progress event to its player's leaderboard entry.

    This service is responsible for:
    1. Ignoring event ids already in the processed-event ledger
    2. Rejecting unknown players and coach/admin accounts
    3. Creating the entry on the player's first event
    4. Folding the points delta and aggregates into the entry, retrying
       on optimistic-lock conflicts
    5. Evaluating achievements once the points are committed

    Args:
        db: Database session
        event: The progress event
        now: Reference time for window membership (defaults to current UTC)
        max_attempts: Optimistic-lock attempts before giving up
        policy: Point constants

    Returns:
        ApplyResult describing what happened

    Raises:
        PlayerNotFoundError: If the player does not exist
        NonPlayerError: If the account is a coach or admin
        ConcurrentUpdateExhaustedError: If every attempt lost a version race
    """
    now = as_utc(now or utcnow())
    max_attempts = max_attempts or settings.apply_max_attempts

    replay = await _duplicate_result(db, event)
    if replay is not None:
        return replay

    # Validate before any write so a bad event never creates an entry
    await get_ranked_player(db, event.player_id)

    async def attempt(n: int) -> ApplyResult:
        return await _apply_once(db, event, now, policy, n)

    try:
        result = await retry_on_conflict(
            db, attempt, attempts=max_attempts, label="apply_progress_event"
        )
    except CONFLICT_ERRORS:
        replay = await _duplicate_result(db, event, attempts=max_attempts)
        if replay is not None:
            return replay
        logger.error(
            "Optimistic-lock retries exhausted",
            extra={
                "event_id": event.event_id,
                "player_id": event.player_id,
                "attempts": max_attempts,
            },
        )
        raise ConcurrentUpdateExhaustedError(
            event.player_id, event.event_id, max_attempts
        )

    if not result.applied:
        return result

    logger.info(
        "Progress event applied",
        extra={
            "event_id": event.event_id,
            "player_id": result.player_id,
            "points_delta": result.points_delta,
            "attempts": result.attempts,
        },
    )

    entry = await models.LeaderboardEntry.find_by_player(db, result.player_id)
    if entry is not None:
        awarded = await evaluate_entry(db, entry)
        if awarded:
            result.new_achievements = [a.type for a in awarded]
            result.entry = LeaderboardEntryRead.model_validate(entry)
    return result
