# src/courtrank/services/resets.py

"""
Weekly and monthly window resets.

A reset zeroes one windowed points field in a single bulk UPDATE that
also bumps ``version``. Any apply-delta that read an entry before the
reset then fails its version check, re-reads the zeroed row and
re-applies its delta, so no in-flight event is lost.

Writes roll a window over on their own (see ``ingestion``), so a
scheduled reset only zeroes entries whose period key is older than the
current period; points scored in the new period before the job ran are
kept. A manual reset zeroes every entry.

A per-window ``ResetMarker`` makes resets idempotent:

- a scheduled reset is skipped when the marker already holds the
  current period key, whichever worker or trigger set it
- a manual reset is skipped when the marker's last reset is within
  ``settings.reset_guard_seconds`` (covers double-clicks and retries);
  a marker that catch-up only initialised records no reset

The marker is claimed with a conditional UPDATE before any entry is
touched, in the same transaction as the zeroing. Of two resets that
passed the guard on the same marker state, the second claim matches no
row, is rolled back, and re-runs the guard against the new marker.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from courtrank.config import settings
from courtrank.constants import ResetTrigger, ResetWindow, Window
from courtrank.db import models
from courtrank.db.models import utcnow
from courtrank.schemas.leaderboard import ResetResult
from courtrank.scoring.windows import as_utc, period_key
from courtrank.services.base import retry_on_conflict
from courtrank.services.ranking import PERIOD_KEY_FIELDS, WINDOW_FIELDS

logger = logging.getLogger(__name__)


def _is_guarded(
    marker: models.ResetMarker,
    trigger: ResetTrigger,
    current_key: str,
    now: datetime,
) -> bool:
    if trigger == ResetTrigger.SCHEDULED:
        return marker.period_key == current_key
    # An initialised marker records no reset
    if marker.claims == 0:
        return False
    guard = timedelta(seconds=settings.reset_guard_seconds)
    return now - as_utc(marker.reset_at) < guard


def _skipped(
    window: ResetWindow, marker: models.ResetMarker, trigger: ResetTrigger
) -> ResetResult:
    return ResetResult(
        window=window,
        performed=False,
        affected=0,
        period_key=marker.period_key,
        reset_at=as_utc(marker.reset_at),
        trigger=trigger,
    )


async def _claim_marker(
    db: AsyncSession,
    window: ResetWindow,
    marker: models.ResetMarker | None,
    trigger: ResetTrigger,
    current_key: str,
    now: datetime,
) -> None:
    """Record this reset on the marker as read, or raise a conflict.

    Raises:
        IntegrityError: Another reset created the missing marker first
        StaleDataError: Another reset claimed the marker since it was read
    """
    if marker is None:
        db.add(
            models.ResetMarker(
                window=window.value,
                period_key=current_key,
                reset_at=now,
                trigger=trigger.value,
                affected=0,
                claims=1,
            )
        )
        await db.flush()
        return

    result = await db.execute(
        update(models.ResetMarker)
        .where(
            models.ResetMarker.window == window.value,
            models.ResetMarker.claims == marker.claims,
        )
        .values(
            period_key=current_key,
            reset_at=now,
            trigger=trigger.value,
            claims=marker.claims + 1,
        )
    )
    if result.rowcount == 0:
        raise StaleDataError(f"Reset marker '{window.value}' was claimed concurrently")


async def reset_window(
    db: AsyncSession,
    window: ResetWindow,
    trigger: ResetTrigger = ResetTrigger.MANUAL,
    now: datetime | None = None,
) -> ResetResult:
    """
    Zero a window's points, unless the marker guard skips it.

    Applying this twice in a row leaves the same state as applying it
    once; the second call reports ``performed=False``.

    Args:
        db: Database session
        window: Weekly or monthly
        trigger: Manual (admin endpoint) or scheduled (cron, catch-up)
        now: Reference time (defaults to current UTC)
    """
    now = as_utc(now or utcnow())
    current_key = period_key(window, now)
    field = WINDOW_FIELDS[Window(window.value)]
    key_field = PERIOD_KEY_FIELDS[window]

    async def attempt(_: int) -> ResetResult:
        marker = await db.get(
            models.ResetMarker, window.value, populate_existing=True
        )
        if marker is not None and _is_guarded(marker, trigger, current_key, now):
            return _skipped(window, marker, trigger)

        await _claim_marker(db, window, marker, trigger, current_key, now)

        query = update(models.LeaderboardEntry)
        if trigger == ResetTrigger.SCHEDULED:
            query = query.where(or_(key_field.is_(None), key_field != current_key))
        result = await db.execute(
            query.values(
                {
                    field: 0,
                    key_field: current_key,
                    models.LeaderboardEntry.version: models.LeaderboardEntry.version
                    + 1,
                }
            )
        )
        affected = result.rowcount

        await db.execute(
            update(models.ResetMarker)
            .where(models.ResetMarker.window == window.value)
            .values(affected=affected)
        )
        await db.commit()

        return ResetResult(
            window=window,
            performed=True,
            affected=affected,
            period_key=current_key,
            reset_at=now,
            trigger=trigger,
        )

    result = await retry_on_conflict(
        db, attempt, attempts=settings.apply_max_attempts, label="reset_window"
    )

    if result.performed:
        logger.info(
            f"{window.value.capitalize()} points reset",
            extra={
                "window": window.value,
                "trigger": trigger.value,
                "period_key": current_key,
                "affected": result.affected,
            },
        )
    else:
        logger.info(
            "Window reset skipped by guard",
            extra={
                "window": window.value,
                "trigger": trigger.value,
                "period_key": result.period_key,
            },
        )
    return result


async def catch_up_resets(
    db: AsyncSession, now: datetime | None = None
) -> list[ResetResult]:
    """
    Run resets missed while the service was down or the scheduler was late.

    A window whose marker names an older period is reset now. A window
    with no marker yet gets one for the current period without a reset.
    Called on startup and before windowed reads; concurrent callers reset
    each window at most once.
    """
    now = as_utc(now or utcnow())
    results = []

    for window in ResetWindow:
        current_key = period_key(window, now)
        marker = await db.get(
            models.ResetMarker, window.value, populate_existing=True
        )

        if marker is None:
            db.add(
                models.ResetMarker(
                    window=window.value,
                    period_key=current_key,
                    reset_at=now,
                    trigger=ResetTrigger.SCHEDULED.value,
                    affected=0,
                    claims=0,
                )
            )
            try:
                await db.commit()
            except IntegrityError:
                # Another caller initialised it first
                await db.rollback()
                continue
            logger.info(
                "Reset marker initialised",
                extra={"window": window.value, "period_key": current_key},
            )
            continue

        if marker.period_key != current_key:
            logger.warning(
                "Missed window reset detected, catching up",
                extra={
                    "window": window.value,
                    "last_period": marker.period_key,
                    "period_key": current_key,
                },
            )
            result = await reset_window(db, window, ResetTrigger.SCHEDULED, now)
            if result.performed:
                results.append(result)

    return results
