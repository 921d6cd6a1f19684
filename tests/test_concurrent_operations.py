# tests/test_concurrent_operations.py

"""Tests for parallel writers on the same leaderboard entry.

Each writer uses its own session on a shared SQLite file, so version
checks and the processed-event ledger are exercised across connections.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from courtrank.constants import ResetTrigger, ResetWindow
from courtrank.db.models import LeaderboardEntry, ProcessedEvent, ResetMarker
from courtrank.services.ingestion import apply_progress_event
from courtrank.services.resets import reset_window
from sqlalchemy import func, select

# =============================================================================
# Helper Functions
# =============================================================================


async def apply_in_own_session(session_factory, event, now):
    """Helper to apply one event the way a separate worker would."""
    async with session_factory() as session:
        return await apply_progress_event(session, event, now=now, max_attempts=20)


# =============================================================================
# Parallel ingestion
# =============================================================================


@pytest.mark.asyncio
async def test_parallel_events_for_same_player_lose_no_points(
    db_session, session_factory, make_player, make_event, now
):
    """Test that N parallel events add exactly N deltas."""
    # 1. ARRANGE: A player with no entry yet, so creation races too.
    player = await make_player("Popular")
    events = [make_event(player.id, duration_min=10) for _ in range(5)]

    # 2. ACT
    results = await asyncio.gather(
        *(apply_in_own_session(session_factory, e, now) for e in events)
    )

    # 3. ASSERT
    assert all(r.applied for r in results)
    entry = await LeaderboardEntry.find_by_player(db_session, player.id)
    assert entry.points == 5 * 11
    assert entry.weekly_points == 5 * 11
    assert entry.total_workouts_completed == 5
    ledger = select(func.count()).select_from(ProcessedEvent)
    assert (await db_session.execute(ledger)).scalar_one() == 5


@pytest.mark.asyncio
async def test_parallel_replays_of_one_event_count_once(
    db_session, session_factory, make_player, make_event, now
):
    player = await make_player("Echo")
    event = make_event(player.id)

    results = await asyncio.gather(
        *(apply_in_own_session(session_factory, event, now) for _ in range(4))
    )

    assert sum(r.applied for r in results) == 1
    entry = await LeaderboardEntry.find_by_player(db_session, player.id)
    assert entry.points == 10


@pytest.mark.asyncio
async def test_parallel_manual_resets_reset_once(
    db_session, session_factory, make_player, make_event, now
):
    player = await make_player("ResetTarget")
    await apply_progress_event(db_session, make_event(player.id), now=now)
    before = (await LeaderboardEntry.find_by_player(db_session, player.id)).version

    async def reset_in_own_session():
        async with session_factory() as session:
            return await reset_window(
                session, ResetWindow.WEEKLY, ResetTrigger.MANUAL, now=now
            )

    results = await asyncio.gather(*(reset_in_own_session() for _ in range(3)))

    assert sum(r.performed for r in results) == 1
    entry = await LeaderboardEntry.find_by_player(db_session, player.id)
    assert entry.weekly_points == 0
    assert entry.version == before + 1


@pytest.mark.asyncio
async def test_scheduled_and_manual_reset_at_boundary_reset_once(
    db_session, session_factory, make_player, make_event, now
):
    """Test that a cron run and an admin reset racing on a stale marker reset once."""
    # 1. ARRANGE: Last week's marker is in place and a player holds W42 points.
    player = await make_player("Boundary")
    await apply_progress_event(db_session, make_event(player.id), now=now)
    db_session.add(
        ResetMarker(
            window=ResetWindow.WEEKLY.value,
            period_key="2026-W42",
            reset_at=datetime(2026, 10, 12, tzinfo=timezone.utc),
            trigger=ResetTrigger.SCHEDULED.value,
            affected=0,
            claims=1,
        )
    )
    await db_session.commit()
    before = (await LeaderboardEntry.find_by_player(db_session, player.id)).version
    monday = datetime(2026, 10, 19, 0, 0, 5, tzinfo=timezone.utc)

    async def reset_in_own_session(trigger):
        async with session_factory() as session:
            return await reset_window(session, ResetWindow.WEEKLY, trigger, now=monday)

    # 2. ACT
    results = await asyncio.gather(
        reset_in_own_session(ResetTrigger.SCHEDULED),
        reset_in_own_session(ResetTrigger.MANUAL),
    )

    # 3. ASSERT
    assert sum(r.performed for r in results) == 1
    entry = await LeaderboardEntry.find_by_player(db_session, player.id)
    assert entry.weekly_points == 0
    assert entry.version == before + 1
    marker = await db_session.get(ResetMarker, "weekly", populate_existing=True)
    assert marker.period_key == "2026-W43"
    assert marker.claims == 2
