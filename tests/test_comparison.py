# tests/test_comparison.py

"""Tests for side-by-side player comparison."""

import pytest
from courtrank.constants import Role
from courtrank.exceptions import NonPlayerError, PlayerNotFoundError
from courtrank.services.comparison import compare
from courtrank.services.ingestion import apply_progress_event


@pytest.mark.asyncio
async def test_compare_reports_a_minus_b(db_session, make_player, make_event, now):
    """Test that every difference is player A minus player B."""
    # 1. ARRANGE
    a = await make_player("Alpha")
    b = await make_player("Bravo")
    await apply_progress_event(
        db_session, make_event(a.id, accuracy=90, calories_burned=300.5), now=now
    )
    await apply_progress_event(
        db_session, make_event(b.id, accuracy=60, calories_burned=100.25), now=now
    )

    # 2. ACT
    result = await compare(db_session, a.id, b.id)

    # 3. ASSERT
    assert result.player_a.player_name == "Alpha"
    assert result.player_b.player_name == "Bravo"
    diff = result.differences
    assert diff.points_diff == 19 - 16
    assert diff.weekly_diff == 3
    assert diff.monthly_diff == 3
    assert diff.accuracy_diff == 30.0
    assert diff.workouts_diff == 0
    assert diff.streak_diff == 0
    assert diff.calories_diff == 200.25


@pytest.mark.asyncio
async def test_compare_with_player_without_entry(
    db_session, make_player, make_event, now
):
    """A player with no events compares as an all-zero entry."""
    active = await make_player("Active")
    idle = await make_player("Idle", team_id="hawks")
    await apply_progress_event(db_session, make_event(active.id), now=now)

    result = await compare(db_session, idle.id, active.id)

    assert result.player_a.points == 0
    assert result.player_a.team_id == "hawks"
    assert result.differences.points_diff == -10
    assert result.differences.workouts_diff == -1


@pytest.mark.asyncio
async def test_compare_rejects_coach(db_session, make_player):
    player = await make_player("Player")
    coach = await make_player("Coach", role=Role.COACH)

    with pytest.raises(NonPlayerError):
        await compare(db_session, player.id, coach.id)


@pytest.mark.asyncio
async def test_compare_unknown_player(db_session, make_player):
    player = await make_player("Alone")

    with pytest.raises(PlayerNotFoundError):
        await compare(db_session, player.id, 999)
