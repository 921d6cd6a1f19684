# tests/test_ranking.py

"""Tests for rank resolution, listings and the stored rank snapshot."""

from datetime import datetime, timezone

import pytest
from courtrank.constants import ResetWindow, Role, SkillLevel, TopMetric, Window
from courtrank.db.models import LeaderboardEntry
from courtrank.exceptions import InvalidPaginationError, InvalidScopeError
from courtrank.schemas.player import PlayerProfileChanged
from courtrank.services import ranking
from courtrank.services.ingestion import apply_progress_event
from courtrank.services.profiles import apply_profile_change
from courtrank.services.ranking import GLOBAL, Scope

UTC = timezone.utc


@pytest.fixture
async def roster(db_session, make_player, make_event, now):
    """
    Six accounts with known standings.

    all-time: dana 20, ava 19 (acc 90), ben 19 (acc 90), cal 19 (acc 50), eli 10
    weekly:   ava 19, ben 19, cal 19, eli 10 (dana's event was last week)
    """
    ava = await make_player("ava", skill_level=SkillLevel.ADVANCED, team_id="hawks")
    ben = await make_player("ben", skill_level=SkillLevel.ADVANCED, team_id="bulls")
    cal = await make_player("cal", skill_level=SkillLevel.BEGINNER, team_id="hawks")
    dana = await make_player("dana", skill_level=SkillLevel.EXPERT, team_id="bulls")
    eli = await make_player("eli", skill_level=SkillLevel.BEGINNER)
    coach = await make_player("coach", role=Role.COACH, team_id="hawks")

    await apply_progress_event(db_session, make_event(ava.id, accuracy=90), now=now)
    await apply_progress_event(db_session, make_event(ben.id, accuracy=90), now=now)
    await apply_progress_event(
        db_session, make_event(cal.id, accuracy=50, duration_min=40), now=now
    )
    await apply_progress_event(
        db_session,
        make_event(
            dana.id, accuracy=100, occurred_at=datetime(2026, 10, 8, 12, tzinfo=UTC)
        ),
        now=now,
    )
    await apply_progress_event(db_session, make_event(eli.id), now=now)

    return {
        "ava": ava,
        "ben": ben,
        "cal": cal,
        "dana": dana,
        "eli": eli,
        "coach": coach,
    }


async def names_in_order(db, scope=GLOBAL, window=Window.ALL_TIME) -> list[str]:
    page = await ranking.list_leaderboard(db, scope, window, page=1, page_size=100)
    return [item.entry.player_name for item in page.items]


# =============================================================================
# Ordering
# =============================================================================


@pytest.mark.asyncio
async def test_global_all_time_order(db_session, roster):
    assert await names_in_order(db_session) == ["dana", "ava", "ben", "cal", "eli"]


@pytest.mark.asyncio
async def test_weekly_order_uses_weekly_points(db_session, roster):
    names = await names_in_order(db_session, window=Window.WEEKLY)

    # dana has 0 weekly points but is still listed, last
    assert names == ["ava", "ben", "cal", "eli", "dana"]


@pytest.mark.asyncio
async def test_tie_break_is_deterministic(db_session, roster):
    """Equal points and accuracy: the earlier-registered player always wins."""
    orders = [await names_in_order(db_session) for _ in range(5)]

    assert all(order == orders[0] for order in orders)
    assert orders[0].index("ava") < orders[0].index("ben")


@pytest.mark.asyncio
async def test_team_and_skill_scopes_filter_entries(db_session, roster):
    assert await names_in_order(db_session, Scope.team("hawks")) == ["ava", "cal"]
    assert await names_in_order(db_session, Scope.skill("beginner")) == ["cal", "eli"]


# =============================================================================
# Rank lookups
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("window", list(Window))
async def test_rank_matches_list_position(db_session, roster, window):
    """Test that get_rank equals 1 + index in the listing for every scope."""
    scopes = [GLOBAL, Scope.team("hawks"), Scope.team("bulls"), Scope.skill("beginner")]

    for scope in scopes:
        page = await ranking.list_leaderboard(db_session, scope, window, 1, 100)
        for index, item in enumerate(page.items):
            result = await ranking.get_rank(
                db_session, item.entry.player_id, window, scope
            )
            assert result.rank == index + 1 == item.rank
            assert result.total_in_scope == page.total


@pytest.mark.asyncio
async def test_coach_gets_non_player_result(db_session, roster):
    result = await ranking.get_rank(db_session, roster["coach"].id)

    assert result.is_non_player is True
    assert result.rank is None
    assert "player" in result.message


@pytest.mark.asyncio
async def test_player_without_events_gets_implicit_zero_rank(
    db_session, roster, make_player
):
    newcomer = await make_player("newcomer")

    result = await ranking.get_rank(db_session, newcomer.id)

    # Behind the five scoring players, counted in the total
    assert result.rank == 6
    assert result.total_in_scope == 6
    assert await LeaderboardEntry.find_by_player(db_session, newcomer.id) is None


@pytest.mark.asyncio
async def test_deactivated_player_has_no_rank(db_session, roster):
    ava = roster["ava"]
    await apply_profile_change(
        db_session, PlayerProfileChanged(player_id=ava.id, is_active=False)
    )

    result = await ranking.get_rank(db_session, ava.id)

    assert result.rank is None
    assert "ava" not in await names_in_order(db_session)
    # ben moves up into ava's place
    assert (await ranking.get_rank(db_session, roster["ben"].id)).rank == 2


@pytest.mark.asyncio
async def test_player_outside_scope_has_no_rank(db_session, roster):
    result = await ranking.get_rank(
        db_session, roster["eli"].id, Window.ALL_TIME, Scope.team("hawks")
    )

    assert result.rank is None
    assert result.total_in_scope == 2


@pytest.mark.asyncio
async def test_player_rank_includes_nearby(db_session, roster):
    result = await ranking.player_rank(db_session, roster["eli"].id)

    assert result.rank.rank == 5
    assert result.entry.player_name == "eli"
    # Three above, none below
    assert [n.entry.player_name for n in result.nearby] == ["ava", "ben", "cal", "eli"]
    assert [n.rank for n in result.nearby] == [2, 3, 4, 5]


# =============================================================================
# Pagination and validation
# =============================================================================


@pytest.mark.asyncio
async def test_pages_do_not_overlap(db_session, roster):
    first = await ranking.list_leaderboard(db_session, GLOBAL, Window.ALL_TIME, 1, 2)
    second = await ranking.list_leaderboard(db_session, GLOBAL, Window.ALL_TIME, 2, 2)
    third = await ranking.list_leaderboard(db_session, GLOBAL, Window.ALL_TIME, 3, 2)

    ids = [i.entry.player_id for p in (first, second, third) for i in p.items]
    assert len(ids) == len(set(ids)) == 5
    assert [i.rank for i in second.items] == [3, 4]
    assert first.has_more is True
    assert third.has_more is False
    assert first.pages == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (1, 101), (-1, 5)])
async def test_invalid_pagination_is_rejected(db_session, page, page_size):
    with pytest.raises(InvalidPaginationError):
        await ranking.list_leaderboard(db_session, GLOBAL, Window.ALL_TIME, page, page_size)


def test_unknown_skill_level_is_rejected():
    with pytest.raises(InvalidScopeError):
        Scope.skill("legendary")


def test_empty_team_id_is_rejected():
    with pytest.raises(InvalidScopeError):
        Scope.team("")


# =============================================================================
# Snapshot, top performers, period standings
# =============================================================================


@pytest.mark.asyncio
async def test_recompute_rank_snapshot_tracks_previous_rank(
    db_session, roster, make_event, now
):
    """Test that a second recompute records movement in previous_rank."""
    # 1. ARRANGE / ACT: First snapshot.
    first = await ranking.recompute_rank_snapshot(db_session)
    assert first.total_entries == 5
    assert first.updated == 5

    # eli jumps to the top and the snapshot is recomputed
    for _ in range(2):
        await apply_progress_event(
            db_session, make_event(roster["eli"].id, accuracy=100), now=now
        )
    second = await ranking.recompute_rank_snapshot(db_session)

    # 3. ASSERT
    entry = await LeaderboardEntry.find_by_player(db_session, roster["eli"].id)
    assert entry.rank == 1
    assert entry.previous_rank == 5
    assert entry.rank_change == 4
    assert second.updated == 5


@pytest.mark.asyncio
async def test_top_performers_by_accuracy(db_session, roster):
    top = await ranking.top_performers(db_session, TopMetric.AVG_ACCURACY, limit=2)

    assert [t.entry.player_name for t in top] == ["dana", "ava"]


@pytest.mark.asyncio
async def test_window_history_lists_only_scorers(db_session, roster):
    weekly = await ranking.window_history(db_session, ResetWindow.WEEKLY)

    assert [w.entry.player_name for w in weekly] == ["ava", "ben", "cal", "eli"]
