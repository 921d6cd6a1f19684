# tests/test_api_players.py

"""Tests for the player directory API and its leaderboard propagation."""

import pytest
from courtrank.db.models import LeaderboardEntry
from courtrank.services.ingestion import apply_progress_event
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_player(async_client: AsyncClient, admin, headers_for):
    """Test creating a new player via the API."""
    # 1. ACT: Make the API request
    response = await async_client.post(
        "/players/",
        json={"name": "Jordan", "skill_level": "advanced", "team_id": "bulls"},
        headers=headers_for(admin),
    )

    # 2. ASSERT: Check the response
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Jordan"
    assert data["role"] == "player"
    assert data["skill_level"] == "advanced"
    assert data["team_id"] == "bulls"
    assert data["is_active"] is True
    assert "id" in data


@pytest.mark.asyncio
async def test_create_duplicate_player_returns_409(
    async_client: AsyncClient, admin, headers_for, make_player
):
    await make_player("Taken")

    response = await async_client.post(
        "/players/", json={"name": "Taken"}, headers=headers_for(admin)
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_read_players_paginated(
    async_client: AsyncClient, admin, headers_for, make_player
):
    for name in ("b_player", "a_player", "c_player"):
        await make_player(name)

    response = await async_client.get(
        "/players/",
        params={"limit": 2, "sort_by": "name"},
        headers=headers_for(admin),
    )

    assert response.status_code == 200
    data = response.json()
    # Admin plus three players
    assert data["total"] == 4
    assert data["has_more"] is True
    assert [p["name"] for p in data["items"]] == ["Admin", "a_player"]


@pytest.mark.asyncio
async def test_read_single_player(async_client: AsyncClient, make_player, headers_for):
    player = await make_player("Solo", team_id="hawks")

    response = await async_client.get(
        f"/players/{player.id}", headers=headers_for(player)
    )

    assert response.status_code == 200
    assert response.json()["team_id"] == "hawks"


@pytest.mark.asyncio
async def test_update_team_moves_leaderboard_entry(
    async_client: AsyncClient,
    db_session,
    admin,
    headers_for,
    make_player,
    make_event,
    now,
):
    """Test that a team change through the API reaches the leaderboard entry."""
    # 1. ARRANGE: A player with an entry on the hawks.
    player = await make_player("Trader", team_id="hawks")
    await apply_progress_event(db_session, make_event(player.id), now=now)

    # 2. ACT
    response = await async_client.put(
        f"/players/{player.id}",
        json={"team_id": "bulls", "skill_level": "expert"},
        headers=headers_for(admin),
    )

    # 3. ASSERT
    assert response.status_code == 200
    assert response.json()["team_id"] == "bulls"
    entry = await LeaderboardEntry.find_by_player(db_session, player.id)
    assert entry.team_id == "bulls"
    assert entry.skill_level == "expert"

    team_page = await async_client.get(
        "/leaderboard/team/bulls", headers=headers_for(admin)
    )
    assert [i["entry"]["player_id"] for i in team_page.json()["items"]] == [player.id]


@pytest.mark.asyncio
async def test_delete_player_deactivates_entry(
    async_client: AsyncClient,
    db_session,
    admin,
    headers_for,
    make_player,
    make_event,
    now,
):
    player = await make_player("Retiring")
    await apply_progress_event(db_session, make_event(player.id), now=now)

    response = await async_client.delete(
        f"/players/{player.id}", headers=headers_for(admin)
    )

    assert response.status_code == 204
    entry = await LeaderboardEntry.find_by_player(db_session, player.id)
    assert entry.is_active is False
    assert entry.points == 10

    board = await async_client.get("/leaderboard", headers=headers_for(admin))
    assert board.json()["total"] == 0

    # A deactivated account can no longer authenticate
    own = await async_client.get("/leaderboard", headers=headers_for(player))
    assert own.status_code == 401
