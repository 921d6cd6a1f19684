# src/courtrank/services/comparison.py

"""Side-by-side comparison of two players' leaderboard entries."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.db import models
from courtrank.schemas.leaderboard import (
    Comparison,
    ComparisonDiff,
    LeaderboardEntryRead,
)
from courtrank.services.base import get_ranked_player


async def entry_snapshot(db: AsyncSession, player_id: int) -> LeaderboardEntryRead:
    """The player's entry, or an all-zero snapshot if they have none yet.

    Raises:
        PlayerNotFoundError: If the player does not exist
        NonPlayerError: If the account is a coach or admin
    """
    player = await get_ranked_player(db, player_id)
    entry = await models.LeaderboardEntry.find_by_player(db, player_id)
    if entry is None:
        return LeaderboardEntryRead.zero_for(player)
    return LeaderboardEntryRead.model_validate(entry)


def diff(a: LeaderboardEntryRead, b: LeaderboardEntryRead) -> ComparisonDiff:
    """Field-wise ``a - b``."""
    return ComparisonDiff(
        points_diff=a.points - b.points,
        weekly_diff=a.weekly_points - b.weekly_points,
        monthly_diff=a.monthly_points - b.monthly_points,
        accuracy_diff=round(a.avg_accuracy - b.avg_accuracy, 2),
        workouts_diff=a.total_workouts_completed - b.total_workouts_completed,
        streak_diff=a.current_streak - b.current_streak,
        calories_diff=round(a.total_calories_burned - b.total_calories_burned, 2),
    )


async def compare(db: AsyncSession, player_a: int, player_b: int) -> Comparison:
    """Compare two players. Each side must be a player account."""
    a = await entry_snapshot(db, player_a)
    b = await entry_snapshot(db, player_b)
    return Comparison(player_a=a, player_b=b, differences=diff(a, b))
