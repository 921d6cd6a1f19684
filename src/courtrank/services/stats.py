# src/courtrank/services/stats.py

"""Aggregate figures over the active leaderboard."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.constants import Window
from courtrank.db import models
from courtrank.schemas.leaderboard import (
    AchievementRead,
    LeaderboardStats,
    RecentAchievement,
    SkillBucket,
)
from courtrank.services.ranking import list_leaderboard

RECENT_ACHIEVEMENTS = 5

Entry = models.LeaderboardEntry


async def leaderboard_stats(db: AsyncSession) -> LeaderboardStats:
    """Totals, skill distribution, top 3 and latest achievements."""
    active = Entry.is_active.is_(True)

    overall_query = select(
        func.count(Entry.id),
        func.coalesce(func.sum(Entry.points), 0),
        func.coalesce(func.avg(Entry.points), 0.0),
        func.coalesce(func.avg(Entry.avg_accuracy), 0.0),
        func.coalesce(func.sum(Entry.total_workouts_completed), 0),
        func.coalesce(func.sum(Entry.total_calories_burned), 0.0),
        func.coalesce(func.max(Entry.current_streak), 0),
        func.coalesce(func.avg(Entry.current_streak), 0.0),
    ).where(active)
    (
        total_players,
        total_points,
        avg_points,
        avg_accuracy,
        total_workouts,
        total_calories,
        max_streak,
        avg_streak,
    ) = (await db.execute(overall_query)).one()

    skill_query = (
        select(
            Entry.skill_level,
            func.count(Entry.id),
            func.avg(Entry.points),
            func.avg(Entry.avg_accuracy),
        )
        .where(active)
        .group_by(Entry.skill_level)
        .order_by(func.avg(Entry.points).desc(), Entry.skill_level)
    )
    skill_distribution = [
        SkillBucket(
            skill_level=level,
            count=count,
            avg_points=round(float(points or 0), 2),
            avg_accuracy=round(float(accuracy or 0), 2),
        )
        for level, count, points, accuracy in (await db.execute(skill_query)).all()
    ]

    top_three = await list_leaderboard(db, window=Window.ALL_TIME, page_size=3)

    recent_query = (
        select(models.Achievement, Entry.player_id, Entry.player_name)
        .join(Entry, models.Achievement.entry_id == Entry.id)
        .where(active)
        .order_by(models.Achievement.awarded_at.desc(), models.Achievement.id.desc())
        .limit(RECENT_ACHIEVEMENTS)
    )
    recent = [
        RecentAchievement(
            player_id=player_id,
            player_name=player_name,
            achievement=AchievementRead.model_validate(achievement),
        )
        for achievement, player_id, player_name in (
            await db.execute(recent_query)
        ).all()
    ]

    return LeaderboardStats(
        total_players=total_players,
        total_points=int(total_points),
        avg_points=round(float(avg_points), 2),
        avg_accuracy=round(float(avg_accuracy), 2),
        total_workouts=int(total_workouts),
        total_calories=round(float(total_calories), 2),
        max_streak=int(max_streak),
        avg_streak=round(float(avg_streak), 2),
        skill_distribution=skill_distribution,
        top_three=top_three.items,
        recent_achievements=recent,
    )
