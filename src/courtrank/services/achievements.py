# src/courtrank/services/achievements.py

"""
Achievement evaluation and manual awards.

Achievements are append-only: a type a player already holds is never
awarded again and never revoked, even if the condition stops holding
(for example after dropping out of the top 10).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.config import settings
from courtrank.constants import AchievementCategory
from courtrank.db import models
from courtrank.db.models import utcnow
from courtrank.exceptions import (
    AchievementAlreadyAwardedError,
    LeaderboardEntryNotFoundError,
)
from courtrank.schemas.leaderboard import AchievementAward, AchievementRead
from courtrank.services.base import get_ranked_player, retry_on_conflict
from courtrank.services.ranking import rank_of_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementRule:
    """A condition over an entry (and, for rank rules, its global rank)."""

    type: str
    title: str
    description: str
    category: AchievementCategory
    check: Callable[[models.LeaderboardEntry, int | None], bool]
    needs_rank: bool = False


ACHIEVEMENT_RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        "first_workout",
        "First Workout",
        "Completed your first workout",
        AchievementCategory.WORKOUT,
        lambda e, _: e.total_workouts_completed >= 1,
    ),
    AchievementRule(
        "workout_milestone",
        "Workout Milestone",
        "Completed 50 workouts",
        AchievementCategory.MILESTONE,
        lambda e, _: e.total_workouts_completed >= 50,
    ),
    AchievementRule(
        "week_streak",
        "Week Streak",
        "Trained 7 days in a row",
        AchievementCategory.STREAK,
        lambda e, _: e.current_streak >= 7,
    ),
    AchievementRule(
        "accuracy_master",
        "Accuracy Master",
        "Average accuracy of 90% or better over at least 10 workouts",
        AchievementCategory.SHOOTING,
        lambda e, _: e.accuracy_samples >= 10 and e.avg_accuracy >= 90,
    ),
    AchievementRule(
        "perfect_score",
        "Perfect Score",
        "Hit 100% accuracy in a workout",
        AchievementCategory.SHOOTING,
        lambda e, _: e.best_accuracy >= 100,
    ),
    AchievementRule(
        "endurance_king",
        "Endurance King",
        "Trained for 1000 minutes in total",
        AchievementCategory.WORKOUT,
        lambda e, _: e.total_duration >= 1000,
    ),
    AchievementRule(
        "top_10",
        "Top 10",
        "Reached the global top 10",
        AchievementCategory.SPECIAL,
        lambda e, rank: rank is not None and rank <= 10,
        needs_rank=True,
    ),
    AchievementRule(
        "top_3",
        "Podium",
        "Reached the global top 3",
        AchievementCategory.SPECIAL,
        lambda e, rank: rank is not None and rank <= 3,
        needs_rank=True,
    ),
)


def pending_rules(
    entry: models.LeaderboardEntry, rank: int | None
) -> list[AchievementRule]:
    """Rules whose condition holds and whose type the entry does not hold yet."""
    held = entry.achievement_types()
    return [r for r in ACHIEVEMENT_RULES if r.type not in held and r.check(entry, rank)]


async def evaluate_entry(
    db: AsyncSession, entry: models.LeaderboardEntry
) -> list[models.Achievement]:
    """
    Award every rule the entry newly satisfies.

    Runs in its own transaction after the points were committed. Each
    achievement is inserted under its own savepoint: if a concurrent
    evaluation already inserted the same type, the unique (entry, type)
    constraint rejects only that insert, which is logged and skipped,
    and the other new achievements are still awarded.

    Returns:
        The newly created achievements (possibly empty)
    """
    held = entry.achievement_types()
    rank = None
    # Rank rules only matter for an active entry that has scored
    if entry.is_active and entry.points > 0 and any(
        r.needs_rank and r.type not in held for r in ACHIEVEMENT_RULES
    ):
        rank = await rank_of_entry(db, entry)

    rules = pending_rules(entry, rank)
    if not rules:
        return []

    player_id = entry.player_id
    entry_id = entry.id
    awarded_at = utcnow()
    new = []
    for rule in rules:
        achievement = models.Achievement(
            entry_id=entry_id,
            type=rule.type,
            title=rule.title,
            description=rule.description,
            category=rule.category.value,
            points=0,
            awarded_at=awarded_at,
        )
        try:
            async with db.begin_nested():
                db.add(achievement)
        except IntegrityError:
            logger.warning(
                "Achievement already awarded concurrently, skipped",
                extra={"player_id": player_id, "type": rule.type},
            )
            continue
        new.append(achievement)

    await db.commit()
    await db.refresh(entry, attribute_names=["achievements"])

    if new:
        logger.info(
            "Achievements awarded",
            extra={"player_id": player_id, "types": [a.type for a in new]},
        )
    return new


async def award_achievement(
    db: AsyncSession, player_id: int, award: AchievementAward
) -> AchievementRead:
    """
    Manually award a custom achievement to a player.

    The award's ``points`` are added to the all-time total only; weekly
    and monthly windows are not touched.

    Raises:
        PlayerNotFoundError: If the player does not exist
        NonPlayerError: If the account is a coach or admin
        LeaderboardEntryNotFoundError: If the player has no entry yet
        AchievementAlreadyAwardedError: If the player already holds the type
    """

    async def attempt(_: int) -> models.Achievement:
        await get_ranked_player(db, player_id)
        entry = await models.LeaderboardEntry.find_by_player(db, player_id)
        if entry is None:
            raise LeaderboardEntryNotFoundError(player_id)
        if award.type in entry.achievement_types():
            raise AchievementAlreadyAwardedError(player_id, award.type)

        achievement = models.Achievement(
            type=award.type,
            title=award.title,
            description=award.description,
            category=award.category.value,
            points=award.points,
            awarded_at=utcnow(),
        )
        entry.achievements.append(achievement)
        if award.points:
            entry.points += award.points
        await db.commit()
        return achievement

    achievement = await retry_on_conflict(
        db, attempt, attempts=settings.apply_max_attempts, label="award_achievement"
    )
    logger.info(
        "Achievement awarded manually",
        extra={
            "player_id": player_id,
            "type": award.type,
            "points": award.points,
        },
    )
    return AchievementRead.model_validate(achievement)
