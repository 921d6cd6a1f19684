# src/courtrank/schemas/leaderboard.py

"""Leaderboard schemas: entries, ranks, stats, comparisons and resets."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from courtrank.constants import (
    AchievementCategory,
    ResetTrigger,
    ResetWindow,
    Window,
)

from .pagination import PaginatedResponse


class AchievementRead(BaseModel):
    """A badge held by a player."""

    type: str
    title: str
    description: str | None = None
    category: AchievementCategory
    points: int
    awarded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AchievementAward(BaseModel):
    """Manual achievement award submitted by an admin."""

    type: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9_]+$")
    title: str = Field(..., min_length=1, max_length=120)
    description: str | None = Field(None, max_length=500)
    category: AchievementCategory = AchievementCategory.MILESTONE
    points: int = Field(0, ge=0, description="Bonus added to all-time points")

    model_config = ConfigDict(extra="forbid")


class RecentWorkout(BaseModel):
    """One session in an entry's recent activity list."""

    event_id: str
    occurred_at: datetime
    completed: bool
    accuracy: float | None = None
    duration_min: float


class LeaderboardEntryRead(BaseModel):
    """A player's leaderboard aggregate."""

    player_id: int
    player_name: str
    skill_level: str
    team_id: str | None = None
    is_active: bool = True

    points: int = 0
    weekly_points: int = 0
    monthly_points: int = 0

    total_workouts_completed: int = 0
    total_duration: float = 0.0
    total_calories_burned: float = 0.0
    avg_accuracy: float = 0.0
    best_accuracy: float = 0.0
    most_shots_in_session: int = 0
    longest_workout: float = 0.0
    most_calories_in_session: float = 0.0

    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None

    rank: int = 0
    previous_rank: int = 0
    rank_change: int = 0

    achievements: list[AchievementRead] = Field(default_factory=list)
    recent_workouts: list[RecentWorkout] = Field(default_factory=list)
    updated_at: datetime | None = None
    version: int = 0

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def zero_for(cls, player) -> LeaderboardEntryRead:
        """The implicit all-zero entry of a player with no processed events."""
        return cls(
            player_id=player.id,
            player_name=player.name,
            skill_level=player.skill_level,
            team_id=player.team_id,
            is_active=player.is_active,
        )


class RankedEntry(BaseModel):
    """Single row in a ranked listing.

    Attributes:
        rank: Position in the listing's scope and window (1-indexed)
        entry: The player's aggregate
    """

    rank: int = Field(..., ge=1, description="Position in leaderboard (1-indexed)")
    entry: LeaderboardEntryRead


class LeaderboardPage(PaginatedResponse[RankedEntry]):
    """One page of a scope/window ordering."""

    period: Window
    scope: str
    scope_value: str | None = None


class RankResult(BaseModel):
    """A player's position within a scope and window.

    Coach and admin accounts get ``is_non_player=True`` and no rank.
    """

    player_id: int
    period: Window
    scope: str
    scope_value: str | None = None
    rank: int | None = None
    total_in_scope: int | None = None
    is_non_player: bool = False
    message: str | None = None


class PlayerRank(BaseModel):
    """Rank lookup with the entry and nearby players."""

    rank: RankResult
    entry: LeaderboardEntryRead | None = None
    nearby: list[RankedEntry] = Field(default_factory=list)


class ComparisonDiff(BaseModel):
    """Field-wise differences, player A minus player B."""

    points_diff: int
    weekly_diff: int
    monthly_diff: int
    accuracy_diff: float
    workouts_diff: int
    streak_diff: int
    calories_diff: float


class Comparison(BaseModel):
    player_a: LeaderboardEntryRead
    player_b: LeaderboardEntryRead
    differences: ComparisonDiff


class SkillBucket(BaseModel):
    skill_level: str
    count: int
    avg_points: float
    avg_accuracy: float


class RecentAchievement(BaseModel):
    player_id: int
    player_name: str
    achievement: AchievementRead


class LeaderboardStats(BaseModel):
    """Aggregate figures over all active entries."""

    total_players: int
    total_points: int
    avg_points: float
    avg_accuracy: float
    total_workouts: int
    total_calories: float
    max_streak: int
    avg_streak: float
    skill_distribution: list[SkillBucket]
    top_three: list[RankedEntry]
    recent_achievements: list[RecentAchievement]


class ResetResult(BaseModel):
    """Outcome of a window reset request."""

    window: ResetWindow
    performed: bool = Field(..., description="False when the guard skipped it")
    affected: int
    period_key: str
    reset_at: datetime
    trigger: ResetTrigger


class RankingsRecomputed(BaseModel):
    total_entries: int
    updated: int
