# src/courtrank/schemas/__init__.py

"""Pydantic schemas for API validation and serialization."""

from .leaderboard import (
    AchievementAward,
    AchievementRead,
    Comparison,
    ComparisonDiff,
    LeaderboardEntryRead,
    LeaderboardPage,
    LeaderboardStats,
    PlayerRank,
    RankedEntry,
    RankingsRecomputed,
    RankResult,
    RecentAchievement,
    RecentWorkout,
    ResetResult,
    SkillBucket,
)
from .pagination import PaginatedResponse, PlayerSortField, SortOrder
from .player import (
    PlayerBase,
    PlayerCreate,
    PlayerProfileChanged,
    PlayerRead,
    PlayerUpdate,
)
from .progress import ApplyResult, ProgressEventCreate

__all__ = [
    # Leaderboard
    "AchievementAward",
    "AchievementRead",
    "Comparison",
    "ComparisonDiff",
    "LeaderboardEntryRead",
    "LeaderboardPage",
    "LeaderboardStats",
    "PlayerRank",
    "RankedEntry",
    "RankingsRecomputed",
    "RankResult",
    "RecentAchievement",
    "RecentWorkout",
    "ResetResult",
    "SkillBucket",
    # Pagination
    "PaginatedResponse",
    "PlayerSortField",
    "SortOrder",
    # Player
    "PlayerBase",
    "PlayerCreate",
    "PlayerProfileChanged",
    "PlayerRead",
    "PlayerUpdate",
    # Progress
    "ApplyResult",
    "ProgressEventCreate",
]
