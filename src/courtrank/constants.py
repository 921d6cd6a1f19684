# src/courtrank/constants.py

"""Enumerations and limits shared by the models, services and API."""

from enum import Enum


class Role(str, Enum):
    """Account roles. Only players take part in rankings."""

    PLAYER = "player"
    COACH = "coach"
    ADMIN = "admin"


class SkillLevel(str, Enum):
    """Player skill levels used for skill-scoped leaderboards."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class Window(str, Enum):
    """Time window a point total covers."""

    ALL_TIME = "all"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ResetWindow(str, Enum):
    """Windows that can be reset to zero."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ResetTrigger(str, Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class AchievementCategory(str, Enum):
    WORKOUT = "workout"
    SHOOTING = "shooting"
    STREAK = "streak"
    MILESTONE = "milestone"
    SPECIAL = "special"


# Hard cap for a single leaderboard page
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50

# Players shown above and below a player in rank lookups
NEARBY_WINDOW = 3

# Sessions kept in an entry's recent_workouts list
RECENT_WORKOUTS_LIMIT = 10


class TopMetric(str, Enum):
    """Fields that can be used for top-performer listings."""

    POINTS = "points"
    AVG_ACCURACY = "avg_accuracy"
    CURRENT_STREAK = "current_streak"
    LONGEST_STREAK = "longest_streak"
    TOTAL_WORKOUTS_COMPLETED = "total_workouts_completed"
    TOTAL_CALORIES_BURNED = "total_calories_burned"
    TOTAL_DURATION = "total_duration"
