# src/courtrank/schemas/progress.py

"""Schemas for progress events entering the leaderboard engine."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .leaderboard import LeaderboardEntryRead


class ProgressEventCreate(BaseModel):
    """A committed workout session reported by the progress collaborator.

    ``event_id`` is the idempotency key: the same id is never counted
    twice.
    """

    event_id: str = Field(..., min_length=1, max_length=128)
    player_id: int
    completed: bool
    accuracy: float | None = Field(
        None, ge=0, le=100, description="Overall shot accuracy in percent"
    )
    shots_attempted: int | None = Field(None, ge=0)
    duration_min: float = Field(..., ge=0, description="Session length in minutes")
    calories_burned: float = Field(..., ge=0)
    occurred_at: datetime

    model_config = ConfigDict(extra="forbid")


class ApplyResult(BaseModel):
    """Outcome of ingesting one progress event."""

    event_id: str
    player_id: int
    applied: bool = Field(..., description="False when the event was a replay")
    duplicate: bool = False
    points_delta: int = 0
    weekly_delta: int = 0
    monthly_delta: int = 0
    attempts: int = Field(1, description="Optimistic-lock attempts used")
    new_achievements: list[str] = Field(default_factory=list)
    entry: LeaderboardEntryRead | None = None
