# src/courtrank/db/models.py

"""Database models for the CourtRank application."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, List

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import (
    Mapped,
    declarative_base,
    mapped_column,
    relationship,
)

from courtrank.constants import Role, SkillLevel

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===============================================
# Mixins for Common Columns
# ===============================================


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


class VersionMixin:
    """Mixin providing a plain version counter column."""

    version: Mapped[int] = mapped_column(default=1, nullable=False)


# ===============================================
# Player directory (owned by the user-management collaborator)
# ===============================================


class Player(Base, TimestampMixin, VersionMixin):
    """An account known to the engine.

    Coaches and admins live in the same table but never get a
    leaderboard entry. Player ids are assigned in creation order and
    double as the final ranking tie-break.
    """

    __tablename__ = "players"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    role: Mapped[str] = mapped_column(
        String, default=Role.PLAYER.value, nullable=False, index=True
    )
    skill_level: Mapped[str] = mapped_column(
        String, default=SkillLevel.BEGINNER.value, nullable=False
    )
    team_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    def __init__(self, name: str, **kw: Any):
        super().__init__(**kw)
        self.name = name

    @property
    def is_player(self) -> bool:
        return self.role == Role.PLAYER.value


# ===============================================
# Leaderboard aggregate
# ===============================================


class LeaderboardEntry(Base, TimestampMixin):
    """One row of derived leaderboard state per player.

    ``version`` is the optimistic-lock token: every ORM UPDATE is issued
    as ``WHERE version = :expected`` and increments it, so a concurrent
    writer that read an older row gets a StaleDataError and must retry.
    Bulk resets bump it too.
    """

    __tablename__ = "leaderboard_entries"
    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id"), unique=True, nullable=False
    )

    # Denormalized from Player, refreshed by profile-change messages
    player_name: Mapped[str] = mapped_column(String, nullable=False)
    skill_level: Mapped[str] = mapped_column(String, nullable=False, index=True)
    team_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False, index=True)

    points: Mapped[int] = mapped_column(default=0, nullable=False, index=True)
    weekly_points: Mapped[int] = mapped_column(default=0, nullable=False, index=True)
    monthly_points: Mapped[int] = mapped_column(default=0, nullable=False, index=True)
    # Period the windowed totals belong to, e.g. "2026-W42" and "2026-10"
    weekly_period_key: Mapped[str | None] = mapped_column(String, nullable=True)
    monthly_period_key: Mapped[str | None] = mapped_column(String, nullable=True)

    total_events: Mapped[int] = mapped_column(default=0, nullable=False)
    total_workouts_completed: Mapped[int] = mapped_column(default=0, nullable=False)
    total_duration: Mapped[float] = mapped_column(default=0.0, nullable=False)
    total_calories_burned: Mapped[float] = mapped_column(default=0.0, nullable=False)
    avg_accuracy: Mapped[float] = mapped_column(default=0.0, nullable=False)
    accuracy_samples: Mapped[int] = mapped_column(default=0, nullable=False)
    best_accuracy: Mapped[float] = mapped_column(default=0.0, nullable=False)

    # Personal bests over single sessions
    most_shots_in_session: Mapped[int] = mapped_column(default=0, nullable=False)
    longest_workout: Mapped[float] = mapped_column(default=0.0, nullable=False)
    most_calories_in_session: Mapped[float] = mapped_column(
        default=0.0, nullable=False
    )
    # Newest first, at most RECENT_WORKOUTS_LIMIT items
    recent_workouts: Mapped[list[dict]] = mapped_column(
        JSON, default=list, nullable=False
    )

    current_streak: Mapped[int] = mapped_column(default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(default=0, nullable=False)
    last_activity_date: Mapped[date | None] = mapped_column(nullable=True)

    # Snapshot written by the full rank recompute
    rank: Mapped[int] = mapped_column(default=0, nullable=False)
    previous_rank: Mapped[int] = mapped_column(default=0, nullable=False)

    last_event_id: Mapped[str | None] = mapped_column(String, nullable=True)

    version: Mapped[int] = mapped_column(nullable=False)

    achievements: Mapped[List["Achievement"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Achievement.awarded_at",
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_entry_points_nonneg"),
        CheckConstraint("weekly_points >= 0", name="ck_entry_weekly_nonneg"),
        CheckConstraint("monthly_points >= 0", name="ck_entry_monthly_nonneg"),
    )

    def __init__(self, **kw: Any):
        super().__init__(**kw)

    @property
    def rank_change(self) -> int:
        """Positions gained since the previous snapshot (positive = moved up)."""
        if self.previous_rank == 0:
            return 0
        return self.previous_rank - self.rank

    def achievement_types(self) -> set[str]:
        return {a.type for a in self.achievements}

    @classmethod
    async def find_by_player(
        cls, db: AsyncSession, player_id: int
    ) -> "LeaderboardEntry | None":
        """Find the leaderboard entry for a player.

        Always reloads the row, so a read after a rollback or a lost
        version race sees the latest committed state.
        """
        query = (
            select(cls)
            .where(cls.player_id == player_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


class Achievement(Base):
    """A badge held by a player. Unique per (entry, type); never revoked."""

    __tablename__ = "achievements"
    id: Mapped[int] = mapped_column(primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("leaderboard_entries.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    category: Mapped[str] = mapped_column(String, nullable=False)
    points: Mapped[int] = mapped_column(default=0, nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    entry: Mapped["LeaderboardEntry"] = relationship(back_populates="achievements")

    __table_args__ = (UniqueConstraint("entry_id", "type", name="_entry_type_uc"),)


# ===============================================
# Idempotency ledger and reset markers
# ===============================================


class ProcessedEvent(Base):
    """Records each progress event id applied to the leaderboard.

    Written in the same transaction as the entry update, so an event
    counts as processed exactly when its points were committed.
    """

    __tablename__ = "processed_events"
    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id"), nullable=False, index=True
    )
    points_delta: Mapped[int] = mapped_column(nullable=False)
    weekly_delta: Mapped[int] = mapped_column(nullable=False)
    monthly_delta: Mapped[int] = mapped_column(nullable=False)
    completed: Mapped[bool] = mapped_column(nullable=False)
    accuracy: Mapped[float | None] = mapped_column(nullable=True)
    shots_attempted: Mapped[int | None] = mapped_column(nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    processed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class ResetMarker(Base):
    """Last reset performed for a window (weekly or monthly).

    ``claims`` counts the resets recorded on this row. A reset claims the
    marker with ``UPDATE ... WHERE claims = :seen`` before zeroing
    anything, so of two resets that read the same marker only one wins.
    """

    __tablename__ = "reset_markers"
    window: Mapped[str] = mapped_column(String, primary_key=True)
    # e.g. "2026-W42" or "2026-10"
    period_key: Mapped[str] = mapped_column(String, nullable=False)
    reset_at: Mapped[datetime] = mapped_column(nullable=False)
    trigger: Mapped[str] = mapped_column(String, nullable=False)
    affected: Mapped[int] = mapped_column(default=0, nullable=False)
    claims: Mapped[int] = mapped_column(default=0, nullable=False)
