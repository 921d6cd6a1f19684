"""Create player directory and leaderboard tables

Revision ID: 20261017_leaderboard
Revises:
Create Date: 2026-10-17

This migration creates:
- players (directory of accounts, roles, skill levels and teams)
- leaderboard_entries with a version column for optimistic locking and
  CHECK constraints keeping every points total non-negative
- achievements, unique per (entry, type)
- processed_events, the idempotency ledger keyed by event_id
- reset_markers, one row per resettable window
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261017_leaderboard"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables and their indexes."""
    # === PLAYERS ===
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("role", sa.String(), nullable=False, server_default="player"),
        sa.Column(
            "skill_level", sa.String(), nullable=False, server_default="beginner"
        ),
        sa.Column("team_id", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_players_role", "players", ["role"])

    # === LEADERBOARD_ENTRIES ===
    op.create_table(
        "leaderboard_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "player_id",
            sa.Integer(),
            sa.ForeignKey("players.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("player_name", sa.String(), nullable=False),
        sa.Column("skill_level", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("weekly_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("monthly_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_events", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "total_workouts_completed",
            sa.Integer(),
            nullable=False,
            server_default="0",
        ),
        sa.Column("total_duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "total_calories_burned", sa.Float(), nullable=False, server_default="0"
        ),
        sa.Column("avg_accuracy", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "accuracy_samples", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("best_accuracy", sa.Float(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("previous_rank", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_event_id", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("points >= 0", name="ck_entry_points_nonneg"),
        sa.CheckConstraint("weekly_points >= 0", name="ck_entry_weekly_nonneg"),
        sa.CheckConstraint("monthly_points >= 0", name="ck_entry_monthly_nonneg"),
    )
    # Rank queries filter on scope and sort on the points fields
    for column in (
        "skill_level",
        "team_id",
        "is_active",
        "points",
        "weekly_points",
        "monthly_points",
    ):
        op.create_index(
            f"ix_leaderboard_entries_{column}", "leaderboard_entries", [column]
        )

    # === ACHIEVEMENTS ===
    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "entry_id",
            sa.Integer(),
            sa.ForeignKey("leaderboard_entries.id"),
            nullable=False,
        ),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("awarded_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("entry_id", "type", name="_entry_type_uc"),
    )
    op.create_index("ix_achievements_entry_id", "achievements", ["entry_id"])

    # === PROCESSED_EVENTS ===
    op.create_table(
        "processed_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.String(), nullable=False, unique=True),
        sa.Column(
            "player_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False
        ),
        sa.Column("points_delta", sa.Integer(), nullable=False),
        sa.Column("weekly_delta", sa.Integer(), nullable=False),
        sa.Column("monthly_delta", sa.Integer(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_processed_events_player_id", "processed_events", ["player_id"])

    # === RESET_MARKERS ===
    op.create_table(
        "reset_markers",
        sa.Column("window", sa.String(), primary_key=True),
        sa.Column("period_key", sa.String(), nullable=False),
        sa.Column("reset_at", sa.DateTime(), nullable=False),
        sa.Column("trigger", sa.String(), nullable=False),
        sa.Column("affected", sa.Integer(), nullable=False, server_default="0"),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("reset_markers")
    op.drop_index("ix_processed_events_player_id", table_name="processed_events")
    op.drop_table("processed_events")
    op.drop_index("ix_achievements_entry_id", table_name="achievements")
    op.drop_table("achievements")
    for column in (
        "monthly_points",
        "weekly_points",
        "points",
        "is_active",
        "team_id",
        "skill_level",
    ):
        op.drop_index(
            f"ix_leaderboard_entries_{column}", table_name="leaderboard_entries"
        )
    op.drop_table("leaderboard_entries")
    op.drop_index("ix_players_role", table_name="players")
    op.drop_table("players")
