"""Add window period keys, personal bests and reset marker claims

Revision ID: 20261018_period_keys
Revises: 20261017_leaderboard
Create Date: 2026-10-18

This migration adds:
- weekly_period_key / monthly_period_key on leaderboard_entries, naming
  the period each windowed total belongs to
- personal bests (most shots, longest workout, most calories) and the
  recent_workouts list on leaderboard_entries
- shots_attempted on processed_events
- a claim counter on reset_markers for conditional marker updates
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261018_period_keys"
down_revision: Union[str, Sequence[str], None] = "20261017_leaderboard"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the new columns with defaults for existing rows."""
    op.add_column(
        "leaderboard_entries",
        sa.Column("weekly_period_key", sa.String(), nullable=True),
    )
    op.add_column(
        "leaderboard_entries",
        sa.Column("monthly_period_key", sa.String(), nullable=True),
    )
    op.add_column(
        "leaderboard_entries",
        sa.Column(
            "most_shots_in_session", sa.Integer(), nullable=False, server_default="0"
        ),
    )
    op.add_column(
        "leaderboard_entries",
        sa.Column("longest_workout", sa.Float(), nullable=False, server_default="0"),
    )
    op.add_column(
        "leaderboard_entries",
        sa.Column(
            "most_calories_in_session",
            sa.Float(),
            nullable=False,
            server_default="0",
        ),
    )
    op.add_column(
        "leaderboard_entries",
        sa.Column("recent_workouts", sa.JSON(), nullable=False, server_default="[]"),
    )
    op.add_column(
        "processed_events",
        sa.Column("shots_attempted", sa.Integer(), nullable=True),
    )
    op.add_column(
        "reset_markers",
        sa.Column("claims", sa.Integer(), nullable=False, server_default="0"),
    )


def downgrade() -> None:
    """Remove the added columns."""
    op.drop_column("reset_markers", "claims")
    op.drop_column("processed_events", "shots_attempted")
    for column in (
        "recent_workouts",
        "most_calories_in_session",
        "longest_workout",
        "most_shots_in_session",
        "monthly_period_key",
        "weekly_period_key",
    ):
        op.drop_column("leaderboard_entries", column)
