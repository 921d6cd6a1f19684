# src/courtrank/schemas/player.py

"""Pydantic schemas for the Player directory."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from courtrank.constants import Role, SkillLevel


# ===============================================
# Base Schema: Defines shared attributes for creation
# ===============================================
class PlayerBase(BaseModel):
    """Shared properties for a player."""

    name: str = Field(..., min_length=1, max_length=100)
    role: Role = Role.PLAYER
    skill_level: SkillLevel = SkillLevel.BEGINNER
    team_id: str | None = Field(None, max_length=64)


# ===============================================
# Create Schema: Inherits the base properties
# ===============================================
class PlayerCreate(PlayerBase):
    """Properties to receive via API on create."""

    model_config = ConfigDict(extra="forbid")


# ===============================================
# Update Schema: Defines all fields as optional
# ===============================================
class PlayerUpdate(BaseModel):
    """Properties to receive via API on update, all optional."""

    name: str | None = Field(None, min_length=1, max_length=100)
    skill_level: SkillLevel | None = None
    team_id: str | None = Field(None, max_length=64)

    model_config = ConfigDict(extra="forbid")


# ===============================================
# Read Schema: Defines attributes for returning data
# ===============================================
class PlayerRead(PlayerBase):
    """Properties to return to the client."""

    id: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ===============================================
# Profile-change message published to the leaderboard engine
# ===============================================
class PlayerProfileChanged(BaseModel):
    """A change to the denormalized fields the leaderboard caches.

    Only the fields that were set are applied; ``team_id`` may be set
    to None explicitly to remove a player from their team.
    """

    player_id: int
    name: str | None = None
    skill_level: SkillLevel | None = None
    team_id: str | None = None
    is_active: bool | None = None

    model_config = ConfigDict(extra="forbid")
