# src/courtrank/services/profiles.py

"""Propagation of player profile changes into leaderboard entries."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.config import settings
from courtrank.db import models
from courtrank.exceptions import PlayerNameTakenError, ProfileUpdateExhaustedError
from courtrank.schemas.player import PlayerProfileChanged
from courtrank.services.base import CONFLICT_ERRORS, get_player, retry_on_conflict

logger = logging.getLogger(__name__)

# Message field -> LeaderboardEntry column
DENORMALIZED_FIELDS = {
    "name": "player_name",
    "skill_level": "skill_level",
    "team_id": "team_id",
    "is_active": "is_active",
}


def _cached_changes(fields: dict[str, Any]) -> dict[str, Any]:
    """The entry-cached subset of ``fields``; only team_id may be None."""
    return {
        field: value
        for field, value in fields.items()
        if field in DENORMALIZED_FIELDS and (value is not None or field == "team_id")
    }


def _copy_to_entry(entry: models.LeaderboardEntry, changes: dict[str, Any]) -> bool:
    changed = False
    for field, value in changes.items():
        column = DENORMALIZED_FIELDS[field]
        if getattr(entry, column) != value:
            setattr(entry, column, value)
            changed = True
    return changed


async def apply_profile_change(
    db: AsyncSession, message: PlayerProfileChanged
) -> bool:
    """
    Copy changed profile fields onto the player's entry.

    Only fields present in the message are applied. The write goes
    through the entry's version check like any other entry update.

    Returns:
        True if an entry was updated, False if the player has no entry
        or nothing changed
    """
    changes = _cached_changes(
        message.model_dump(mode="json", exclude_unset=True, exclude={"player_id"})
    )
    if not changes:
        return False

    async def attempt(_: int) -> bool:
        entry = await models.LeaderboardEntry.find_by_player(db, message.player_id)
        if entry is None or not _copy_to_entry(entry, changes):
            return False
        await db.commit()
        return True

    updated = await retry_on_conflict(
        db,
        attempt,
        attempts=settings.apply_max_attempts,
        label="apply_profile_change",
    )
    if updated:
        logger.info(
            "Profile change applied to leaderboard entry",
            extra={"player_id": message.player_id, "fields": sorted(changes)},
        )
    return updated


async def update_player_profile(
    db: AsyncSession, player_id: int, fields: dict[str, Any]
) -> models.Player:
    """
    Change a directory account and its cached entry fields together.

    The player row and the entry commit in one transaction, retried as a
    whole on a version conflict, so the two never disagree.

    Args:
        db: Database session
        player_id: Account to change
        fields: Player columns to set (name, skill_level, team_id, is_active)

    Raises:
        PlayerNotFoundError: If the account does not exist
        PlayerNameTakenError: If another account already has the new name
        ProfileUpdateExhaustedError: If every attempt lost a version race
    """
    changes = _cached_changes(fields)
    attempts = settings.apply_max_attempts

    async def attempt(_: int) -> models.Player:
        player = await get_player(db, player_id)

        name = fields.get("name")
        if name is not None and name != player.name:
            taken = await db.execute(
                select(models.Player.id).where(
                    models.Player.name == name, models.Player.id != player_id
                )
            )
            if taken.first() is not None:
                raise PlayerNameTakenError(name)

        for key, value in fields.items():
            setattr(player, key, value)

        entry = await models.LeaderboardEntry.find_by_player(db, player_id)
        if entry is not None:
            _copy_to_entry(entry, changes)

        await db.commit()
        return player

    try:
        player = await retry_on_conflict(
            db, attempt, attempts=attempts, label="update_player_profile"
        )
    except CONFLICT_ERRORS:
        logger.error(
            "Profile update retries exhausted",
            extra={"player_id": player_id, "attempts": attempts},
        )
        raise ProfileUpdateExhaustedError(player_id, attempts)

    await db.refresh(player)
    logger.info(
        "Player profile updated",
        extra={"player_id": player_id, "fields": sorted(fields)},
    )
    return player
