# src/courtrank/services/base.py

"""Shared helpers for services that write versioned leaderboard rows."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from courtrank.db import models
from courtrank.exceptions import NonPlayerError, PlayerNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "someone else wrote first": re-read and try again.
CONFLICT_ERRORS = (StaleDataError, IntegrityError)


async def retry_on_conflict(
    db: AsyncSession,
    operation: Callable[[int], Awaitable[T]],
    *,
    attempts: int,
    label: str,
    backoff: float = 0.01,
) -> T:
    """Run a read-modify-write ``operation`` until it commits.

    ``operation`` receives the 1-based attempt number and must do its
    own reads, so each retry sees the latest committed version. On a
    version mismatch or unique-key race the session is rolled back and
    the operation re-run; the last conflict is re-raised once
    ``attempts`` are used up.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation(attempt)
        except CONFLICT_ERRORS as e:
            await db.rollback()
            if attempt == attempts:
                raise
            logger.warning(
                "Conflict in %s, retrying (attempt %d/%d): %s",
                label,
                attempt,
                attempts,
                type(e).__name__,
            )
            await asyncio.sleep(backoff * (2 ** (attempt - 1)))
    raise RuntimeError("retry_on_conflict called with attempts < 1")


async def get_player(db: AsyncSession, player_id: int) -> models.Player:
    """Fetch a player or raise PlayerNotFoundError."""
    player = await db.get(models.Player, player_id)
    if player is None:
        raise PlayerNotFoundError(player_id)
    return player


async def get_ranked_player(db: AsyncSession, player_id: int) -> models.Player:
    """Fetch a player that may hold a leaderboard entry (role ``player``)."""
    player = await get_player(db, player_id)
    if not player.is_player:
        raise NonPlayerError(player_id, player.role)
    return player
