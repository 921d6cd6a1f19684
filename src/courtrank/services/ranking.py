# src/courtrank/services/ranking.py

"""Rank resolution over scopes (global, team, skill level) and windows.

Every ordering here uses the same composite key:

    selected point field DESC, avg_accuracy DESC, player_id ASC

Player ids are assigned in creation order, so the last component is the
"registered earlier wins" tie-break and the order is total. A player's
rank is 1 + the number of in-scope entries strictly ahead of them under
that key, which is exactly their 1-based position in ``list_leaderboard``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from courtrank.constants import (
    MAX_PAGE_SIZE,
    NEARBY_WINDOW,
    ResetWindow,
    SkillLevel,
    TopMetric,
    Window,
)
from courtrank.db.models import LeaderboardEntry, Player
from courtrank.exceptions import InvalidPaginationError, InvalidScopeError
from courtrank.schemas.leaderboard import (
    LeaderboardEntryRead,
    LeaderboardPage,
    PlayerRank,
    RankedEntry,
    RankingsRecomputed,
    RankResult,
)
from courtrank.schemas.pagination import page_offset
from courtrank.services.base import get_player

logger = logging.getLogger(__name__)

WINDOW_FIELDS = {
    Window.ALL_TIME: LeaderboardEntry.points,
    Window.WEEKLY: LeaderboardEntry.weekly_points,
    Window.MONTHLY: LeaderboardEntry.monthly_points,
}

# Period each windowed total was accumulated in
PERIOD_KEY_FIELDS = {
    ResetWindow.WEEKLY: LeaderboardEntry.weekly_period_key,
    ResetWindow.MONTHLY: LeaderboardEntry.monthly_period_key,
}

NON_PLAYER_MESSAGE = (
    "Leaderboard rankings are only available for players. As a {role}, "
    "you can view the global leaderboard to see player rankings."
)


@dataclass(frozen=True)
class Scope:
    """The population a rank or listing is computed over."""

    kind: str = "global"
    value: str | None = None

    @classmethod
    def global_(cls) -> Scope:
        return cls()

    @classmethod
    def team(cls, team_id: str) -> Scope:
        if not team_id:
            raise InvalidScopeError("team", "team id is required")
        return cls("team", team_id)

    @classmethod
    def skill(cls, level: SkillLevel | str) -> Scope:
        try:
            level = SkillLevel(level)
        except ValueError:
            raise InvalidScopeError("skill", f"unknown skill level '{level}'")
        return cls("skill", level.value)

    def criteria(self) -> list:
        """WHERE clauses selecting active entries in this scope."""
        clauses = [LeaderboardEntry.is_active.is_(True)]
        if self.kind == "team":
            clauses.append(LeaderboardEntry.team_id == self.value)
        elif self.kind == "skill":
            clauses.append(LeaderboardEntry.skill_level == self.value)
        return clauses

    def contains(self, skill_level: str, team_id: str | None) -> bool:
        if self.kind == "team":
            return team_id == self.value
        if self.kind == "skill":
            return skill_level == self.value
        return True


GLOBAL = Scope.global_()


def order_by(window: Window) -> list:
    """The deterministic ordering for a window."""
    return [
        WINDOW_FIELDS[window].desc(),
        LeaderboardEntry.avg_accuracy.desc(),
        LeaderboardEntry.player_id.asc(),
    ]


def _ahead_of(window: Window, points: int, accuracy: float, player_id: int):
    """Entries that sort strictly before the given key."""
    field = WINDOW_FIELDS[window]
    return or_(
        field > points,
        and_(field == points, LeaderboardEntry.avg_accuracy > accuracy),
        and_(
            field == points,
            LeaderboardEntry.avg_accuracy == accuracy,
            LeaderboardEntry.player_id < player_id,
        ),
    )


def _scoped(scope: Scope) -> Select:
    return select(LeaderboardEntry).where(*scope.criteria())


async def _count(db: AsyncSession, query: Select) -> int:
    count_query = select(func.count()).select_from(query.subquery())
    return (await db.execute(count_query)).scalar_one()


def _window_points(entry: LeaderboardEntry, window: Window) -> int:
    return getattr(entry, WINDOW_FIELDS[window].key)


async def rank_position(
    db: AsyncSession,
    window: Window,
    scope: Scope,
    points: int,
    accuracy: float,
    player_id: int,
) -> int:
    """1-based position the given key holds in the scope."""
    ahead = await _count(
        db, _scoped(scope).where(_ahead_of(window, points, accuracy, player_id))
    )
    return ahead + 1


async def rank_of_entry(
    db: AsyncSession,
    entry: LeaderboardEntry,
    window: Window = Window.ALL_TIME,
    scope: Scope = GLOBAL,
) -> int:
    return await rank_position(
        db,
        window,
        scope,
        _window_points(entry, window),
        entry.avg_accuracy,
        entry.player_id,
    )


async def get_rank(
    db: AsyncSession,
    player_id: int,
    window: Window = Window.ALL_TIME,
    scope: Scope = GLOBAL,
) -> RankResult:
    """
    Resolve a player's rank within a scope and window.

    Coach and admin accounts get a non-player result rather than an
    error. A player with no processed events is ranked as an implicit
    all-zero entry (counted in ``total_in_scope`` but not stored).
    Inactive players, and players outside the scope, have no rank.

    Raises:
        PlayerNotFoundError: If the player id does not exist
    """
    player = await get_player(db, player_id)
    result = RankResult(
        player_id=player_id, period=window, scope=scope.kind, scope_value=scope.value
    )

    if not player.is_player:
        result.is_non_player = True
        result.message = NON_PLAYER_MESSAGE.format(role=player.role)
        return result

    entry = await LeaderboardEntry.find_by_player(db, player_id)
    total = await _count(db, _scoped(scope))

    if entry is None:
        if not player.is_active or not scope.contains(
            player.skill_level, player.team_id
        ):
            result.total_in_scope = total
            result.message = "Player is not ranked in this scope"
            return result
        result.rank = await rank_position(db, window, scope, 0, 0.0, player_id)
        result.total_in_scope = total + 1
        result.message = "Complete workouts to start ranking!"
        return result

    result.total_in_scope = total
    if not entry.is_active or not scope.contains(entry.skill_level, entry.team_id):
        result.message = "Player is not ranked in this scope"
        return result

    result.rank = await rank_of_entry(db, entry, window, scope)
    return result


def _validate_page(page: int, page_size: int) -> None:
    if page < 1 or page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidPaginationError(page, page_size, MAX_PAGE_SIZE)


async def list_leaderboard(
    db: AsyncSession,
    scope: Scope = GLOBAL,
    window: Window = Window.ALL_TIME,
    page: int = 1,
    page_size: int = 50,
) -> LeaderboardPage:
    """
    One page of the deterministic ordering for a scope and window.

    The page is read with a single query, so it never contains the same
    player twice or skips one between its first and last row.
    """
    _validate_page(page, page_size)
    base_query = _scoped(scope)
    total = await _count(db, base_query)

    offset = page_offset(page, page_size)
    query = base_query.order_by(*order_by(window)).offset(offset).limit(page_size)
    entries = list((await db.execute(query)).scalars().all())

    items = [
        RankedEntry(
            rank=offset + i + 1, entry=LeaderboardEntryRead.model_validate(entry)
        )
        for i, entry in enumerate(entries)
    ]
    return LeaderboardPage.build(
        items,
        total,
        page,
        page_size,
        period=window,
        scope=scope.kind,
        scope_value=scope.value,
    )


async def nearby_entries(
    db: AsyncSession,
    rank: int,
    window: Window = Window.ALL_TIME,
    scope: Scope = GLOBAL,
    radius: int = NEARBY_WINDOW,
) -> list[RankedEntry]:
    """Entries within ``radius`` positions of ``rank`` (inclusive)."""
    offset = max(0, rank - 1 - radius)
    query = (
        _scoped(scope)
        .order_by(*order_by(window))
        .offset(offset)
        .limit(radius * 2 + 1)
    )
    entries = (await db.execute(query)).scalars().all()
    return [
        RankedEntry(
            rank=offset + i + 1, entry=LeaderboardEntryRead.model_validate(entry)
        )
        for i, entry in enumerate(entries)
    ]


async def player_rank(
    db: AsyncSession,
    player_id: int,
    window: Window = Window.ALL_TIME,
    scope: Scope = GLOBAL,
) -> PlayerRank:
    """Rank lookup bundled with the player's entry and their neighbours."""
    rank = await get_rank(db, player_id, window, scope)
    if rank.is_non_player:
        return PlayerRank(rank=rank)

    entry = await LeaderboardEntry.find_by_player(db, player_id)
    if entry is None:
        player = await get_player(db, player_id)
        entry_read = LeaderboardEntryRead.zero_for(player)
    else:
        entry_read = LeaderboardEntryRead.model_validate(entry)

    nearby = []
    if rank.rank is not None:
        nearby = await nearby_entries(db, rank.rank, window, scope)
    return PlayerRank(rank=rank, entry=entry_read, nearby=nearby)


async def top_performers(
    db: AsyncSession, metric: TopMetric, limit: int = 10
) -> list[RankedEntry]:
    """Active entries ordered by any aggregate metric."""
    _validate_page(1, limit)
    column = getattr(LeaderboardEntry, metric.value)
    query = (
        _scoped(GLOBAL)
        .order_by(
            column.desc(),
            LeaderboardEntry.points.desc(),
            LeaderboardEntry.player_id.asc(),
        )
        .limit(limit)
    )
    entries = (await db.execute(query)).scalars().all()
    return [
        RankedEntry(rank=i + 1, entry=LeaderboardEntryRead.model_validate(entry))
        for i, entry in enumerate(entries)
    ]


async def window_history(
    db: AsyncSession, window: ResetWindow, limit: int = 10
) -> list[RankedEntry]:
    """Current standings of a window, only players who scored in it."""
    _validate_page(1, limit)
    as_window = Window(window.value)
    field = WINDOW_FIELDS[as_window]
    query = (
        _scoped(GLOBAL).where(field > 0).order_by(*order_by(as_window)).limit(limit)
    )
    entries = (await db.execute(query)).scalars().all()
    return [
        RankedEntry(rank=i + 1, entry=LeaderboardEntryRead.model_validate(entry))
        for i, entry in enumerate(entries)
    ]


async def recompute_rank_snapshot(db: AsyncSession) -> RankingsRecomputed:
    """
    Full recompute of the stored global all-time ``rank`` column.

    The previous rank is kept in ``previous_rank`` so clients can show
    movement. Live rank lookups do not depend on this snapshot.
    """
    query = (
        select(LeaderboardEntry.id, LeaderboardEntry.rank)
        .where(*GLOBAL.criteria())
        .order_by(*order_by(Window.ALL_TIME))
    )
    rows = (await db.execute(query)).all()

    updated = 0
    for position, (entry_id, current_rank) in enumerate(rows, start=1):
        if current_rank != position:
            updated += 1
        await db.execute(
            update(LeaderboardEntry)
            .where(LeaderboardEntry.id == entry_id)
            .values(previous_rank=current_rank, rank=position)
        )
    await db.commit()

    logger.info(
        "Rank snapshot recomputed",
        extra={"total_entries": len(rows), "updated": updated},
    )
    return RankingsRecomputed(total_entries=len(rows), updated=updated)


def scope_for_player(player: Player, kind: str) -> Scope:
    """Scope of the given kind that contains ``player``."""
    if kind == "team":
        if player.team_id is None:
            raise InvalidScopeError("team", "player has no team")
        return Scope.team(player.team_id)
    if kind == "skill":
        return Scope.skill(player.skill_level)
    return GLOBAL
