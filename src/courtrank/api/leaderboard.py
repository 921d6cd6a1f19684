# src/courtrank/api/leaderboard.py

"""API endpoints for leaderboards, ranks, resets and progress ingestion."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.api.deps import get_current_player, require_admin
from courtrank.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ResetTrigger,
    ResetWindow,
    TopMetric,
    Window,
)
from courtrank.db.models import Player
from courtrank.db.session import get_db
from courtrank.exceptions import PermissionDeniedError
from courtrank.schemas import leaderboard as lb_schema
from courtrank.schemas.progress import ApplyResult, ProgressEventCreate
from courtrank.services import achievements, comparison, ingestion, ranking, resets
from courtrank.services.stats import leaderboard_stats

# Creates an APIRouter instance
# - prefix="/leaderboard": All routes defined here will be prefixed with /leaderboard
# - tags=["Leaderboard"]: Groups these endpoints under "Leaderboard" in the API docs
router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


async def _ensure_current_windows(
    db: AsyncSession, period: Window | ResetWindow
) -> None:
    """Apply a window reset the scheduler missed before reading windowed points."""
    if period.value != Window.ALL_TIME.value:
        await resets.catch_up_resets(db)


# =============================================================================
# Ranked listings
# =============================================================================


@router.get("", response_model=lb_schema.LeaderboardPage)
async def get_global_leaderboard(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(
        DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Max records to return"
    ),
    period: Window = Query(Window.ALL_TIME, description="all, weekly or monthly"),
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> lb_schema.LeaderboardPage:
    """
    Get the global ranked list of active players.

    - **page**: Page number (1-indexed)
    - **limit**: Maximum number of records to return (1-100)
    - **period**: Which points total to rank by (all, weekly, monthly)
    """
    await _ensure_current_windows(db, period)
    return await ranking.list_leaderboard(db, ranking.GLOBAL, period, page, limit)


@router.get("/team/{team_id}", response_model=lb_schema.LeaderboardPage)
async def get_team_leaderboard(
    team_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    period: Window = Query(Window.ALL_TIME),
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> lb_schema.LeaderboardPage:
    """
    Get the ranked list of one team.
    """
    await _ensure_current_windows(db, period)
    return await ranking.list_leaderboard(
        db, ranking.Scope.team(team_id), period, page, limit
    )


@router.get("/skill/{level}", response_model=lb_schema.LeaderboardPage)
async def get_skill_leaderboard(
    level: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    period: Window = Query(Window.ALL_TIME),
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> lb_schema.LeaderboardPage:
    """
    Get the ranked list of one skill level.

    Raises:
        422 Unprocessable Entity: If the skill level is unknown.
    """
    await _ensure_current_windows(db, period)
    return await ranking.list_leaderboard(
        db, ranking.Scope.skill(level), period, page, limit
    )


# =============================================================================
# Rank lookups
# =============================================================================


@router.get("/my-rank", response_model=lb_schema.PlayerRank)
async def get_my_rank(
    period: Window = Query(Window.ALL_TIME),
    scope: str = Query("global", pattern="^(global|team|skill)$"),
    db: AsyncSession = Depends(get_db),
    current: Player = Depends(get_current_player),
) -> lb_schema.PlayerRank:
    """
    Get the caller's rank, entry and nearby players.

    Coaches and admins get ``is_non_player: true`` and no rank.

    - **period**: all, weekly or monthly
    - **scope**: global, team (the caller's team) or skill (the caller's level)
    """
    target_scope = ranking.GLOBAL
    if current.is_player:
        target_scope = ranking.scope_for_player(current, scope)
    caller_id = current.id
    await _ensure_current_windows(db, period)
    return await ranking.player_rank(db, caller_id, period, target_scope)


@router.get("/player/{player_id}", response_model=lb_schema.PlayerRank)
async def get_player_rank(
    player_id: int,
    period: Window = Query(Window.ALL_TIME),
    db: AsyncSession = Depends(get_db),
    current: Player = Depends(get_current_player),
) -> lb_schema.PlayerRank:
    """
    Get a player's global rank, entry and nearby players.

    Players may only look up themselves; coaches and admins anyone.

    Raises:
        403 Forbidden: If a player looks up someone else.
        404 Not Found: If the player doesn't exist.
    """
    if current.is_player and current.id != player_id:
        raise PermissionDeniedError(current.role, "view another player's rank")
    await _ensure_current_windows(db, period)
    return await ranking.player_rank(db, player_id, period, ranking.GLOBAL)


@router.get("/compare/{player_id}", response_model=lb_schema.Comparison)
async def compare_with_player(
    player_id: int,
    db: AsyncSession = Depends(get_db),
    current: Player = Depends(get_current_player),
) -> lb_schema.Comparison:
    """
    Compare the caller with another player (caller minus target).

    Raises:
        404 Not Found: If the target doesn't exist.
        422 Unprocessable Entity: If either side is not a player account.
    """
    return await comparison.compare(db, current.id, player_id)


# =============================================================================
# Aggregates
# =============================================================================


@router.get("/stats", response_model=lb_schema.LeaderboardStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> lb_schema.LeaderboardStats:
    """
    Get overall leaderboard statistics.
    """
    return await leaderboard_stats(db)


@router.get("/top/{metric}", response_model=list[lb_schema.RankedEntry])
async def get_top_performers(
    metric: TopMetric,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> list[lb_schema.RankedEntry]:
    """
    Get the top players by any aggregate metric.

    - **metric**: points, avg_accuracy, current_streak, longest_streak,
      total_workouts_completed, total_calories_burned or total_duration
    """
    return await ranking.top_performers(db, metric, limit)


@router.get("/history/{period}", response_model=list[lb_schema.RankedEntry])
async def get_period_standings(
    period: ResetWindow,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> list[lb_schema.RankedEntry]:
    """
    Get the standings of the current week or month.

    Only players who scored in the period are listed.
    """
    await _ensure_current_windows(db, period)
    return await ranking.window_history(db, period, limit)


# =============================================================================
# Writes
# =============================================================================


@router.post("/events", response_model=ApplyResult)
async def ingest_progress_event(
    event: ProgressEventCreate,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> ApplyResult:
    """
    Apply a committed progress event to the leaderboard.

    Re-sending an event id already applied is a no-op reported with
    ``duplicate: true``.

    Raises:
        404 Not Found: If the player doesn't exist.
        409 Conflict: If concurrent updates exhausted the retries; resend.
        422 Unprocessable Entity: If the account is a coach or admin.
    """
    return await ingestion.apply_progress_event(db, event)


@router.post("/update-rankings", response_model=lb_schema.RankingsRecomputed)
async def update_rankings(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> lb_schema.RankingsRecomputed:
    """
    Recompute the stored global rank snapshot of every active entry.
    """
    return await ranking.recompute_rank_snapshot(db)


@router.post("/reset-weekly", response_model=lb_schema.ResetResult)
async def reset_weekly(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> lb_schema.ResetResult:
    """
    Zero every player's weekly points.

    A repeat within the guard interval returns ``performed: false``.
    """
    return await resets.reset_window(db, ResetWindow.WEEKLY, ResetTrigger.MANUAL)


@router.post("/reset-monthly", response_model=lb_schema.ResetResult)
async def reset_monthly(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> lb_schema.ResetResult:
    """
    Zero every player's monthly points.
    """
    return await resets.reset_window(db, ResetWindow.MONTHLY, ResetTrigger.MANUAL)


@router.post(
    "/achievement/{player_id}",
    response_model=lb_schema.AchievementRead,
    status_code=status.HTTP_201_CREATED,
)
async def award_achievement(
    player_id: int,
    award: lb_schema.AchievementAward,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> lb_schema.AchievementRead:
    """
    Award a custom achievement to a player.

    - **type**: Identifier, unique per player (lowercase, digits, underscores)
    - **points**: Bonus added to the player's all-time points

    Raises:
        404 Not Found: If the player or their entry doesn't exist.
        409 Conflict: If the player already holds this achievement type.
    """
    return await achievements.award_achievement(db, player_id, award)
