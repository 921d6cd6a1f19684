# src/courtrank/api/player.py

"""API endpoints for the player directory.

This is the local stand-in for the user-management service: it owns
names, roles, skill levels and team membership. Every change to a field
the leaderboard caches is written to the player's entry in the same
transaction as the account row.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.api.deps import get_current_player, require_admin
from courtrank.db.models import Player
from courtrank.db.session import get_db
from courtrank.schemas import player as player_schema
from courtrank.schemas.pagination import (
    PaginatedResponse,
    PlayerSortField,
    SortOrder,
    page_offset,
)
from courtrank.services.base import get_player
from courtrank.services.profiles import update_player_profile

# Create an APIRouter instance for players
# - prefix="/players": All routes here will be prefixed with /players
# - tags=["Players"]: Groups these endpoints under "Players" in the API docs
router = APIRouter(prefix="/players", tags=["Players"])


@router.post(
    "/",
    response_model=player_schema.PlayerRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_player(
    player_in: player_schema.PlayerCreate,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> Player:
    """
    Register a player, coach or admin account.

    - **name**: The unique name for the account.
    - **role**: player, coach or admin (only players are ranked).
    - **skill_level**: beginner, intermediate, advanced or expert.
    - **team_id**: Optional team membership.

    Raises:
        409 Conflict: If an account with the same name already exists.
    """
    new_player = Player(**player_in.model_dump(mode="json"))

    try:
        db.add(new_player)
        await db.commit()
        await db.refresh(new_player)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Player with name '{player_in.name}' already exists",
        )

    return new_player


@router.get("/", response_model=PaginatedResponse[player_schema.PlayerRead])
async def read_players(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(50, ge=1, le=100, description="Max records to return"),
    sort_by: PlayerSortField = Query(PlayerSortField.ID, description="Sort field"),
    sort_order: SortOrder = Query(SortOrder.ASC, description="Sort direction"),
    include_inactive: bool = Query(False, description="Include deactivated"),
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> PaginatedResponse[player_schema.PlayerRead]:
    """
    Retrieve a paginated list of accounts.

    - **page**: Page number (1-indexed)
    - **limit**: Maximum number of records to return (1-100)
    - **sort_by**: Field to sort by (id, name, created_at)
    - **sort_order**: Sort direction (asc, desc)
    - **include_inactive**: Whether to include deactivated accounts
    """
    base_query = select(Player)
    if not include_inactive:
        base_query = base_query.where(Player.is_active.is_(True))

    count_query = select(func.count()).select_from(base_query.subquery())
    total = (await db.execute(count_query)).scalar_one()

    sort_column = getattr(Player, sort_by.value)
    if sort_order == SortOrder.DESC:
        sort_column = sort_column.desc()

    query = (
        base_query.order_by(sort_column)
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    items = list((await db.execute(query)).scalars().all())

    return PaginatedResponse[player_schema.PlayerRead].build(
        [player_schema.PlayerRead.model_validate(p) for p in items],
        total,
        page,
        limit,
    )


@router.get("/{player_id}", response_model=player_schema.PlayerRead)
async def read_player(
    player_id: int,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_player),
) -> Player:
    """
    Retrieve a single account by its ID.
    """
    return await get_player(db, player_id)


@router.put("/{player_id}", response_model=player_schema.PlayerRead)
async def update_player(
    player_id: int,
    player_in: player_schema.PlayerUpdate,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> Player:
    """
    Update an account's name, skill level or team.

    The account and its leaderboard entry change together, which moves
    the player between team and skill-level scopes.

    Raises:
        404 Not Found: If the account doesn't exist.
        409 Conflict: If the new name conflicts with an existing account,
            or the entry kept changing underneath the update.
    """
    # Only team_id may be cleared with an explicit null
    update_data = {
        key: value
        for key, value in player_in.model_dump(mode="json", exclude_unset=True).items()
        if value is not None or key == "team_id"
    }
    if not update_data:
        return await get_player(db, player_id)

    return await update_player_profile(db, player_id, update_data)


@router.delete("/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_player(
    player_id: int,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_admin),
) -> None:
    """
    Deactivate an account.

    The row is kept so processed events stay attributable; the player's
    leaderboard entry drops out of every ranking.
    """
    await update_player_profile(db, player_id, {"is_active": False})
    return None
