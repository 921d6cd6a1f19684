# src/courtrank/api/deps.py

"""Caller identity for the leaderboard API.

Bearer tokens are HS256 JWTs whose ``sub`` is the caller's player id.
Issuing tokens belongs to the auth service; ``create_access_token`` is
kept for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from courtrank.config import settings
from courtrank.constants import Role
from courtrank.db import models
from courtrank.db.session import get_db
from courtrank.exceptions import AuthenticationError, PermissionDeniedError

# auto_error=False so a missing header maps to our 401 instead of 403
bearer = HTTPBearer(auto_error=False)


def create_access_token(player_id: int, expires_in: timedelta | None = None) -> str:
    expires_in = expires_in or timedelta(hours=settings.jwt_expiration_hours)
    payload = {
        "sub": str(player_id),
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def get_current_player(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> models.Player:
    """Resolve the calling account from its bearer token.

    Raises:
        AuthenticationError: Missing, expired or invalid token, or the
            account no longer exists or is deactivated
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    try:
        player_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token subject")

    player = await db.get(models.Player, player_id)
    if player is None or not player.is_active:
        raise AuthenticationError("Account not found or inactive")
    return player


def require_role(*roles: Role):
    """Dependency factory admitting only callers with one of ``roles``."""
    allowed = {role.value for role in roles}

    async def checker(
        current: models.Player = Depends(get_current_player),
    ) -> models.Player:
        if current.role not in allowed:
            raise PermissionDeniedError(current.role, "perform this action")
        return current

    return checker


require_admin = require_role(Role.ADMIN)
