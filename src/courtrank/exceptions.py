# src/courtrank/exceptions.py

"""Custom exception hierarchy for CourtRank.

This module provides a structured exception hierarchy that enables:
1. Proper HTTP status code mapping in API endpoints
2. Detailed error context for logging and debugging
3. Clear distinction between client errors and engine failures
"""

from __future__ import annotations


class CourtRankError(Exception):
    """Base exception for all CourtRank errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional context for logging/debugging
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Resource Not Found Errors (HTTP 404)
# =============================================================================


class ResourceNotFoundError(CourtRankError):
    """Base class for resource not found errors."""

    pass


class PlayerNotFoundError(ResourceNotFoundError):
    """Raised when a player ID does not exist."""

    def __init__(self, player_id: int) -> None:
        super().__init__(
            message=f"Player with ID {player_id} not found",
            details={"player_id": player_id},
        )


class LeaderboardEntryNotFoundError(ResourceNotFoundError):
    """Raised when an operation needs a stored entry that was never created."""

    def __init__(self, player_id: int) -> None:
        super().__init__(
            message=f"Leaderboard entry for player {player_id} not found",
            details={"player_id": player_id},
        )


# =============================================================================
# Validation Errors (HTTP 422)
# =============================================================================


class ValidationError(CourtRankError):
    """Base class for validation errors."""

    pass


class NonPlayerError(ValidationError):
    """Raised when a coach or admin account is used where a player is required."""

    def __init__(self, player_id: int, role: str) -> None:
        super().__init__(
            message=f"Account {player_id} has role '{role}' and has no leaderboard entry",
            details={"player_id": player_id, "role": role},
        )


class InvalidScopeError(ValidationError):
    """Raised when a scope is missing its team id or skill level."""

    def __init__(self, scope: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid scope '{scope}': {reason}",
            details={"scope": scope, "reason": reason},
        )


class InvalidPaginationError(ValidationError):
    """Raised when page or page size is out of range."""

    def __init__(self, page: int, page_size: int, max_page_size: int) -> None:
        super().__init__(
            message=(
                f"Invalid pagination: page={page}, page_size={page_size} "
                f"(page >= 1, 1 <= page_size <= {max_page_size})"
            ),
            details={"page": page, "page_size": page_size},
        )


# =============================================================================
# Conflict Errors (HTTP 409)
# =============================================================================


class ConflictError(CourtRankError):
    """Base class for state conflicts the caller may resolve by retrying."""

    pass


class ConcurrentUpdateExhaustedError(ConflictError):
    """Raised when optimistic-lock retries for one entry run out.

    The event is not recorded as processed; the ingestion caller is expected
    to resubmit it.
    """

    def __init__(self, player_id: int, event_id: str, attempts: int) -> None:
        super().__init__(
            message=(
                f"Could not apply event {event_id} to player {player_id} "
                f"after {attempts} attempts"
            ),
            details={
                "player_id": player_id,
                "event_id": event_id,
                "attempts": attempts,
            },
        )


class ProfileUpdateExhaustedError(ConflictError):
    """Raised when a profile change keeps losing races on the player's entry.

    Nothing was written: the directory row and the entry still agree.
    """

    def __init__(self, player_id: int, attempts: int) -> None:
        super().__init__(
            message=(
                f"Could not update profile of player {player_id} "
                f"after {attempts} attempts"
            ),
            details={"player_id": player_id, "attempts": attempts},
        )


class PlayerNameTakenError(ConflictError):
    """Raised when renaming an account to a name another account holds."""

    def __init__(self, name: str) -> None:
        super().__init__(
            message=f"Player with name '{name}' already exists",
            details={"name": name},
        )


class AchievementAlreadyAwardedError(ConflictError):
    """Raised when manually awarding an achievement type the player holds."""

    def __init__(self, player_id: int, achievement_type: str) -> None:
        super().__init__(
            message=f"Player {player_id} already has achievement '{achievement_type}'",
            details={"player_id": player_id, "achievement_type": achievement_type},
        )


# =============================================================================
# Authorization Errors (HTTP 401 / 403)
# =============================================================================


class AuthenticationError(CourtRankError):
    """Raised when the caller's bearer token is missing or invalid."""

    pass


class PermissionDeniedError(CourtRankError):
    """Raised when the caller's role does not allow the operation."""

    def __init__(self, role: str, action: str) -> None:
        super().__init__(
            message=f"Role '{role}' is not allowed to {action}",
            details={"role": role, "action": action},
        )
