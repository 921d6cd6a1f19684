# src/courtrank/main.py

"""Main FastAPI application for CourtRank."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .api import leaderboard, player
from .config import settings
from .db.session import AsyncSessionLocal, engine
from .exceptions import (
    AuthenticationError,
    ConflictError,
    CourtRankError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from .middleware.logging import RequestLoggingMiddleware
from .scheduler import create_scheduler
from .services.resets import catch_up_resets

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown events."""
    # Startup: apply resets missed while down, then start the cron jobs
    async with AsyncSessionLocal() as session:
        await catch_up_resets(session)

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = create_scheduler(AsyncSessionLocal)
        scheduler.start()
        logger.info("Reset scheduler started (weekly: Monday, monthly: day 1, UTC)")

    yield

    # Shutdown: stop the scheduler and dispose of database connections
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await engine.dispose()


app = FastAPI(title="CourtRank API", lifespan=lifespan)

# Add middleware (order matters - first added = outermost)
app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Global Exception Handlers
# =============================================================================


def _error_response(status_code: int, exc: CourtRankError, **kwargs) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_type": type(exc).__name__},
        **kwargs,
    )


@app.exception_handler(ResourceNotFoundError)
async def resource_not_found_handler(
    request: Request, exc: ResourceNotFoundError
) -> JSONResponse:
    """Handle all resource not found errors -> 404."""
    logger.warning("Resource not found: %s", exc.message, extra=exc.details)
    return _error_response(404, exc)


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle all validation errors -> 422."""
    logger.warning("Validation error: %s", exc.message, extra=exc.details)
    return _error_response(422, exc)


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """Handle lost races and duplicate awards -> 409."""
    logger.warning("Conflict: %s", exc.message, extra=exc.details)
    return _error_response(409, exc)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    """Handle missing or invalid credentials -> 401."""
    logger.warning("Authentication failed: %s", exc.message)
    return _error_response(401, exc, headers={"WWW-Authenticate": "Bearer"})


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(
    request: Request, exc: PermissionDeniedError
) -> JSONResponse:
    """Handle role checks -> 403."""
    logger.warning("Permission denied: %s", exc.message, extra=exc.details)
    return _error_response(403, exc)


@app.exception_handler(CourtRankError)
async def courtrank_error_handler(
    request: Request, exc: CourtRankError
) -> JSONResponse:
    """Catch-all for any other CourtRank errors -> 500."""
    logger.error("CourtRank error: %s", exc.message, extra=exc.details, exc_info=True)
    return _error_response(500, exc)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(
    request: Request, exc: IntegrityError
) -> JSONResponse:
    """Handle database integrity constraint violations."""
    error_msg = str(exc.orig) if exc.orig else str(exc)
    logger.warning("Database integrity error: %s", error_msg)

    # Unique constraint violations -> 409 Conflict
    if "UNIQUE constraint failed" in error_msg or "duplicate key" in error_msg:
        return JSONResponse(
            status_code=409,
            content={"detail": "Resource already exists with given unique field(s)"},
        )

    # Negative point totals -> 422
    if "CHECK constraint failed" in error_msg or "violates check" in error_msg:
        return JSONResponse(
            status_code=422,
            content={"detail": "Value violates a leaderboard constraint"},
        )

    return JSONResponse(
        status_code=400,
        content={"detail": "Database constraint violation"},
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Catch-all for other SQLAlchemy database errors."""
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal database error occurred"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred"},
    )


# Include routers into the main application
app.include_router(leaderboard.router)
app.include_router(player.router)


@app.get("/", tags=["Root"])
async def read_root() -> dict[str, str]:
    """Provides a welcome message."""
    return {"message": "Welcome to the CourtRank API"}


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}
