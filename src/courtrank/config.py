# src/courtrank/config.py

"""Runtime configuration read from environment variables."""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings.

    Attributes:
        database_url: SQLAlchemy async URL (SQLite fallback for development)
        db_echo: Echo SQL statements to the log
        db_pool_size / db_max_overflow / db_pool_recycle: Pool tuning for
            non-SQLite databases
        db_busy_timeout: Seconds a SQLite writer waits for the file lock
        jwt_secret / jwt_algorithm / jwt_expiration_hours: Caller bearer tokens
        apply_max_attempts: Optimistic-lock attempts per progress event
        reset_guard_seconds: Window in which a second manual reset is a no-op
        scheduler_enabled: Start the cron-driven window resets on startup
            (default on)
        log_level: Root log level
    """

    database_url: str = os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./courtrank.db"
    )
    db_echo: bool = _env_bool("DB_ECHO", "false")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "20"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))
    db_busy_timeout: float = float(os.getenv("DB_BUSY_TIMEOUT", "30"))

    jwt_secret: str = os.getenv("COURTRANK_JWT_SECRET", "dev-secret-change-me")
    jwt_algorithm: str = os.getenv("COURTRANK_JWT_ALGORITHM", "HS256")
    jwt_expiration_hours: int = int(os.getenv("COURTRANK_JWT_EXPIRATION_HOURS", "24"))

    apply_max_attempts: int = int(os.getenv("COURTRANK_APPLY_MAX_ATTEMPTS", "5"))
    reset_guard_seconds: int = int(os.getenv("COURTRANK_RESET_GUARD_SECONDS", "300"))
    scheduler_enabled: bool = _env_bool("COURTRANK_SCHEDULER_ENABLED", "true")

    log_level: str = os.getenv("COURTRANK_LOG_LEVEL", "INFO")


settings = Settings()
