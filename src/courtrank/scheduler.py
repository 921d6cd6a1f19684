# src/courtrank/scheduler.py

"""Cron-driven weekly and monthly resets.

Both jobs go through ``reset_window`` with the scheduled trigger, so a
job that fires twice (misfire catch-up, several workers) resets once.
"""

import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courtrank.constants import ResetTrigger, ResetWindow
from courtrank.schemas.leaderboard import ResetResult
from courtrank.services.resets import reset_window

logger = logging.getLogger(__name__)

# An hour late is still the right period to reset
MISFIRE_GRACE_SECONDS = 3600

RESET_TRIGGERS = {
    ResetWindow.WEEKLY: {"day_of_week": "mon", "hour": 0, "minute": 0},
    ResetWindow.MONTHLY: {"day": 1, "hour": 0, "minute": 0},
}


async def run_scheduled_reset(
    session_factory: async_sessionmaker[AsyncSession], window: ResetWindow
) -> ResetResult:
    """Job body: one reset in a fresh session."""
    async with session_factory() as session:
        try:
            return await reset_window(session, window, ResetTrigger.SCHEDULED)
        except Exception:
            logger.error(
                "Scheduled reset failed",
                extra={"window": window.value},
                exc_info=True,
            )
            raise


def create_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIOScheduler:
    """Build (but do not start) the reset scheduler."""
    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    for window, fields in RESET_TRIGGERS.items():
        scheduler.add_job(
            run_scheduled_reset,
            CronTrigger(timezone=timezone.utc, **fields),
            args=[session_factory, window],
            id=f"{window.value}_leaderboard_reset",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
        )
    return scheduler
