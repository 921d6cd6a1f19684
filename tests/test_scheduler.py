# tests/test_scheduler.py

"""Tests for the cron-driven reset jobs."""

import logging
from datetime import datetime, timezone

import pytest
from apscheduler.triggers.cron import CronTrigger
from courtrank import scheduler as scheduler_module
from courtrank.constants import ResetWindow
from courtrank.db.models import ResetMarker
from courtrank.scheduler import (
    MISFIRE_GRACE_SECONDS,
    create_scheduler,
    run_scheduled_reset,
)
from courtrank.services.ingestion import apply_progress_event


def test_scheduler_registers_both_reset_jobs(session_factory):
    """Test that the weekly and monthly jobs are built with UTC cron triggers."""
    scheduler = create_scheduler(session_factory)

    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {"weekly_leaderboard_reset", "monthly_leaderboard_reset"}
    for job in jobs.values():
        assert isinstance(job.trigger, CronTrigger)
        assert str(job.trigger.timezone) == "UTC"
        assert job.coalesce is True
        assert job.max_instances == 1
        assert job.misfire_grace_time == MISFIRE_GRACE_SECONDS

    weekly = jobs["weekly_leaderboard_reset"].trigger
    monthly = jobs["monthly_leaderboard_reset"].trigger
    weekly_fields = {f.name: str(f) for f in weekly.fields}
    monthly_fields = {f.name: str(f) for f in monthly.fields}
    assert weekly_fields["day_of_week"] == "mon"
    assert weekly_fields["hour"] == "0"
    assert monthly_fields["day"] == "1"
    assert monthly_fields["minute"] == "0"
    assert not scheduler.running


@pytest.mark.asyncio
async def test_scheduled_job_resets_once_per_period(
    db_session, session_factory, make_player, make_event
):
    """A job that fires twice in the same period resets once."""
    # Points from a month that is over whenever the job runs
    player = await make_player("CronSubject")
    past = datetime(2020, 1, 15, tzinfo=timezone.utc)
    await apply_progress_event(
        db_session, make_event(player.id, occurred_at=past), now=past
    )

    first = await run_scheduled_reset(session_factory, ResetWindow.MONTHLY)
    second = await run_scheduled_reset(session_factory, ResetWindow.MONTHLY)

    assert first.performed is True
    assert first.affected == 1
    assert second.performed is False
    assert second.period_key == first.period_key
    marker = await db_session.get(ResetMarker, "monthly")
    assert marker.trigger == "scheduled"


@pytest.mark.asyncio
async def test_failed_job_is_logged_and_raised(session_factory, monkeypatch, caplog):
    async def broken_reset(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(scheduler_module, "reset_window", broken_reset)

    with caplog.at_level(logging.ERROR, logger="courtrank.scheduler"):
        with pytest.raises(RuntimeError):
            await run_scheduled_reset(session_factory, ResetWindow.WEEKLY)

    assert "Scheduled reset failed" in caplog.text
