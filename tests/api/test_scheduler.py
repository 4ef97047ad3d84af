from unittest.mock import AsyncMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from lifecycle import scheduler


@pytest.mark.asyncio
async def test_lifecycle_job_swallows_sweep_failure():
    with patch.object(scheduler, "auction_process_lifecycles", new=AsyncMock(side_effect=RuntimeError("down"))):
        await scheduler.lifecycle_job()


@pytest.mark.asyncio
async def test_summary_job_logs_counts():
    summary = AsyncMock(return_value={"active": 1})
    with patch.object(scheduler, "auction_status_summary", new=summary):
        await scheduler.summary_job()
    summary.assert_awaited_once()


def test_scheduler_registers_jobs(monkeypatch):
    monkeypatch.setenv("LIFECYCLE_INTERVAL_SECONDS", "30")
    with patch.object(AsyncIOScheduler, "start"), patch.object(AsyncIOScheduler, "shutdown") as shutdown:
        sched = scheduler.init_scheduler()
        jobs = {job.id: job for job in sched.get_jobs()}
        scheduler.shutdown_scheduler()

    assert set(jobs) == {"auction_lifecycle", "auction_summary"}
    assert jobs["auction_lifecycle"].max_instances == 1
    assert jobs["auction_lifecycle"].trigger.interval.total_seconds() == 30
    shutdown.assert_called_once_with(wait=False)
