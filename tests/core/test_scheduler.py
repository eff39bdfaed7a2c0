"""
Tests for the background job registry.
"""

from unittest.mock import AsyncMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from seniorhelp.core import scheduler


@pytest.fixture(autouse=True)
def clean_registry():
    scheduler._job_registry.clear()
    yield
    scheduler._job_registry.clear()


class TestRegistry:
    @pytest.mark.asyncio
    async def test_job_registered_before_start_is_scheduled(self):
        async def job():
            return {"ok": True}

        scheduler.register_job("reminders", job, IntervalTrigger(hours=1))

        await scheduler.start_scheduler()
        try:
            assert scheduler.get_scheduler().get_job("reminders") is not None
            jobs = scheduler.list_registered_jobs()
            assert jobs[0]["job_id"] == "reminders"
            assert jobs[0]["next_run_time"] is not None
        finally:
            await scheduler.stop_scheduler()

        assert scheduler.get_scheduler() is None

    @pytest.mark.asyncio
    async def test_trigger_manually_returns_result(self):
        job = AsyncMock(return_value={"total_processed": 2})
        scheduler.register_job("reminders", job, IntervalTrigger(hours=1))

        result = await scheduler.trigger_job_manually("reminders")

        assert result["status"] == "success"
        assert result["result"] == {"total_processed": 2}
        job.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_trigger_manually_reports_failure(self):
        job = AsyncMock(side_effect=RuntimeError("smtp down"))
        scheduler.register_job("reminders", job, IntervalTrigger(hours=1))

        result = await scheduler.trigger_job_manually("reminders")

        assert result["status"] == "error"
        assert result["error"] == "smtp down"

    @pytest.mark.asyncio
    async def test_trigger_unknown_job(self):
        with pytest.raises(ValueError):
            await scheduler.trigger_job_manually("nope")
