"""
Periodic Jobs

An AsyncIOScheduler owned by the FastAPI lifespan. Feature modules register
their jobs (currently the hourly session reminder) into a registry, and the
registry is replayed onto the scheduler when it starts. A failing run is
logged by the listener and the next run happens as usual.

Usage:
    from seniorhelp.core.scheduler import register_job, start_scheduler, stop_scheduler

    register_job("send_reminders", send_session_reminders, IntervalTrigger(hours=1))
    await start_scheduler()
    ...
    await stop_scheduler()
"""

import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Coroutine[Any, Any, Any]]

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None

# Job registry: job_id -> (function, trigger)
_job_registry: dict[str, tuple[JobFunc, BaseTrigger]] = {}


class SchedulerConfig:
    """APScheduler settings shared by every job."""

    TIMEZONE = "UTC"

    JOB_COALESCE = True  # missed runs collapse into one
    JOB_MAX_INSTANCES = 1
    JOB_MISFIRE_GRACE_TIME = 300  # seconds

    JOB_DEFAULTS = {
        "coalesce": JOB_COALESCE,
        "max_instances": JOB_MAX_INSTANCES,
        "misfire_grace_time": JOB_MISFIRE_GRACE_TIME,
    }


def _job_listener(event: JobExecutionEvent) -> None:
    """Log job execution results."""
    if event.exception:
        logger.error(
            f"Scheduled run of {event.job_id} raised: {event.exception}",
            exc_info=event.exception,
        )
    else:
        logger.info(f"Job {event.job_id} finished at {datetime.now(UTC).isoformat()}")


def get_scheduler() -> AsyncIOScheduler | None:
    return _scheduler


def _add_job(job_id: str, func: JobFunc, trigger: BaseTrigger) -> None:
    _scheduler.add_job(func, trigger=trigger, id=job_id, replace_existing=True)
    logger.info(f"Scheduled job {job_id} ({trigger})")


async def start_scheduler() -> AsyncIOScheduler:
    """Create the scheduler, add every registered job and start it."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("start_scheduler called twice; keeping the running scheduler")
        return _scheduler

    _scheduler = AsyncIOScheduler(
        timezone=SchedulerConfig.TIMEZONE,
        job_defaults=SchedulerConfig.JOB_DEFAULTS,
    )
    _scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    for job_id, (func, trigger) in _job_registry.items():
        _add_job(job_id, func, trigger)

    _scheduler.start()

    logger.info(f"Scheduler started ({len(_job_registry)} job(s))")
    return _scheduler


async def stop_scheduler() -> None:
    """Stop the background scheduler, waiting for running jobs to finish."""
    global _scheduler

    if _scheduler is None or not _scheduler.running:
        logger.debug("No running scheduler to stop")
        _scheduler = None
        return

    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler stopped")


def register_job(job_id: str, func: JobFunc, trigger: BaseTrigger) -> None:
    """
    Register a job.

    Jobs registered before start_scheduler() are added when it starts; jobs
    registered afterwards are added immediately.

    Args:
        job_id: Stable id, also used by the manual trigger endpoint
        func: Coroutine function taking no arguments
        trigger: When to run it
    """
    _job_registry[job_id] = (func, trigger)

    if _scheduler is None:
        logger.debug(f"Scheduler not initialized, job {job_id} will be added on start")
        return

    _add_job(job_id, func, trigger)


async def trigger_job_manually(job_id: str) -> dict[str, Any]:
    """
    Run a registered job right now, bypassing the schedule.

    Returns:
        Dict with job_id, status ("success" or "error"), executed_at, and
        either the job's result or the error message

    Raises:
        ValueError: If job_id is not in the registry
    """
    if job_id not in _job_registry:
        raise ValueError(
            f"Unknown job {job_id!r}; registered: {sorted(_job_registry)}"
        )

    func, _ = _job_registry[job_id]
    executed_at = datetime.now(UTC)

    logger.info(f"Running {job_id} on demand")

    try:
        result = await func()
        logger.info(f"On-demand run of {job_id} finished")
        return {
            "job_id": job_id,
            "status": "success",
            "executed_at": executed_at.isoformat(),
            "result": result,
        }
    except Exception as e:
        logger.error(f"On-demand run of {job_id} failed: {e}", exc_info=True)
        return {
            "job_id": job_id,
            "status": "error",
            "executed_at": executed_at.isoformat(),
            "error": str(e),
        }


def list_registered_jobs() -> list[dict[str, Any]]:
    """List registered jobs with their next run time."""
    jobs = []

    for job_id in _job_registry:
        job_info: dict[str, Any] = {"job_id": job_id, "next_run_time": None}

        if _scheduler is not None:
            scheduled_job = _scheduler.get_job(job_id)
            if scheduled_job and scheduled_job.next_run_time:
                job_info["next_run_time"] = scheduled_job.next_run_time.isoformat()

        jobs.append(job_info)

    return jobs
