"""
Senior Help API application.

Builds the FastAPI app, mounts the versioned API under /api/v1 and wires the
lifespan that opens Redis and the database and starts the reminder scheduler.
Outside production a missing Redis or database only logs an error so the app
can still boot for local work.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from seniorhelp.api import api_router
from seniorhelp.core import redis as redis_core
from seniorhelp.core.config import settings
from seniorhelp.core.database import async_session_maker, close_db, init_db
from seniorhelp.core.redis import close_redis, init_redis, is_redis_available
from seniorhelp.core.scheduler import (
    list_registered_jobs,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from seniorhelp.modules.help_requests import register_help_request_jobs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("seniorhelp")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Open connections and start jobs on startup; release them on shutdown."""
    logger.info(f"Starting Senior Help API in {settings.python_env} mode...")

    try:
        await init_redis()
        logger.info("[OK] Redis connected")
    except Exception as e:
        logger.error(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        logger.info("[OK] Database connected")
    except Exception as e:
        logger.error(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    try:
        register_help_request_jobs()
        await start_scheduler()
        logger.info("[OK] Background scheduler started")
    except Exception as e:
        logger.error(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    logger.info("Shutting down Senior Help API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    await close_redis()
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title="Senior Help API",
    description="Connects seniors who need technology help with verified student volunteers",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service banner."""
    return {
        "message": "Welcome to Senior Help API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check: the database answers."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail={"status": "unavailable"}) from e
    return {"status": "ready"}


# ============================================
# Debug Endpoints (development only)
# ============================================

if settings.is_development:

    @app.get("/debug/redis", tags=["Debug"])
    async def debug_redis():
        """Ping Redis (development only)."""
        if not is_redis_available():
            return {"redis": "not initialized"}
        try:
            await redis_core.redis_client.ping()
            return {"redis": "connected"}
        except Exception as e:
            return {"redis": "error", "message": str(e)}

    @app.get("/debug/jobs", tags=["Debug"])
    async def list_jobs():
        """List registered background jobs and their next run time."""
        return {"jobs": list_registered_jobs()}

    @app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
    async def trigger_job(job_id: str):
        """
        Run a background job now, bypassing the schedule.

        Available jobs:
            - help_requests_session_reminders
        """
        try:
            return await trigger_job_manually(job_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
