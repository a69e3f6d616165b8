"""
app.py — FastAPI application.

Owns the process lifecycle of the proactive scheduler: opens the job
ledger, wires the delivery channel and the agent into both runners,
and exposes the operator job API.
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config.settings import settings
from core import job_service
from core.agent import StatelessAgent
from core.channel_manager import ChannelManager
from core.cron_types import ScheduledJob
from core.errors import InvalidJobError, InvalidScheduleError, JobNotFoundError, JobStateError
from core.heartbeat import HeartbeatRunner
from core.job_store import JobStore
from core.schedule import resolve_timezone
from core.scheduler_runner import SchedulerRunner
from interfaces.telegram import TelegramClient
from mcp_servers import load_plugins

logger = logging.getLogger(__name__)


# ==========================================================
# 1. Lifespan (startup / shutdown)
# ==========================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting proactive scheduler...")

    tz = resolve_timezone(settings.timezone)
    if settings.google_api_key:
        # Pydantic AI's google-gla provider reads GEMINI_API_KEY
        os.environ.setdefault("GEMINI_API_KEY", settings.google_api_key)

    store = JobStore(settings.scheduler_db_path)
    channel_manager = ChannelManager()
    scheduler_runner: Optional[SchedulerRunner] = None
    heartbeat_runner: Optional[HeartbeatRunner] = None
    try:
        channel_manager.register_client("telegram", TelegramClient(settings.telegram_bot_token))
        if not settings.telegram_bot_token:
            logger.warning("⚠️ TELEGRAM_BOT_TOKEN is not set - notifications will not be delivered")

        agent = StatelessAgent(settings.agent_model, tools=list(load_plugins().values()))
        scheduler_runner = SchedulerRunner(
            store=store,
            agent=agent,
            delivery=channel_manager,
            active_hours_start=settings.active_hours_start,
            active_hours_end=settings.active_hours_end,
            tz=tz,
            tick_seconds=settings.scheduler_tick_seconds,
        )
        heartbeat_runner = HeartbeatRunner(
            agent=agent,
            delivery=channel_manager,
            heartbeat_path=settings.heartbeat_path,
            interval_minutes=settings.heartbeat_interval_minutes,
            active_hours_start=settings.active_hours_start,
            active_hours_end=settings.active_hours_end,
            tz=tz,
        )

        app.state.store = store
        app.state.scheduler_runner = scheduler_runner
        app.state.heartbeat_runner = heartbeat_runner

        if settings.proactive_enabled:
            await scheduler_runner.start()
            if settings.heartbeat_enabled:
                await heartbeat_runner.start()
            logger.info("✅ Proactive systems enabled")
        else:
            logger.info("Proactive systems disabled (PROACTIVE_ENABLED=false)")

        yield
    finally:
        logger.info("🔴 Shutting down...")
        if heartbeat_runner is not None:
            await heartbeat_runner.stop()
        if scheduler_runner is not None:
            await scheduler_runner.stop()
        await channel_manager.close()
        store.close()
        logger.info("✅ Job ledger closed")


app = FastAPI(
    title="Proactive Scheduler",
    description="Scheduled jobs and heartbeat checks for an always-on assistant",
    version="0.1.0",
    lifespan=lifespan,
)


# ==========================================================
# 2. Dependencies & error mapping
# ==========================================================

def get_store(request: Request) -> JobStore:
    return request.app.state.store


@app.exception_handler(InvalidScheduleError)
@app.exception_handler(InvalidJobError)
async def _bad_request(request: Request, exc: Exception):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(JobNotFoundError)
async def _not_found(request: Request, exc: JobNotFoundError):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(JobStateError)
async def _conflict(request: Request, exc: JobStateError):
    return JSONResponse({"error": str(exc)}, status_code=409)


class JobCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    job_type: str
    schedule: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    description: Optional[str] = None


# ==========================================================
# 3. Endpoints
# ==========================================================

@app.get("/health")
async def health(request: Request):
    """Health check endpoint."""
    scheduler_runner = getattr(request.app.state, "scheduler_runner", None)
    heartbeat_runner = getattr(request.app.state, "heartbeat_runner", None)
    return {
        "status": "healthy",
        "scheduler_running": bool(scheduler_runner and scheduler_runner.running),
        "heartbeat_running": bool(heartbeat_runner and heartbeat_runner.running),
    }


@app.get("/api/v1/jobs", response_model=list[ScheduledJob])
async def list_jobs_endpoint(all: bool = False, store: JobStore = Depends(get_store)):
    return job_service.list_jobs(store, include_all=all)


@app.post("/api/v1/jobs", response_model=ScheduledJob, status_code=201)
async def create_job_endpoint(body: JobCreateRequest, store: JobStore = Depends(get_store)):
    job = job_service.create_job(
        store,
        name=body.name,
        job_type=body.job_type,
        schedule=body.schedule,
        prompt=body.prompt,
        description=body.description,
        tz=resolve_timezone(settings.timezone),
    )
    logger.info(f"🌐 Job created via API: {job.name} ({job.id})")
    return job


@app.get("/api/v1/jobs/{job_id}", response_model=ScheduledJob)
async def get_job_endpoint(job_id: str, store: JobStore = Depends(get_store)):
    return job_service.get_job(store, job_id)


@app.post("/api/v1/jobs/{job_id}/pause", response_model=ScheduledJob)
async def pause_job_endpoint(job_id: str, store: JobStore = Depends(get_store)):
    return job_service.pause_job(store, job_id)


@app.post("/api/v1/jobs/{job_id}/resume", response_model=ScheduledJob)
async def resume_job_endpoint(job_id: str, store: JobStore = Depends(get_store)):
    return job_service.resume_job(store, job_id)


@app.delete("/api/v1/jobs/{job_id}")
async def delete_job_endpoint(job_id: str, store: JobStore = Depends(get_store)):
    job_service.delete_job(store, job_id)
    return {"deleted": True, "id": job_id}


# ==========================================================
# 4. Entrypoint
# ==========================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000)
