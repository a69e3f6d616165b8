"""
core/job_service.py — Operator-facing job operations.

Validates input before anything is written to the ledger: the job type
must be one_shot or recurring, and the schedule must parse as an ISO
instant or a 5-field cron expression respectively. Shared by the CLI,
the HTTP API and the agent tools.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Optional

from pydantic import ValidationError

from core.cron_types import JOB_TYPES, CreateJobInput, ScheduledJob
from core.errors import InvalidJobError, JobNotFoundError, JobStateError
from core.job_store import JobStore
from core.schedule import initial_next_run

logger = logging.getLogger("core.job_service")

PAUSABLE = ("active",)
RESUMABLE = ("paused", "failed")


def create_job(
    store: JobStore,
    name: str,
    job_type: str,
    schedule: str,
    prompt: str,
    description: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> ScheduledJob:
    """
    Validate and create a job.

    Raises:
        InvalidJobError: unknown job_type or missing fields.
        InvalidScheduleError: schedule does not parse for the job type.
    """
    if job_type not in JOB_TYPES:
        raise InvalidJobError(f"Invalid job_type: {job_type}. Must be 'one_shot' or 'recurring'.")
    try:
        job_input = CreateJobInput(
            name=name,
            description=description or None,
            job_type=job_type,
            schedule=schedule.strip(),
            prompt=prompt,
        )
    except ValidationError as e:
        raise InvalidJobError(f"Invalid job: {e.errors()[0]['loc'][0]} {e.errors()[0]['msg']}") from e

    next_run_at = initial_next_run(job_input.job_type, job_input.schedule, now or datetime.now(timezone.utc), tz)
    return store.create(job_input, next_run_at)


def ensure_job(
    store: JobStore,
    name: str,
    job_type: str,
    schedule: str,
    prompt: str,
    description: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> tuple[ScheduledJob, bool]:
    """Create the job unless one with this name already exists. Returns (job, created)."""
    existing = store.find_by_name(name)
    if existing is not None:
        logger.debug(f"Job '{name}' already provisioned ({existing.id})")
        return existing, False
    return create_job(store, name, job_type, schedule, prompt, description, now, tz), True


def get_job(store: JobStore, job_id: str) -> ScheduledJob:
    job = store.get_by_id(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


def list_jobs(store: JobStore, include_all: bool = False) -> list[ScheduledJob]:
    return store.list(include_terminal=include_all)


def pause_job(store: JobStore, job_id: str) -> ScheduledJob:
    job = get_job(store, job_id)
    if job.status not in PAUSABLE:
        raise JobStateError(job_id, job.status, "pause")
    store.update_status(job_id, "paused")
    logger.info(f"⏸️ Paused job {job.name} ({job_id})")
    return get_job(store, job_id)


def resume_job(store: JobStore, job_id: str) -> ScheduledJob:
    """Reactivate a paused or failed job. Its failure_count is left as is."""
    job = get_job(store, job_id)
    if job.status not in RESUMABLE:
        raise JobStateError(job_id, job.status, "resume")
    store.update_status(job_id, "active")
    logger.info(f"▶️ Resumed job {job.name} ({job_id})")
    return get_job(store, job_id)


def delete_job(store: JobStore, job_id: str) -> bool:
    if not store.delete(job_id):
        raise JobNotFoundError(job_id)
    logger.info(f"🗑️ Deleted job {job_id}")
    return True
