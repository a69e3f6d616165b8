import logging
from contextlib import contextmanager
from typing import Iterator

from config.settings import settings
from core import job_service
from core.errors import SchedulerError
from core.job_store import JobStore
from core.schedule import resolve_timezone

logger = logging.getLogger("mcp.scheduler_tools")


@contextmanager
def _open_store() -> Iterator[JobStore]:
    store = JobStore(settings.scheduler_db_path)
    try:
        yield store
    finally:
        store.close()


def schedule_create(name: str, job_type: str, schedule: str, prompt: str, description: str = "") -> str:
    """
    Schedule a task for the assistant to run later, on its own.

    Args:
        name: A short human readable name for the job
        job_type: "one_shot" (runs once) or "recurring" (runs on a cron schedule)
        schedule: For one_shot, an ISO 8601 timestamp (e.g. "2026-03-01T09:00:00");
            for recurring, a 5-field cron expression (e.g. "0 9 * * 1-5")
        prompt: The self-contained instruction to execute when the job is due
        description: Optional free-text note about the job

    Returns:
        The ID and next run time of the created job, or an error message.
    """
    try:
        with _open_store() as store:
            job = job_service.create_job(
                store, name, job_type, schedule, prompt, description,
                tz=resolve_timezone(settings.timezone),
            )
        return f"Created job '{job.name}' with ID {job.id}. Next run: {job.next_run_at.isoformat()}"
    except (SchedulerError, ValueError) as e:
        logger.error(f"Error creating scheduled job: {e}")
        return f"Failed to create job: {e}"


def schedule_list(include_all: bool = False) -> str:
    """
    List scheduled jobs.

    Args:
        include_all: Also show paused, completed and failed jobs.
    """
    try:
        with _open_store() as store:
            jobs = job_service.list_jobs(store, include_all)
    except SchedulerError as e:
        return f"Failed to list jobs: {e}"
    if not jobs:
        return "No jobs scheduled."

    out = "Scheduled Jobs:\n"
    for j in jobs:
        out += (
            f"- ID: {j.id} | Name: {j.name} | Type: {j.job_type} | Schedule: {j.schedule} "
            f"| Status: {j.status} | Next: {j.next_run_at.isoformat()}\n"
        )
    return out


def _transition(action, job_id: str, verb: str) -> str:
    try:
        with _open_store() as store:
            job = action(store, job_id)
        return f"Job {job.id} ({job.name}) {verb}. Status: {job.status}"
    except SchedulerError as e:
        return f"Failed: {e}"


def schedule_pause(job_id: str) -> str:
    """
    Pause an active scheduled job.

    Args:
        job_id: The ID of the job to pause.
    """
    return _transition(job_service.pause_job, job_id, "paused")


def schedule_resume(job_id: str) -> str:
    """
    Resume a paused or failed scheduled job.

    Args:
        job_id: The ID of the job to resume.
    """
    return _transition(job_service.resume_job, job_id, "resumed")


def schedule_delete(job_id: str) -> str:
    """
    Delete a scheduled job by ID.

    Args:
        job_id: The ID of the job to delete.
    """
    try:
        with _open_store() as store:
            job_service.delete_job(store, job_id)
        return f"Job {job_id} deleted."
    except SchedulerError as e:
        return f"Failed: {e}"


TOOL_REGISTRY = {
    "schedule_create": schedule_create,
    "schedule_list": schedule_list,
    "schedule_pause": schedule_pause,
    "schedule_resume": schedule_resume,
    "schedule_delete": schedule_delete,
}
