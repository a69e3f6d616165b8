"""Scheduler types."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

JobType = Literal["one_shot", "recurring"]
JobStatus = Literal["active", "paused", "completed", "failed"]

JOB_TYPES: tuple[str, ...] = ("one_shot", "recurring")
JOB_STATUSES: tuple[str, ...] = ("active", "paused", "completed", "failed")


class CreateJobInput(BaseModel):
    """Fields supplied by whoever creates a job."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    job_type: JobType
    # For "one_shot": ISO-8601 instant. For "recurring": 5-field cron expression.
    schedule: str = Field(min_length=1)
    prompt: str = Field(min_length=1)


class ScheduledJob(BaseModel):
    """A row of the job ledger."""
    id: str
    name: str
    description: Optional[str] = None
    job_type: JobType
    schedule: str
    prompt: str
    next_run_at: datetime
    last_run_at: Optional[datetime] = None
    status: JobStatus = "active"
    failure_count: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime

    @property
    def is_recurring(self) -> bool:
        return self.job_type == "recurring"


class AgentResponse(BaseModel):
    """Text produced by one stateless agent turn."""
    response: str
