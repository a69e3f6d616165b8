"""Scheduler error types.

Creation-time errors surface to whoever issued the call. Run-time errors
(execution, delivery, store) are caught at the runner tick boundary.
"""

from typing import Optional


class SchedulerError(Exception):
    """Base class for scheduler errors."""


class InvalidScheduleError(SchedulerError, ValueError):
    """Malformed cron expression or ISO timestamp."""

    def __init__(self, schedule: str, reason: str = ""):
        self.schedule = schedule
        message = f"Invalid schedule '{schedule}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidJobError(SchedulerError, ValueError):
    pass


class JobNotFoundError(SchedulerError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class JobStateError(SchedulerError):
    def __init__(self, job_id: str, status: str, action: str):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Cannot {action} job {job_id} in status '{status}'")


class ExecutionFailure(SchedulerError):
    """The agent invocation failed for a due job or heartbeat."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class DeliveryFailure(SchedulerError):
    """The notification target could not be reached."""


class StoreError(SchedulerError):
    """The job ledger's underlying persistence failed."""
