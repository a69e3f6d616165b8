"""
core/scheduler_runner.py — Polling loop that turns due jobs into agent runs.

Each tick queries the ledger for due jobs and dispatches every one that is
not already running as its own asyncio task, so a slow job never delays
the others or the next tick. The in-flight set is the only guard against
dispatching the same job twice.
"""

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Callable, Optional

from core.active_hours import is_within_active_hours
from core.channel_manager import ChannelManager
from core.cron_types import ScheduledJob
from core.job_store import JobStore
from core.schedule import compute_next_run, resolve_timezone
from interfaces.base import AgentInterface

logger = logging.getLogger("core.scheduler_runner")

MAX_FAILURES = 3
TICK_INTERVAL_SECONDS = 60


def format_job_notification(name: str, response: str) -> str:
    return f"*Scheduled: {name}*\n\n{response}"


def format_failure_alert(name: str, failure_count: int) -> str:
    return f"*Scheduled job failed: {name}*\nDisabled after {failure_count} consecutive failures."


class SchedulerRunner:
    """Executes due jobs from the ledger, once per due occurrence."""

    def __init__(
        self,
        store: JobStore,
        agent: AgentInterface,
        delivery: ChannelManager,
        active_hours_start: int = 0,
        active_hours_end: int = 24,
        tz: Optional[tzinfo] = None,
        tick_seconds: float = TICK_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.agent = agent
        self.delivery = delivery
        self.active_hours_start = active_hours_start
        self.active_hours_end = active_hours_end
        self.tz = tz or resolve_timezone(None)
        self.tick_seconds = tick_seconds
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._timer_task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self):
        """Run the first tick immediately, then every tick_seconds."""
        if self.running:
            return
        self._timer_task = asyncio.create_task(self._run_forever())
        logger.info(f"⏰ Scheduler runner started ({self.tick_seconds:g}s tick)")

    async def stop(self):
        """Cancel the timer. In-flight executions are left to finish on their own."""
        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None
        logger.info("Scheduler runner stopped")

    async def _run_forever(self):
        while True:
            await self.tick()
            await asyncio.sleep(self.tick_seconds)

    # ── Tick ─────────────────────────────────────────────────

    async def tick(self) -> list[asyncio.Task]:
        """Dispatch every due job that is not already running. Never raises."""
        spawned: list[asyncio.Task] = []
        try:
            now = self._clock()
            if not is_within_active_hours(now.astimezone(self.tz), self.active_hours_start, self.active_hours_end):
                logger.debug("Outside active hours, skipping scheduler tick")
                return spawned

            due_jobs = self.store.get_due_jobs(now)
            if not due_jobs:
                return spawned

            logger.info(f"Found {len(due_jobs)} due job(s)")
            for job in due_jobs:
                if job.id in self._in_flight:
                    logger.debug(f"Job {job.id} already running, skipping")
                    continue
                self._in_flight.add(job.id)
                task = asyncio.create_task(self._execute_job(job), name=f"scheduled-job:{job.id}")
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                spawned.append(task)
        except Exception as e:
            logger.error(f"Error in scheduler tick: {e}", exc_info=True)
        return spawned

    # ── Execution ────────────────────────────────────────────

    async def _execute_job(self, job: ScheduledJob):
        logger.info(f"▶️ Executing scheduled job {job.name} ({job.id})")
        try:
            try:
                result = await self.agent.send(job.prompt)
            except Exception as e:
                logger.error(f"❌ Job {job.id} execution failed: {e}", exc_info=True)
                await self._record_failure(job)
                return

            await self._notify(format_job_notification(job.name, result.response))
            self._record_success(job)
        except Exception as e:
            logger.error(f"❌ Could not record outcome of job {job.id}: {e}", exc_info=True)
        finally:
            self._in_flight.discard(job.id)

    def _record_success(self, job: ScheduledJob):
        if job.is_recurring:
            next_run = compute_next_run(job.schedule, self._clock(), self.tz)
            self.store.update_after_run(job.id, next_run)
            logger.info(f"🔁 Recurring job {job.id} rescheduled for {next_run.isoformat()}")
        else:
            self.store.update_after_run(job.id, None)
            logger.info(f"✅ One-shot job {job.id} completed")

    async def _record_failure(self, job: ScheduledJob):
        failure_count = self.store.increment_failure_count(job.id)
        if failure_count < MAX_FAILURES:
            logger.info(f"Job {job.id} failed ({failure_count}/{MAX_FAILURES}), will retry when next due")
            return

        self.store.update_status(job.id, "failed")
        logger.warning(f"⚠️ Job {job.id} disabled after {failure_count} consecutive failures")
        await self._notify(format_failure_alert(job.name, failure_count))

    async def _notify(self, message: str):
        try:
            await self.delivery.deliver(message)
        except Exception as e:
            logger.error(f"Notification delivery raised: {e}", exc_info=True)
