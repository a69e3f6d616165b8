"""
core/job_store.py — Durable job ledger backed by SQLite (WAL).

Every mutation is a single-row statement run inside its own transaction,
so each call is all-or-nothing. Reads return None / [] when nothing
matches. Persistence failures raise StoreError; an unknown status
raises InvalidJobError before anything is written.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional

from core.cron_types import JOB_STATUSES, CreateJobInput, JobStatus, ScheduledJob
from core.errors import InvalidJobError, StoreError

logger = logging.getLogger("core.job_store")

_COLUMNS = (
    "id, name, description, job_type, schedule, prompt, next_run_at, last_run_at, "
    "status, failure_count, created_at, updated_at"
)


def _utc_iso(dt: datetime) -> str:
    # Fixed-width UTC text so lexical order in SQL matches time order.
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class JobStore:
    """Single source of truth for scheduled jobs."""

    def __init__(self, db_path: str | Path, clock: Callable[[], datetime] = _now_utc):
        self.db_path = str(db_path)
        self._clock = clock
        self._lock = threading.RLock()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
                self.db_path, timeout=30, check_same_thread=False
            )
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open job ledger at {self.db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self.initialize()

    def __enter__(self) -> "JobStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        if self._conn is None:
            raise StoreError("Job ledger is closed")
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                raise StoreError(f"Job ledger operation failed: {e}") from e

    def initialize(self):
        """Create tables if they don't exist."""
        with self._transaction() as conn:
            conn.execute("PRAGMA journal_mode = WAL;")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS scheduled_jobs (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    job_type TEXT NOT NULL,
                    schedule TEXT NOT NULL,
                    prompt TEXT NOT NULL,
                    next_run_at TEXT NOT NULL,
                    last_run_at TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    failure_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_jobs_status_next_run ON scheduled_jobs(status, next_run_at)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_name ON scheduled_jobs(name)")

    def close(self):
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug(f"Job ledger closed: {self.db_path}")

    # ── Reads ─────────────────────────────────────────────────

    def get_by_id(self, job_id: str) -> Optional[ScheduledJob]:
        with self._transaction() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM scheduled_jobs WHERE id = ?", (job_id,)).fetchone()
        return ScheduledJob(**dict(row)) if row else None

    def find_by_name(self, name: str) -> Optional[ScheduledJob]:
        """Oldest job with this name, in any status."""
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM scheduled_jobs WHERE name = ? ORDER BY created_at LIMIT 1",
                (name,),
            ).fetchone()
        return ScheduledJob(**dict(row)) if row else None

    def list(self, include_terminal: bool = False) -> list[ScheduledJob]:
        """Jobs ordered by next_run_at. Only active ones unless include_terminal."""
        query = f"SELECT {_COLUMNS} FROM scheduled_jobs"
        if not include_terminal:
            query += " WHERE status = 'active'"
        query += " ORDER BY next_run_at"
        with self._transaction() as conn:
            rows = conn.execute(query).fetchall()
        return [ScheduledJob(**dict(row)) for row in rows]

    def get_due_jobs(self, as_of: datetime) -> list[ScheduledJob]:
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM scheduled_jobs
                WHERE status = 'active' AND next_run_at <= ?
                ORDER BY next_run_at
                """,
                (_utc_iso(as_of),),
            ).fetchall()
        return [ScheduledJob(**dict(row)) for row in rows]

    # ── Mutations ─────────────────────────────────────────────

    def create(self, job_input: CreateJobInput, next_run_at: datetime) -> ScheduledJob:
        job_id = str(uuid.uuid4())
        now = _utc_iso(self._clock())
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO scheduled_jobs (
                    id, name, description, job_type, schedule, prompt,
                    next_run_at, status, failure_count, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, 'active', 0, ?, ?)
                """,
                (
                    job_id,
                    job_input.name,
                    job_input.description,
                    job_input.job_type,
                    job_input.schedule,
                    job_input.prompt,
                    _utc_iso(next_run_at),
                    now,
                    now,
                ),
            )
        logger.info(f"Created job {job_input.name} ({job_id}), next run {_utc_iso(next_run_at)}")
        return self.get_by_id(job_id)

    def update_after_run(self, job_id: str, next_run_at: Optional[datetime]):
        """Record a successful run: reschedule (recurring) or complete (one-shot)."""
        now = _utc_iso(self._clock())
        with self._transaction() as conn:
            if next_run_at is not None:
                conn.execute(
                    """
                    UPDATE scheduled_jobs
                    SET last_run_at = ?, next_run_at = ?, failure_count = 0, updated_at = ?
                    WHERE id = ?
                    """,
                    (now, _utc_iso(next_run_at), now, job_id),
                )
            else:
                conn.execute(
                    """
                    UPDATE scheduled_jobs
                    SET last_run_at = ?, status = 'completed', updated_at = ?
                    WHERE id = ?
                    """,
                    (now, now, job_id),
                )

    def increment_failure_count(self, job_id: str) -> int:
        """Atomically bump failure_count and return the new value (0 if no such job)."""
        now = _utc_iso(self._clock())
        with self._transaction() as conn:
            conn.execute(
                "UPDATE scheduled_jobs SET failure_count = failure_count + 1, updated_at = ? WHERE id = ?",
                (now, job_id),
            )
            row = conn.execute("SELECT failure_count FROM scheduled_jobs WHERE id = ?", (job_id,)).fetchone()
        return int(row["failure_count"]) if row else 0

    def update_status(self, job_id: str, status: JobStatus) -> bool:
        if status not in JOB_STATUSES:
            raise InvalidJobError(f"Unknown job status: {status}")
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE scheduled_jobs SET status = ?, updated_at = ? WHERE id = ?",
                (status, _utc_iso(self._clock()), job_id),
            )
        return cur.rowcount > 0

    def delete(self, job_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM scheduled_jobs WHERE id = ?", (job_id,))
        return cur.rowcount > 0
