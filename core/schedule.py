"""
core/schedule.py — Next-run computation for cron expressions and ISO instants.

Every function here is pure: callers pass the reference instant explicitly.
All returned datetimes are timezone-aware UTC. Cron fields are evaluated
in ``tz`` (the local system zone when omitted).
"""

import logging
import os
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from core.errors import InvalidScheduleError

logger = logging.getLogger("core.schedule")

CRON_FIELD_COUNT = 5


def _local_zone() -> Optional[tzinfo]:
    """The system zone with its DST rules, from $TZ or /etc/localtime."""
    name = os.environ.get("TZ", "").lstrip(":")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.debug(f"TZ={name} is not an IANA zone: {e}")

    localtime = Path("/etc/localtime")
    try:
        target = str(localtime.resolve())
        if "zoneinfo/" in target:
            return ZoneInfo(target.split("zoneinfo/", 1)[1])
        with localtime.open("rb") as f:
            return ZoneInfo.from_file(f, key="localtime")
    except (OSError, ZoneInfoNotFoundError, ValueError) as e:
        logger.debug(f"Cannot read system zone from {localtime}: {e}")
    return None


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Return the named IANA zone, or the local system zone."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{name}', falling back to local time")
    zone = _local_zone()
    if zone is not None:
        return zone
    # Fixed offset: correct until the next DST change only
    logger.warning("Could not determine the system timezone, using the current UTC offset")
    return datetime.now().astimezone().tzinfo


def _aware(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz or resolve_timezone(None))
    return dt


def validate_cron(expr: str) -> str:
    """Return the normalized expression or raise InvalidScheduleError."""
    normalized = " ".join(expr.split())
    if len(normalized.split(" ")) != CRON_FIELD_COUNT:
        raise InvalidScheduleError(expr, f"expected {CRON_FIELD_COUNT} fields")
    if not croniter.is_valid(normalized):
        raise InvalidScheduleError(expr, "not a valid cron expression")
    return normalized


def compute_next_run(expr: str, after: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    Earliest instant strictly after ``after`` matching the cron expression.

    Day-of-month and day-of-week are OR'd when both are restricted.
    """
    normalized = validate_cron(expr)
    zone = tz or resolve_timezone(None)
    base = _aware(after, zone).astimezone(zone)

    try:
        itr = croniter(normalized, base)
        next_dt = itr.get_next(datetime)
        while next_dt <= base:
            next_dt = itr.get_next(datetime)
    except (ValueError, KeyError) as e:
        raise InvalidScheduleError(expr, str(e)) from e

    return next_dt.astimezone(timezone.utc)


def parse_run_at(value: str, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 instant. Naive timestamps are read in ``tz``."""
    text = value.strip()
    if not text:
        raise InvalidScheduleError(value, "empty timestamp")
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidScheduleError(value, str(e)) from e
    return _aware(dt, tz).astimezone(timezone.utc)


def initial_next_run(job_type: str, schedule: str, now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """First due instant for a new job."""
    if job_type == "recurring":
        return compute_next_run(schedule, now, tz)
    return parse_run_at(schedule, tz)
