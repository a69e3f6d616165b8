"""
core/heartbeat.py — Periodic check of the standing-instructions document.

On every tick the agent is asked whether anything in the document needs
the owner's attention right now. ``HEARTBEAT_OK`` means nothing to say;
any other answer is delivered unless an identical answer was already
delivered within the dedup window. Dedup state lives in memory only.
"""

import asyncio
import hashlib
import logging
from datetime import datetime, timedelta, tzinfo
from pathlib import Path
from typing import Callable, Dict, Optional

from core.active_hours import is_within_active_hours
from core.channel_manager import ChannelManager
from core.schedule import resolve_timezone
from interfaces.base import AgentInterface

logger = logging.getLogger("core.heartbeat")

HEARTBEAT_OK = "HEARTBEAT_OK"
DEDUP_WINDOW = timedelta(hours=24)

HEARTBEAT_PROMPT = """# Heartbeat Check

Current time: {now}
Timezone: {timezone}

## Standing Instructions

{instructions}

---

Review the standing instructions above. If any action is needed right now (e.g., upcoming events to notify about, tasks due soon, information to check), provide a concise notification message.

If nothing requires attention right now, respond with exactly: {sentinel}"""


def build_heartbeat_prompt(instructions: str, now: datetime) -> str:
    zone = getattr(now.tzinfo, "key", None) or now.tzname() or "local"
    return HEARTBEAT_PROMPT.format(
        now=now.strftime("%A, %B %d, %Y %I:%M %p"),
        timezone=zone,
        instructions=instructions,
        sentinel=HEARTBEAT_OK,
    )


def content_hash(response: str) -> str:
    return hashlib.sha256(response.strip().encode("utf-8")).hexdigest()


class HeartbeatRunner:
    def __init__(
        self,
        agent: AgentInterface,
        delivery: ChannelManager,
        heartbeat_path: str | Path,
        interval_minutes: float = 30,
        active_hours_start: int = 0,
        active_hours_end: int = 24,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.agent = agent
        self.delivery = delivery
        self.heartbeat_path = Path(heartbeat_path)
        self.interval_minutes = interval_minutes
        self.active_hours_start = active_hours_start
        self.active_hours_end = active_hours_end
        self.tz = tz or resolve_timezone(None)
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._recent_hashes: Dict[str, datetime] = {}
        self._timer_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    async def start(self):
        if self.running:
            return
        self._timer_task = asyncio.create_task(self._run_forever())
        logger.info(f"💓 Heartbeat runner started (every {self.interval_minutes:g} min)")

    async def stop(self):
        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None
        logger.info("Heartbeat runner stopped")

    async def _run_forever(self):
        while True:
            await self.tick()
            await asyncio.sleep(self.interval_minutes * 60)

    # ── Dedup ────────────────────────────────────────────────

    def _clean_expired_hashes(self, now: datetime):
        cutoff = now - DEDUP_WINDOW
        for digest, seen_at in list(self._recent_hashes.items()):
            if seen_at < cutoff:
                del self._recent_hashes[digest]

    def is_duplicate(self, response: str, now: datetime) -> bool:
        """True if seen within the window; otherwise remember it and return False."""
        digest = content_hash(response)
        self._clean_expired_hashes(now)
        if digest in self._recent_hashes:
            return True
        self._recent_hashes[digest] = now
        return False

    # ── Tick ─────────────────────────────────────────────────

    async def _read_instructions(self) -> Optional[str]:
        try:
            content = await asyncio.to_thread(self.heartbeat_path.read_text, encoding="utf-8")
        except OSError:
            logger.debug(f"No heartbeat file at {self.heartbeat_path}, skipping")
            return None
        content = content.strip()
        if not content:
            logger.debug("Heartbeat file is empty, skipping")
            return None
        return content

    async def tick(self) -> bool:
        """Run one heartbeat check. Returns True if a notification was delivered. Never raises."""
        try:
            now = self._clock().astimezone(self.tz)
            if not is_within_active_hours(now, self.active_hours_start, self.active_hours_end):
                logger.debug("Outside active hours, skipping heartbeat")
                return False

            instructions = await self._read_instructions()
            if instructions is None:
                return False

            logger.debug("Running heartbeat check")
            result = await self.agent.send(build_heartbeat_prompt(instructions, now))
            response = result.response.strip()

            if response == HEARTBEAT_OK:
                logger.debug("Heartbeat returned OK, no notification needed")
                return False

            if self.is_duplicate(response, self._clock()):
                logger.info("🔇 Duplicate heartbeat response suppressed")
                return False

            delivered = await self.delivery.deliver(response)
            if delivered:
                logger.info("💓 Heartbeat notification delivered")
            return delivered
        except Exception as e:
            logger.error(f"❌ Error in heartbeat tick: {e}", exc_info=True)
            return False
