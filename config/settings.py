"""
config/settings.py — Centralized configuration via Pydantic Settings.

All env vars are loaded from .env and validated at startup.
"""

import logging
from dotenv import load_dotenv

load_dotenv()

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Delivery (Telegram) ──────────────────────────────────
    telegram_bot_token: str = Field(default="", description="Telegram bot token from @BotFather")
    owner_chat_id: str = Field(default="", description="Chat ID that receives proactive notifications")
    allowed_chat_ids: str = Field(
        default="", description="Comma-separated list of allowed Telegram chat IDs"
    )

    # ── Agent (Gemini via Pydantic AI) ───────────────────────
    google_api_key: str = Field(default="", description="Google AI Studio API key (used by Pydantic AI)")
    agent_model: str = Field(default="google-gla:gemini-2.5-flash")

    # ── Proactive scheduler ──────────────────────────────────
    proactive_enabled: bool = Field(default=True)
    scheduler_db_path: str = Field(default="data/scheduler.db")
    scheduler_tick_seconds: int = Field(default=60, ge=1)

    # ── Heartbeat ────────────────────────────────────────────
    heartbeat_enabled: bool = Field(default=True)
    heartbeat_path: str = Field(default="HEARTBEAT.md", description="Standing instructions document")
    heartbeat_interval_minutes: int = Field(default=30, ge=1)

    # ── Active hours: half-open [start, end) in local hours ──
    active_hours_start: int = Field(default=0, ge=0, le=23)
    active_hours_end: int = Field(default=24, ge=0, le=24)
    timezone: Optional[str] = Field(default=None, description="IANA zone, e.g. Europe/Berlin")

    log_level: str = Field(default="INFO")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def allowed_chat_id_list(self) -> list[int]:
        """Parse comma-separated chat IDs into a list of ints."""
        if not self.allowed_chat_ids:
            return []
        return [int(cid.strip()) for cid in self.allowed_chat_ids.split(",") if cid.strip()]

    @property
    def owner_id(self) -> Optional[str]:
        """Owner chat ID: explicit setting first, then the first allowed chat."""
        if self.owner_chat_id.strip():
            return self.owner_chat_id.strip()
        allowed = self.allowed_chat_id_list
        return str(allowed[0]) if allowed else None


# Singleton — import this across the app
settings = Settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
