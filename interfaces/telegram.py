"""
interfaces/telegram.py — Telegram Bot API client.

Outbound only: proactive notifications are pushed to the owner's chat.
"""

import httpx
import logging
from typing import Optional

from core.errors import DeliveryFailure
from interfaces.base import ClientInterface

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org/bot{token}"
MAX_LEN = 4096


def split_message(text: str, max_len: int = MAX_LEN) -> list[str]:
    """Split text into chunks Telegram accepts, preferring newline boundaries."""
    if len(text) <= max_len:
        return [text]
    chunks = []
    remaining = text
    while len(remaining) > max_len:
        cut = remaining.rfind("\n", 0, max_len)
        if cut <= 0:
            cut = max_len
        chunks.append(remaining[:cut])
        # Drop only the newline split on; blank lines after it are content
        remaining = remaining[cut + 1:] if remaining[cut] == "\n" else remaining[cut:]
    if remaining:
        chunks.append(remaining)
    return chunks


class TelegramClient(ClientInterface):
    """Async Telegram Bot API wrapper."""

    def __init__(self, token: str, client: Optional[httpx.AsyncClient] = None):
        self.token = token
        self.base_url = TELEGRAM_API.format(token=token)
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _call(self, method: str, **kwargs) -> dict:
        """Make a Telegram Bot API call."""
        client = await self._get_client()
        url = f"{self.base_url}/{method}"
        resp = await client.post(url, json=kwargs)
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok"):
            raise DeliveryFailure(f"Telegram API error on {method}: {data.get('description', data)}")
        return data

    async def _send_chunk(self, chat_id: str, text: str, parse_mode: Optional[str]) -> dict:
        kwargs = {"chat_id": chat_id, "text": text}
        if parse_mode:
            kwargs["parse_mode"] = parse_mode
        try:
            return await self._call("sendMessage", **kwargs)
        except httpx.HTTPStatusError as e:
            if parse_mode and e.response.status_code == 400:
                logger.warning(f"Markdown parse failed, retrying without parse_mode: {e}")
                kwargs.pop("parse_mode", None)
                return await self._call("sendMessage", **kwargs)
            raise

    async def send_message(self, thread_id: str, content: str, parse_mode: Optional[str] = "Markdown") -> None:
        """Send a text message. Splits into chunks if > 4096 chars."""
        if not self.token:
            raise DeliveryFailure("Telegram bot token is not configured")
        try:
            for chunk in split_message(content):
                await self._send_chunk(thread_id, chunk, parse_mode)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"Telegram request failed: {e}") from e
