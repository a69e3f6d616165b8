import logging
from typing import Callable, Dict, Optional

from config.settings import settings
from interfaces.base import ClientInterface

logger = logging.getLogger("core.channel_manager")


def _owner_from_settings() -> Optional[str]:
    return settings.owner_id


class ChannelManager:
    """
    Central registry for output channels (e.g., Telegram) and the single
    delivery port used by the proactive runners to notify the owner.

    Delivery is best-effort: ``deliver`` logs and returns False instead of
    raising, so a successful job is never marked failed by a delivery error.
    """
    def __init__(self, owner_resolver: Callable[[], Optional[str]] = _owner_from_settings):
        self.clients: Dict[str, ClientInterface] = {}
        self.default_platform: Optional[str] = None
        self._owner_resolver = owner_resolver
        self._owner_id: Optional[str] = None

    def register_client(self, platform_name: str, client: ClientInterface, default: bool = True):
        """Register a client adapter for a specific platform."""
        self.clients[platform_name] = client
        if default or self.default_platform is None:
            self.default_platform = platform_name
        logger.info(f"🔌 Registered Channel Client: {platform_name}")

    def resolve_owner(self) -> Optional[str]:
        """Owner identity, resolved once and cached after the first success."""
        if self._owner_id is None:
            owner = self._owner_resolver()
            if owner:
                self._owner_id = str(owner)
                logger.info(f"👤 Resolved owner identity: {self._owner_id}")
        return self._owner_id

    async def send_message(self, platform: str, thread_id: str, content: str) -> bool:
        """Route a standard text message to the appropriate platform."""
        client = self.clients.get(platform)
        if not client:
            logger.error(f"❌ Unknown platform '{platform}', cannot send message to thread {thread_id}")
            return False
        try:
            await client.send_message(thread_id, content)
            return True
        except Exception as e:
            logger.error(f"❌ Delivery to {platform}:{thread_id} failed: {e}", exc_info=True)
            return False

    async def deliver(self, message: str) -> bool:
        """Send a notification to the owner on the default platform."""
        if self.default_platform is None:
            logger.warning("No delivery channel registered - skipping notification")
            return False
        owner = self.resolve_owner()
        if not owner:
            logger.warning("No owner chat ID set yet - skipping notification")
            return False
        delivered = await self.send_message(self.default_platform, owner, message)
        if delivered:
            logger.info(f"💬 Delivered notification to owner via {self.default_platform}")
        return delivered

    async def close(self):
        for name, client in self.clients.items():
            try:
                await client.close()
            except Exception as e:
                logger.error(f"Error closing channel client {name}: {e}")
