from abc import ABC, abstractmethod

from core.cron_types import AgentResponse


class ClientInterface(ABC):
    """
    Abstract base class for outbound notification channels.
    Decouples the proactive runners from the delivery mechanism.
    """

    @abstractmethod
    async def send_message(self, thread_id: str, content: str) -> None:
        """
        Pushes a standard text message to the client.

        Args:
            thread_id: The unique identifier for the conversation/user.
            content: The Markdown content to send.

        Raises:
            DeliveryFailure: if the platform rejects the message.
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the client."""
        return None


class AgentInterface(ABC):
    """
    A stateless agent turn: one prompt in, one text response out.
    Raises on failure; callers treat any exception as an execution failure.
    """

    @abstractmethod
    async def send(self, prompt: str) -> AgentResponse:
        pass
