"""
Webhook event repository port (interface).

Used to make webhook processing idempotent: a delivery is processed only by
whoever claims its event id first.
"""
from abc import ABC, abstractmethod


class WebhookEventRepository(ABC):
    """Claims and releases webhook event ids."""

    @abstractmethod
    async def claim(self, source: str, event_id: str, event_type: str) -> bool:
        """
        Atomically claim an event.

        Returns:
            True if this caller claimed it, False if it was already claimed
        """
        pass

    @abstractmethod
    async def release(self, source: str, event_id: str) -> None:
        """Release a claim so the provider's retry can process the event."""
        pass

    @abstractmethod
    async def mark_processed(self, source: str, event_id: str) -> None:
        pass
