"""
Trial domain events.
"""
from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent


class TrialStarted(DomainEvent):
    """Event raised when a device starts its trial."""

    payload_fields = ("fingerprint", "expires_at", "source")

    def __init__(
        self,
        fingerprint: str,
        expires_at: int,
        source: str,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize TrialStarted event.

        Args:
            fingerprint: Device fingerprint
            expires_at: Trial expiry (epoch ms)
            source: Route that started it ("trial_init" or "validate")
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=fingerprint, occurred_at=occurred_at)
        self.fingerprint = fingerprint
        self.expires_at = expires_at
        self.source = source
