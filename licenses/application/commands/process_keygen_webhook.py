"""
ProcessKeygenWebhookCommand.

Command carrying a verified Keygen webhook delivery.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ProcessKeygenWebhookCommand:
    """Command to apply a Keygen lifecycle event locally."""

    payload: Dict[str, Any]

    @property
    def event(self) -> str:
        return (self.payload.get("meta") or {}).get("event") or ""

    @property
    def data(self) -> Dict[str, Any]:
        return self.payload.get("data") or {}

    @property
    def event_id(self) -> Optional[str]:
        """Delivery identity from ``meta.id``; None when Keygen sent none."""
        meta_id = (self.payload.get("meta") or {}).get("id")
        return f"{meta_id}:{self.event}" if meta_id else None
