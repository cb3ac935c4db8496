"""
ProcessStripeWebhookCommand.

Command carrying a Stripe event whose signature has been verified.
"""

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass
class ProcessStripeWebhookCommand:
    """Command to mirror a Stripe billing event locally."""

    event: Mapping[str, Any]

    @property
    def event_id(self) -> str:
        return self.event["id"]

    @property
    def event_type(self) -> str:
        return self.event["type"]

    @property
    def data_object(self) -> Mapping[str, Any]:
        return self.event["data"]["object"]
