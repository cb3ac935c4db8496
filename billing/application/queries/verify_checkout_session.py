"""
VerifyCheckoutSessionQuery.

Query used by the welcome page to confirm a completed checkout.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class VerifyCheckoutSessionQuery:
    """Query to verify a checkout session was paid."""

    session_id: Optional[str]
