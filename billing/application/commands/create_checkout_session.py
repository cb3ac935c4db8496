"""
CreateCheckoutSessionCommand.

Command to start a Stripe subscription checkout.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class CreateCheckoutSessionCommand:
    """Command to create a checkout session for a plan."""

    plan: str
    email: Optional[str]
    billing_cycle: str = "monthly"
    seats: int = 1
    promo_code: Optional[str] = None
