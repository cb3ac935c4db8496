"""
Plans, pricing and promo codes.

Stripe owns the actual prices; the figures here drive seat rules, device
limits and the price estimate shown alongside a checkout.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional

from core.domain.exceptions import InvalidRequestError
from core.domain.value_objects import PlanType

BILLING_CYCLES = ("monthly", "annual")


@dataclass(frozen=True)
class Plan:
    """A purchasable plan."""

    id: str
    name: str
    monthly_price: int
    annual_price: int
    max_devices: int
    min_seats: int = 1
    trial_days: int = 0
    per_seat: bool = False
    volume_discounts: Dict[int, float] = field(default_factory=dict)

    def volume_discount(self, seats: int) -> float:
        """Largest discount whose seat threshold is reached."""
        discount = 0.0
        for threshold, rate in sorted(self.volume_discounts.items()):
            if seats >= threshold:
                discount = rate
        return discount


PRICING: Dict[str, Plan] = {
    PlanType.INDIVIDUAL.value: Plan(
        id="individual",
        name="Individual",
        monthly_price=15,
        annual_price=150,
        max_devices=3,
        trial_days=14,
    ),
    PlanType.BUSINESS.value: Plan(
        id="business",
        name="Business",
        monthly_price=35,
        annual_price=350,
        max_devices=5,
        min_seats=5,
        per_seat=True,
        volume_discounts={50: 0.10, 100: 0.15, 500: 0.20},
    ),
}

DEFAULT_MAX_DEVICES = PRICING[PlanType.INDIVIDUAL.value].max_devices


@dataclass(frozen=True)
class PromoCode:
    code: str
    discount: float
    plans: tuple
    valid_until: Optional[date] = None

    def is_valid(self, plan: str, today: Optional[date] = None) -> bool:
        if plan not in self.plans:
            return False
        if self.valid_until is None:
            return True
        return (today or date.today()) <= self.valid_until


PROMO_CODES: Dict[str, PromoCode] = {
    "EARLYADOPTER20": PromoCode(
        "EARLYADOPTER20", 0.20, ("individual", "business"), valid_until=date(2026, 12, 31)
    ),
    "STUDENT50": PromoCode("STUDENT50", 0.50, ("individual",)),
    "NONPROFIT40": PromoCode("NONPROFIT40", 0.40, ("individual", "business")),
}

# Stripe subscription status -> stored subscription status
STRIPE_STATUS_MAP: Dict[str, str] = {
    "active": "active",
    "past_due": "past_due",
    "canceled": "canceled",
    "unpaid": "suspended",
    "incomplete": "pending",
    "incomplete_expired": "expired",
    "trialing": "trialing",
    "paused": "paused",
}

# Dispute outcomes that give the customer their license back
DISPUTE_REINSTATE_STATUSES = ("won", "withdrawn", "warning_closed")

MAX_PAYMENT_ATTEMPTS = 3


def get_plan(plan: str) -> Plan:
    """
    Look up a plan.

    Raises:
        InvalidRequestError: For anything but individual or business
    """
    if plan not in PRICING:
        raise InvalidRequestError("Invalid plan specified")
    return PRICING[plan]


def normalize_plan(plan: Optional[str]) -> str:
    """Plan type for checkout metadata; anything not business is individual."""
    return PlanType.BUSINESS.value if plan == PlanType.BUSINESS.value else PlanType.INDIVIDUAL.value


def plan_display_name(plan: Optional[str]) -> str:
    return PRICING[normalize_plan(plan)].name


def max_devices_for(plan: Optional[str]) -> int:
    return PRICING[normalize_plan(plan)].max_devices


def map_stripe_status(status: str) -> str:
    return STRIPE_STATUS_MAP.get(status, status)


def estimate_price(
    plan: str,
    billing_cycle: str = "monthly",
    seats: int = 1,
    promo_code: Optional[str] = None,
    today: Optional[date] = None,
) -> float:
    """
    Estimate the price of a checkout before Stripe applies tax.

    Args:
        plan: Plan id
        billing_cycle: monthly or annual
        seats: Seat count (business only)
        promo_code: Known promo code, if any
        today: Date used to check promo expiry

    Returns:
        Price in dollars, rounded to cents
    """
    selected = get_plan(plan)
    unit = selected.annual_price if billing_cycle == "annual" else selected.monthly_price
    quantity = seats if selected.per_seat else 1
    total = unit * quantity * (1 - selected.volume_discount(quantity))

    promo = PROMO_CODES.get((promo_code or "").upper())
    if promo and promo.is_valid(selected.id, today):
        total *= 1 - promo.discount
    return round(total, 2)
