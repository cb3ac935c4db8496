"""
Customer domain entity.

A customer profile mirrors the caller's Stripe and Keygen state. Profiles
created from a Stripe checkout before the buyer has signed in use a
temporary ``email:{address}`` user id.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing")
EXPIRED_SUBSCRIPTION_STATUSES = ("canceled", "past_due", "unpaid")
TEMPORARY_USER_PREFIX = "email:"


def temporary_user_id(email: str) -> str:
    return f"{TEMPORARY_USER_PREFIX}{email.lower()}"


@dataclass(frozen=True)
class Customer:
    """
    Customer domain entity.

    Only ``user_id`` and ``email`` are required; everything else fills in
    as the customer moves through checkout, activation and the portal.
    """

    user_id: str
    email: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    keygen_license_id: Optional[str] = None
    keygen_license_key: Optional[str] = None
    account_type: Optional[str] = None
    subscription_status: Optional[str] = None
    org_id: Optional[str] = None
    org_role: Optional[str] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    middle_name: Optional[str] = None
    family_name: Optional[str] = None
    notification_preferences: Optional[Dict[str, bool]] = None
    emails_sent: Dict[str, str] = field(default_factory=dict)
    account_status: Optional[str] = None
    cancel_at_period_end: bool = False
    current_period_end: Optional[str] = None
    canceled_at: Optional[str] = None
    access_until: Optional[str] = None
    payment_failed_count: int = 0
    fraudulent: bool = False
    seats: Optional[int] = None
    deletion_requested_at: Optional[str] = None
    deletion_reason: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Validate and normalise customer entity."""
        if not self.user_id:
            raise ValueError("User ID is required")
        if not self.email:
            raise ValueError("Email is required")
        object.__setattr__(self, "email", self.email.lower())

    @property
    def is_temporary(self) -> bool:
        return self.user_id.startswith(TEMPORARY_USER_PREFIX)

    @property
    def has_active_subscription(self) -> bool:
        return self.subscription_status in ACTIVE_SUBSCRIPTION_STATUSES

    @property
    def has_expired_subscription(self) -> bool:
        return self.subscription_status in EXPIRED_SUBSCRIPTION_STATUSES

    @property
    def is_org_owner(self) -> bool:
        return bool(self.org_id) and self.org_role == "owner"

    def was_email_sent(self, email_type: str) -> bool:
        return email_type in (self.emails_sent or {})

    def with_updates(self, **changes: Any) -> "Customer":
        return replace(self, **changes)
