"""
Organization domain entities.

A Business subscription owns one organization. Its id is the Stripe
customer id of the buyer, and its seat limit follows the subscription
quantity.
"""

import secrets
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

INVITE_TTL_DAYS = 7

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
INVITABLE_ROLES = (ROLE_ADMIN, ROLE_MEMBER)
MEMBER_STATUSES = ("active", "suspended", "revoked")


@dataclass(frozen=True)
class Organization:
    """Organization domain entity."""

    org_id: str
    name: str
    seat_limit: int
    owner_id: str
    owner_email: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Validate organization."""
        if not self.org_id:
            raise ValueError("Organization ID is required")
        if self.seat_limit < 0:
            raise ValueError("Seat limit cannot be negative")

    @classmethod
    def for_subscription(
        cls,
        stripe_customer_id: str,
        owner_id: str,
        owner_email: str,
        seats: int,
        stripe_subscription_id: Optional[str] = None,
    ) -> "Organization":
        """Organization for a new Business checkout, named after the buyer."""
        return cls(
            org_id=stripe_customer_id,
            name=f"{owner_email.split('@')[0]}'s Organization",
            seat_limit=seats,
            owner_id=owner_id,
            owner_email=owner_email.lower(),
            stripe_customer_id=stripe_customer_id,
            stripe_subscription_id=stripe_subscription_id,
        )


@dataclass(frozen=True)
class OrgMember:
    """Member of an organization."""

    org_id: str
    member_id: str
    email: str
    role: str = ROLE_MEMBER
    status: str = "active"
    name: Optional[str] = None
    joined_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER

    @property
    def is_admin(self) -> bool:
        return self.role in (ROLE_OWNER, ROLE_ADMIN)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class OrgInvite:
    """Pending invitation to join an organization."""

    org_id: str
    invite_id: str
    email: str
    role: str
    token: str
    invited_by: Optional[str] = None
    status: str = "pending"
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    accepted_at: Optional[str] = None
    accepted_by: Optional[str] = None

    @classmethod
    def create(
        cls, org_id: str, email: str, role: str, invited_by: str, at: Optional[datetime] = None
    ) -> "OrgInvite":
        """
        Create a pending invite with a fresh URL-safe token.

        Args:
            org_id: Organization id
            email: Invitee email
            role: admin or member
            invited_by: User id of the inviter
            at: Creation time, defaults to now

        Returns:
            OrgInvite that expires after INVITE_TTL_DAYS
        """
        now = at or datetime.now(timezone.utc)
        return cls(
            org_id=org_id,
            invite_id=f"inv_{uuid.uuid4().hex[:16]}",
            email=email.lower(),
            role=role,
            token=secrets.token_urlsafe(32),
            invited_by=invited_by,
            created_at=now.isoformat(),
            expires_at=(now + timedelta(days=INVITE_TTL_DAYS)).isoformat(),
        )

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def is_expired(self, at: Optional[datetime] = None) -> bool:
        if not self.expires_at:
            return False
        expires_at = datetime.fromisoformat(self.expires_at.replace("Z", "+00:00"))
        return expires_at < (at or datetime.now(timezone.utc))

    def renewed(self, at: Optional[datetime] = None) -> "OrgInvite":
        now = at or datetime.now(timezone.utc)
        return replace(self, expires_at=(now + timedelta(days=INVITE_TTL_DAYS)).isoformat())
