"""
Organization domain services.

Seat accounting and the team-management rules shared by the portal
routes. Stripe enforces what the customer pays for; these rules keep the
member list inside it.
"""

from dataclasses import dataclass
from typing import Iterable, List

from core.domain.exceptions import InvalidRequestError, PermissionDeniedError
from organizations.domain.organization import (
    INVITABLE_ROLES,
    MEMBER_STATUSES,
    ROLE_MEMBER,
    OrgInvite,
    OrgMember,
)


@dataclass(frozen=True)
class SeatUsage:
    """Seats used by active members against the organization's limit."""

    org_id: str
    seat_limit: int
    seats_used: int

    @property
    def seats_available(self) -> int:
        return max(0, self.seat_limit - self.seats_used)

    @property
    def utilization_percent(self) -> int:
        if self.seat_limit <= 0:
            return 0
        return round(self.seats_used / self.seat_limit * 100)

    @classmethod
    def compute(cls, org_id: str, seat_limit: int, members: Iterable[OrgMember]) -> "SeatUsage":
        return cls(
            org_id=org_id,
            seat_limit=seat_limit or 0,
            seats_used=sum(1 for member in members if member.is_active),
        )


class TeamPolicy:
    """Rules for changing an organization's members and invites."""

    @staticmethod
    def validate_invite(
        email: str, role: str, usage: SeatUsage, pending_invites: List[OrgInvite]
    ) -> None:
        """
        Check that an invite can be sent.

        Pending invites hold a seat, so they count against the limit.

        Raises:
            InvalidRequestError: Missing email, bad role, no free seat or a duplicate invite
        """
        if not email:
            raise InvalidRequestError("Email is required")
        if role not in INVITABLE_ROLES:
            raise InvalidRequestError("Invalid role. Must be admin or member")
        if usage.seats_used + len(pending_invites) >= usage.seat_limit:
            raise InvalidRequestError("No seats available. Upgrade your plan to add more members.")
        if any(invite.email.lower() == email.lower() for invite in pending_invites):
            raise InvalidRequestError("This email already has a pending invite")

    @staticmethod
    def validate_status_change(target: OrgMember, status: str) -> None:
        if status not in MEMBER_STATUSES:
            raise InvalidRequestError("Invalid status. Must be active, suspended, or revoked")
        if target.is_owner:
            raise PermissionDeniedError("Cannot modify owner status")

    @staticmethod
    def validate_role_change(
        target: OrgMember, role: str, actor_id: str, members: List[OrgMember]
    ) -> None:
        """
        Check a role change.

        Raises:
            InvalidRequestError: Bad role, a self-change or demoting the last admin
            PermissionDeniedError: The target is the owner
        """
        if role not in INVITABLE_ROLES:
            raise InvalidRequestError("Invalid role. Must be admin or member")
        if target.is_owner:
            raise PermissionDeniedError("Cannot modify owner role")
        if target.member_id == actor_id:
            raise InvalidRequestError("Cannot change your own role. Contact another admin.")
        if target.is_admin and role == ROLE_MEMBER:
            if sum(1 for member in members if member.is_admin) <= 1:
                raise InvalidRequestError(
                    "Cannot demote the last admin. Promote another member first."
                )

    @staticmethod
    def validate_removal(target: OrgMember, actor_id: str) -> None:
        if target.is_owner:
            raise PermissionDeniedError("Cannot remove organization owner")
        if target.member_id == actor_id:
            raise InvalidRequestError("Cannot remove yourself. Contact another admin.")

    @staticmethod
    def validate_seat_change(quantity: int, min_seats: int, usage: SeatUsage) -> None:
        if quantity < min_seats:
            raise InvalidRequestError(f"Business plan requires minimum {min_seats} seats")
        if quantity < usage.seats_used:
            raise InvalidRequestError(
                f"Cannot reduce seats below current usage. You have {usage.seats_used} "
                "active members. Remove members first."
            )
