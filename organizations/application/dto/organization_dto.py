"""
Organization DTOs for API responses.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from organizations.domain.organization import OrgInvite, OrgMember
from organizations.domain.services import SeatUsage


@dataclass
class TeamDTO:
    """DTO for the team page: members, pending invites and seat usage."""

    members: List[OrgMember]
    invites: List[OrgInvite]
    usage: SeatUsage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "members": [
                {
                    "id": m.member_id,
                    "name": m.name or "Unknown",
                    "email": m.email,
                    "role": m.role,
                    "status": m.status,
                    "joinedAt": m.joined_at,
                }
                for m in self.members
            ],
            "invites": [
                {
                    "id": i.invite_id,
                    "email": i.email,
                    "role": i.role,
                    "status": "pending",
                    "invitedAt": i.created_at,
                    "expiresAt": i.expires_at,
                }
                for i in self.invites
            ],
            "usage": {
                "totalSeats": self.usage.seat_limit,
                "usedSeats": self.usage.seats_used,
                "availableSeats": self.usage.seats_available,
                "utilizationPercent": self.usage.utilization_percent,
            },
        }


@dataclass
class InviteDTO:
    """DTO for a created or re-sent invite."""

    invite: OrgInvite
    include_token: bool = True

    def to_dict(self) -> Dict[str, Any]:
        invite = {"id": self.invite.invite_id, "email": self.invite.email}
        if self.include_token:
            invite.update({"role": self.invite.role, "token": self.invite.token})
        invite["expiresAt"] = self.invite.expires_at
        return {"success": True, "invite": invite}


@dataclass
class InviteLookupDTO:
    """DTO for the public invite landing page."""

    invite: OrgInvite

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.invite.email,
            "role": self.invite.role,
            "orgId": self.invite.org_id,
            "expiresAt": self.invite.expires_at,
        }


@dataclass
class MemberChangeDTO:
    """DTO for a member status or role change."""

    member: OrgMember
    changed: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "member": {"id": self.member.member_id, self.changed: getattr(self.member, self.changed)},
        }


@dataclass
class SeatsDTO:
    """DTO for seat usage with the subscription's per-seat price."""

    usage: SeatUsage
    subscription_quantity: Optional[int] = None
    price_per_seat: Optional[float] = None
    currency: str = "usd"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orgId": self.usage.org_id,
            "seatLimit": self.usage.seat_limit,
            "seatsUsed": self.usage.seats_used,
            "seatsAvailable": self.usage.seats_available,
            "utilizationPercent": self.usage.utilization_percent,
            "subscriptionQuantity": self.subscription_quantity,
            "pricePerSeat": self.price_per_seat,
            "currency": self.currency,
        }


@dataclass
class SeatChangeDTO:
    """DTO for a prorated seat quantity change."""

    previous_quantity: int
    new_quantity: int
    subscription_id: str
    effective_date: str
    price_per_seat: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "previousQuantity": self.previous_quantity,
            "newQuantity": self.new_quantity,
            "message": f"Seat quantity updated to {self.new_quantity}. Changes are prorated.",
            "subscriptionId": self.subscription_id,
            "effectiveDate": self.effective_date,
            "pricePerSeat": self.price_per_seat,
        }
