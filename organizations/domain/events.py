"""
Organization domain events.
"""
from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent


class InviteCreated(DomainEvent):
    """Event raised when an invite is sent or re-sent."""

    payload_fields = ("org_id", "invite_id", "role", "resent")

    def __init__(
        self,
        org_id: str,
        invite_id: str,
        email: str,
        role: str,
        token: str,
        inviter_name: str,
        organization_name: str,
        resent: bool = False,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize InviteCreated event.

        Args:
            org_id: Organization id
            invite_id: Invite id
            email: Invitee email
            role: Role the invitee will get
            token: Invite token (not part of the payload)
            inviter_name: Shown in the invite email
            organization_name: Shown in the invite email
            resent: True when an existing invite was re-sent
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=org_id, occurred_at=occurred_at)
        self.org_id = org_id
        self.invite_id = invite_id
        self.email = email
        self.role = role
        self.token = token
        self.inviter_name = inviter_name
        self.organization_name = organization_name
        self.resent = resent


class MemberJoined(DomainEvent):
    """Event raised when an invite is accepted."""

    payload_fields = ("org_id", "member_id", "role")

    def __init__(
        self, org_id: str, member_id: str, role: str, occurred_at: Optional[datetime] = None
    ):
        super().__init__(aggregate_id=org_id, occurred_at=occurred_at)
        self.org_id = org_id
        self.member_id = member_id
        self.role = role
