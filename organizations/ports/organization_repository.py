"""
Organization repository port (interface).

This defines the contract for organization, member and invite persistence.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from organizations.domain.organization import Organization, OrgInvite, OrgMember


class OrganizationRepository(ABC):
    """
    Abstract repository for organizations and their members and invites.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def get(self, org_id: str) -> Optional[Organization]:
        pass

    @abstractmethod
    async def find_by_stripe_customer(self, stripe_customer_id: str) -> Optional[Organization]:
        """
        Find the organization a Stripe customer pays for.

        Args:
            stripe_customer_id: Stripe customer id

        Returns:
            Organization or None if not found
        """
        pass

    @abstractmethod
    async def upsert(self, organization: Organization) -> Organization:
        """Write the organization, keeping the original creation time."""
        pass

    @abstractmethod
    async def update_seat_limit(self, org_id: str, seat_limit: int) -> None:
        pass

    @abstractmethod
    async def list_members(self, org_id: str) -> List[OrgMember]:
        pass

    @abstractmethod
    async def get_member(self, org_id: str, member_id: str) -> Optional[OrgMember]:
        pass

    @abstractmethod
    async def find_membership(self, user_id: str) -> Optional[OrgMember]:
        """
        Find the organization membership of a user.

        Args:
            user_id: Member user id

        Returns:
            The membership, or None if the user is in no organization
        """
        pass

    @abstractmethod
    async def add_member(self, member: OrgMember) -> OrgMember:
        pass

    @abstractmethod
    async def update_member(self, org_id: str, member_id: str, **changes) -> Optional[OrgMember]:
        """
        Update a member's role or status.

        Returns:
            The updated member, or None if the member does not exist
        """
        pass

    @abstractmethod
    async def remove_member(self, org_id: str, member_id: str) -> bool:
        pass

    @abstractmethod
    async def list_pending_invites(self, org_id: str) -> List[OrgInvite]:
        pass

    @abstractmethod
    async def create_invite(self, invite: OrgInvite) -> OrgInvite:
        pass

    @abstractmethod
    async def find_invite_by_token(self, token: str) -> Optional[OrgInvite]:
        pass

    @abstractmethod
    async def save_invite(self, invite: OrgInvite) -> OrgInvite:
        """Overwrite an invite (expiry renewal, acceptance)."""
        pass

    @abstractmethod
    async def delete_invite(self, org_id: str, invite_id: str) -> None:
        pass
