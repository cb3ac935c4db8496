"""
Invite link handlers.

Handlers for the public invite page: looking an invite up by token and
accepting it as a signed-in user.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from core.domain.exceptions import (
    AuthenticationRequiredError,
    InvalidRequestError,
    InviteNotFoundError,
    PermissionDeniedError,
)
from core.infrastructure.events import event_bus
from core.ports.identity_admin import IdentityAdmin
from licenses.domain.customer import Customer
from licenses.ports.customer_repository import CustomerRepository
from organizations.application.commands.accept_invite import AcceptInviteCommand
from organizations.application.dto.organization_dto import InviteLookupDTO
from organizations.application.queries.get_invite import GetInviteQuery
from organizations.domain.events import MemberJoined
from organizations.domain.organization import OrgInvite, OrgMember
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


async def load_pending_invite(
    organization_repository: OrganizationRepository, token: str
) -> OrgInvite:
    """
    Find an invite that can still be accepted.

    Raises:
        InviteNotFoundError: Unknown token
        InvalidRequestError: Already used, cancelled or expired
    """
    invite = await organization_repository.find_invite_by_token(token) if token else None
    if not invite:
        raise InviteNotFoundError("Invite not found or has expired")
    if not invite.is_pending:
        raise InvalidRequestError("This invite has already been used or cancelled")
    if invite.is_expired():
        raise InvalidRequestError("This invite has expired. Please request a new one.")
    return invite


class GetInviteHandler:
    """Handler for GetInviteQuery."""

    def __init__(self, organization_repository: OrganizationRepository):
        """Initialize handler with the organization repository."""
        self.organization_repository = organization_repository

    async def handle(self, query: GetInviteQuery) -> InviteLookupDTO:
        invite = await load_pending_invite(self.organization_repository, query.token)
        return InviteLookupDTO(invite=invite)


class AcceptInviteHandler:
    """Handler for AcceptInviteCommand."""

    def __init__(
        self,
        organization_repository: OrganizationRepository,
        customer_repository: CustomerRepository,
        identity_admin: Optional[IdentityAdmin] = None,
    ):
        """Initialize handler with repositories and the identity admin."""
        self.organization_repository = organization_repository
        self.customer_repository = customer_repository
        self.identity_admin = identity_admin

    async def handle(self, command: AcceptInviteCommand) -> OrgMember:
        """
        Handle accept invite command.

        The member record is written first; the identity-provider group is
        assigned afterwards and only logged when it fails, since the user
        picks up the role claim on their next sign-in.

        Args:
            command: AcceptInviteCommand

        Returns:
            The new OrgMember

        Raises:
            AuthenticationRequiredError: No signed-in user
            InviteNotFoundError: Unknown token
            InvalidRequestError: Invite unusable, or the user already has an organization
            PermissionDeniedError: Invite addressed to another email
        """
        user = command.user
        if not user:
            raise AuthenticationRequiredError(message="Please sign in to accept this invite")

        invite = await load_pending_invite(self.organization_repository, command.token)

        if (user.email or "").lower() != invite.email.lower():
            raise PermissionDeniedError(
                f"This invite was sent to {invite.email}. "
                "Please sign in with that email address."
            )

        customer = await self.customer_repository.find_by_user_id(user.user_id)
        membership = await self.organization_repository.find_membership(user.user_id)
        if (customer and customer.org_id) or membership:
            raise InvalidRequestError(
                "You are already a member of an organization. "
                "Please leave your current organization first."
            )

        member = await self.organization_repository.add_member(
            OrgMember(
                org_id=invite.org_id,
                member_id=user.user_id,
                email=user.email,
                role=invite.role,
                name=user.name,
            )
        )

        links = {"org_id": invite.org_id, "org_role": invite.role, "account_type": "business"}
        if customer:
            await self.customer_repository.update(user.user_id, links)
        else:
            await self.customer_repository.upsert(
                Customer(user_id=user.user_id, email=user.email, name=user.name, **links)
            )

        now = datetime.now(timezone.utc).isoformat()
        await self.organization_repository.save_invite(
            replace(invite, status="accepted", accepted_at=now, accepted_by=user.user_id)
        )

        if self.identity_admin:
            assigned = await self.identity_admin.assign_role(user.user_id, invite.role)
            if not assigned:
                logger.warning(
                    "Invite accepted without role group", extra={"role": invite.role}
                )

        await event_bus.publish(
            MemberJoined(org_id=invite.org_id, member_id=user.user_id, role=invite.role)
        )
        logger.info("Invite accepted", extra={"org_id": invite.org_id, "role": invite.role})
        return member
