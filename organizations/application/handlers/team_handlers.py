"""
Team management handlers.

Handlers behind the portal team page: listing the team, inviting,
changing members and cancelling invites. Every write requires a Business
account whose token carries an organization and an owner or admin role.
"""
import logging
from typing import Optional

from core.domain.exceptions import (
    InvalidRequestError,
    InviteNotFoundError,
    MemberNotFoundError,
    PermissionDeniedError,
)
from core.domain.identity import CognitoUser
from core.infrastructure.events import event_bus
from licenses.ports.customer_repository import CustomerRepository
from organizations.application.commands.invite_member import InviteMemberCommand
from organizations.application.commands.manage_invite import (
    CancelInviteCommand,
    ResendInviteCommand,
)
from organizations.application.commands.remove_member import RemoveMemberCommand
from organizations.application.commands.update_member import (
    UpdateMemberRoleCommand,
    UpdateMemberStatusCommand,
)
from organizations.application.dto.organization_dto import (
    InviteDTO,
    MemberChangeDTO,
    TeamDTO,
)
from organizations.application.queries.get_team import GetTeamQuery
from organizations.domain.events import InviteCreated
from organizations.domain.organization import OrgInvite, OrgMember
from organizations.domain.services import SeatUsage, TeamPolicy
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


def require_team_admin(user: CognitoUser) -> str:
    """
    Check the caller may change the team and return their organization id.

    Raises:
        PermissionDeniedError: Not a Business account, or not an owner/admin
        InvalidRequestError: The token carries no organization
    """
    if not user.is_business:
        raise PermissionDeniedError("Team management requires a team subscription")
    if not user.org_id:
        raise InvalidRequestError("Organization not configured")
    if not user.is_org_admin:
        raise PermissionDeniedError("Admin permissions required")
    return user.org_id


class _TeamHandler:
    """Shared wiring for the team handlers."""

    def __init__(
        self,
        organization_repository: OrganizationRepository,
        customer_repository: Optional[CustomerRepository] = None,
    ):
        """Initialize handler with repositories."""
        self.organization_repository = organization_repository
        self.customer_repository = customer_repository

    async def _get_member(self, org_id: str, member_id: str):
        members = await self.organization_repository.list_members(org_id)
        target = next((m for m in members if m.member_id == member_id), None)
        if not target:
            raise MemberNotFoundError()
        return target, members

    async def _seat_usage(self, org_id: str) -> SeatUsage:
        organization = await self.organization_repository.get(org_id)
        members = await self.organization_repository.list_members(org_id)
        return SeatUsage.compute(org_id, organization.seat_limit if organization else 0, members)

    async def _publish_invite(self, user: CognitoUser, invite: OrgInvite, resent: bool) -> None:
        inviter = None
        if self.customer_repository:
            inviter = await self.customer_repository.find_by_user_id(user.user_id)
        organization = await self.organization_repository.get(invite.org_id)
        await event_bus.publish(
            InviteCreated(
                org_id=invite.org_id,
                invite_id=invite.invite_id,
                email=invite.email,
                role=invite.role,
                token=invite.token,
                inviter_name=(inviter.name if inviter else None)
                or user.name
                or user.email
                or "Your team",
                organization_name=(organization.name if organization else None)
                or "Your organization",
                resent=resent,
            )
        )


class GetTeamHandler(_TeamHandler):
    """Handler for GetTeamQuery."""

    async def handle(self, query: GetTeamQuery) -> TeamDTO:
        """
        Handle get team query.

        Args:
            query: GetTeamQuery

        Returns:
            TeamDTO

        Raises:
            PermissionDeniedError: Not a Business account
            InvalidRequestError: No organization could be resolved
        """
        user = query.user
        if not user.is_business:
            raise PermissionDeniedError("Team management requires a business subscription")

        org_id = user.org_id
        if not org_id and user.stripe_customer_id:
            organization = await self.organization_repository.find_by_stripe_customer(
                user.stripe_customer_id
            )
            if organization:
                org_id = organization.org_id
        if not org_id:
            raise InvalidRequestError("Organization not configured. Please contact support.")

        members = await self.organization_repository.list_members(org_id)
        invites = await self.organization_repository.list_pending_invites(org_id)
        organization = await self.organization_repository.get(org_id)
        usage = SeatUsage.compute(org_id, organization.seat_limit if organization else 0, members)
        return TeamDTO(members=members, invites=invites, usage=usage)


class InviteMemberHandler(_TeamHandler):
    """Handler for InviteMemberCommand."""

    async def handle(self, command: InviteMemberCommand) -> InviteDTO:
        """
        Handle invite member command.

        Pending invites count against the seat limit.

        Raises:
            InvalidRequestError: Bad email or role, no free seat, or a duplicate invite
        """
        org_id = require_team_admin(command.user)
        email = (command.email or "").strip()
        role = command.role or "member"

        usage = await self._seat_usage(org_id)
        pending = await self.organization_repository.list_pending_invites(org_id)
        TeamPolicy.validate_invite(email, role, usage, pending)

        invite = await self.organization_repository.create_invite(
            OrgInvite.create(org_id, email, role, invited_by=command.user.user_id)
        )
        logger.info("Team invite created", extra={"org_id": org_id, "role": role})

        await self._publish_invite(command.user, invite, resent=False)
        return InviteDTO(invite=invite)


class UpdateMemberStatusHandler(_TeamHandler):
    """Handler for UpdateMemberStatusCommand."""

    async def handle(self, command: UpdateMemberStatusCommand) -> MemberChangeDTO:
        org_id = require_team_admin(command.user)
        if not command.member_id or not command.status:
            raise InvalidRequestError("memberId and status are required")

        target, _ = await self._get_member(org_id, command.member_id)
        TeamPolicy.validate_status_change(target, command.status)

        updated = await self.organization_repository.update_member(
            org_id, command.member_id, status=command.status
        )
        if not updated:
            raise MemberNotFoundError()
        return MemberChangeDTO(member=updated, changed="status")


class UpdateMemberRoleHandler(_TeamHandler):
    """Handler for UpdateMemberRoleCommand."""

    async def handle(self, command: UpdateMemberRoleCommand) -> MemberChangeDTO:
        """
        Handle update member role command.

        Raises:
            InvalidRequestError: Missing fields, a self-change or demoting the last admin
            PermissionDeniedError: The target is the owner
            MemberNotFoundError: No such member
        """
        org_id = require_team_admin(command.user)
        if not command.member_id or not command.role:
            raise InvalidRequestError("memberId and role are required")

        target, members = await self._get_member(org_id, command.member_id)
        TeamPolicy.validate_role_change(target, command.role, command.user.user_id, members)

        updated = await self.organization_repository.update_member(
            org_id, command.member_id, role=command.role
        )
        if not updated:
            raise MemberNotFoundError()
        return MemberChangeDTO(member=updated, changed="role")


class ResendInviteHandler(_TeamHandler):
    """Handler for ResendInviteCommand."""

    async def handle(self, command: ResendInviteCommand) -> InviteDTO:
        org_id = require_team_admin(command.user)
        if not command.invite_id:
            raise InvalidRequestError("inviteId is required")

        pending = await self.organization_repository.list_pending_invites(org_id)
        invite = next((i for i in pending if i.invite_id == command.invite_id), None)
        if not invite:
            raise InviteNotFoundError()

        renewed = await self.organization_repository.save_invite(invite.renewed())
        await self._publish_invite(command.user, renewed, resent=True)
        return InviteDTO(invite=renewed, include_token=False)


class RemoveMemberHandler(_TeamHandler):
    """Handler for RemoveMemberCommand."""

    async def handle(self, command: RemoveMemberCommand) -> OrgMember:
        org_id = require_team_admin(command.user)
        if not command.member_id:
            raise InvalidRequestError("memberId is required")

        target, _ = await self._get_member(org_id, command.member_id)
        TeamPolicy.validate_removal(target, command.user.user_id)

        await self.organization_repository.remove_member(org_id, command.member_id)
        logger.info("Team member removed", extra={"org_id": org_id})
        return target


class CancelInviteHandler(_TeamHandler):
    """Handler for CancelInviteCommand."""

    async def handle(self, command: CancelInviteCommand) -> None:
        org_id = require_team_admin(command.user)
        if not command.invite_id:
            raise InvalidRequestError("inviteId is required")
        await self.organization_repository.delete_invite(org_id, command.invite_id)
