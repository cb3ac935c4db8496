"""
Unit tests for the team management handlers.
"""
import pytest

from core.domain.exceptions import (
    InvalidRequestError,
    MemberNotFoundError,
    PermissionDeniedError,
)
from core.domain.identity import CognitoUser
from core.infrastructure.events import event_bus
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
from organizations.application.handlers.team_handlers import (
    CancelInviteHandler,
    GetTeamHandler,
    InviteMemberHandler,
    RemoveMemberHandler,
    ResendInviteHandler,
    UpdateMemberRoleHandler,
    UpdateMemberStatusHandler,
)
from organizations.application.queries.get_team import GetTeamQuery
from organizations.domain.events import InviteCreated
from tests.fakes import RecordingHandler


@pytest.fixture
def build(organization_repository, customer_repository):
    def make(handler_class):
        return handler_class(organization_repository, customer_repository)

    return make


@pytest.mark.asyncio
class TestGetTeamHandler:
    """Tests for GetTeamHandler."""

    async def test_lists_team(self, build, organization, member):
        """Test any business member can see the team and seat usage."""
        body = (await build(GetTeamHandler).handle(GetTeamQuery(user=member))).to_dict()

        assert {m["id"] for m in body["members"]} == {"owner-1", "admin-1", "mem-1"}
        assert body["usage"] == {
            "totalSeats": 5,
            "usedSeats": 3,
            "availableSeats": 2,
            "utilizationPercent": 60,
        }

    async def test_org_found_by_stripe_customer(self, build, organization):
        """Test a token without an org id falls back to the Stripe customer."""
        user = CognitoUser(
            user_id="owner-1",
            email="owner-1@example.com",
            account_type="business",
            stripe_customer_id="cus_org",
        )
        body = (await build(GetTeamHandler).handle(GetTeamQuery(user=user))).to_dict()
        assert body["usage"]["totalSeats"] == 5

    async def test_individual_account(self, build):
        """Test individual accounts have no team."""
        user = CognitoUser(user_id="u-1", email="u@example.com", account_type="individual")
        with pytest.raises(PermissionDeniedError):
            await build(GetTeamHandler).handle(GetTeamQuery(user=user))


@pytest.mark.asyncio
class TestInviteMemberHandler:
    """Tests for InviteMemberHandler."""

    async def test_invite(self, build, organization, admin, organization_repository, sent_emails):
        """Test an admin invite is stored and emailed."""
        recorder = RecordingHandler()
        event_bus.subscribe(InviteCreated, recorder)

        body = (
            await build(InviteMemberHandler).handle(
                InviteMemberCommand(user=admin, email="New@Example.com", role="member")
            )
        ).to_dict()

        assert body["invite"]["email"] == "new@example.com"
        assert body["invite"]["token"]
        pending = await organization_repository.list_pending_invites("cus_org")
        assert [i.email for i in pending] == ["new@example.com"]
        assert recorder.events[0].organization_name == "owner-1's Organization"
        assert sent_emails[0]["template"] == "enterpriseInvite"

    async def test_pending_invites_hold_seats(self, build, organization, owner):
        """Test pending invites count against the seat limit."""
        handler = build(InviteMemberHandler)
        await handler.handle(InviteMemberCommand(user=owner, email="a@example.com"))
        await handler.handle(InviteMemberCommand(user=owner, email="b@example.com"))

        with pytest.raises(InvalidRequestError, match="No seats available"):
            await handler.handle(InviteMemberCommand(user=owner, email="c@example.com"))

    async def test_duplicate_invite(self, build, organization, owner):
        """Test one pending invite per email."""
        handler = build(InviteMemberHandler)
        await handler.handle(InviteMemberCommand(user=owner, email="a@example.com"))

        with pytest.raises(InvalidRequestError, match="already has a pending invite"):
            await handler.handle(InviteMemberCommand(user=owner, email="A@example.com"))

    async def test_owner_role_cannot_be_invited(self, build, organization, owner):
        """Test invites are only for admins and members."""
        with pytest.raises(InvalidRequestError, match="Invalid role"):
            await build(InviteMemberHandler).handle(
                InviteMemberCommand(user=owner, email="a@example.com", role="owner")
            )

    async def test_members_cannot_invite(self, build, organization, member):
        """Test plain members cannot manage the team."""
        with pytest.raises(PermissionDeniedError, match="Admin permissions required"):
            await build(InviteMemberHandler).handle(
                InviteMemberCommand(user=member, email="a@example.com")
            )


@pytest.mark.asyncio
class TestMemberChanges:
    """Tests for member status, role and removal."""

    async def test_suspend_member(self, build, organization, admin):
        """Test an admin can suspend a member."""
        result = await build(UpdateMemberStatusHandler).handle(
            UpdateMemberStatusCommand(user=admin, member_id="mem-1", status="suspended")
        )
        assert result.to_dict() == {
            "success": True,
            "member": {"id": "mem-1", "status": "suspended"},
        }

    async def test_owner_status_is_fixed(self, build, organization, admin):
        """Test the owner cannot be suspended."""
        with pytest.raises(PermissionDeniedError, match="Cannot modify owner status"):
            await build(UpdateMemberStatusHandler).handle(
                UpdateMemberStatusCommand(user=admin, member_id="owner-1", status="suspended")
            )

    async def test_promote_member(self, build, organization, owner):
        """Test the owner can promote a member to admin."""
        result = await build(UpdateMemberRoleHandler).handle(
            UpdateMemberRoleCommand(user=owner, member_id="mem-1", role="admin")
        )
        assert result.member.role == "admin"

    async def test_cannot_change_own_role(self, build, organization, admin):
        """Test admins cannot demote themselves."""
        with pytest.raises(InvalidRequestError, match="Cannot change your own role"):
            await build(UpdateMemberRoleHandler).handle(
                UpdateMemberRoleCommand(user=admin, member_id="admin-1", role="member")
            )

    async def test_unknown_member(self, build, organization, owner):
        """Test changes to a non-member."""
        with pytest.raises(MemberNotFoundError):
            await build(UpdateMemberRoleHandler).handle(
                UpdateMemberRoleCommand(user=owner, member_id="ghost", role="admin")
            )

    async def test_remove_member(self, build, organization, admin, organization_repository):
        """Test an admin can remove a member."""
        await build(RemoveMemberHandler).handle(
            RemoveMemberCommand(user=admin, member_id="mem-1")
        )

        members = await organization_repository.list_members("cus_org")
        assert "mem-1" not in {m.member_id for m in members}

    async def test_owner_cannot_be_removed(self, build, organization, admin):
        """Test the owner stays in the organization."""
        with pytest.raises(PermissionDeniedError, match="Cannot remove organization owner"):
            await build(RemoveMemberHandler).handle(
                RemoveMemberCommand(user=admin, member_id="owner-1")
            )


@pytest.mark.asyncio
class TestInviteManagement:
    """Tests for resending and cancelling invites."""

    async def test_resend_and_cancel(self, build, organization, owner, organization_repository):
        """Test a pending invite can be re-sent and then cancelled."""
        created = await build(InviteMemberHandler).handle(
            InviteMemberCommand(user=owner, email="a@example.com")
        )
        invite_id = created.invite.invite_id

        resent = await build(ResendInviteHandler).handle(
            ResendInviteCommand(user=owner, invite_id=invite_id)
        )
        assert "token" not in resent.to_dict()["invite"]

        await build(CancelInviteHandler).handle(
            CancelInviteCommand(user=owner, invite_id=invite_id)
        )
        assert await organization_repository.list_pending_invites("cus_org") == []
