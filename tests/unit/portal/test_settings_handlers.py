"""
Unit tests for the portal settings, export and account handlers.
"""
import pytest

from activations.domain.device import Device
from core.domain.exceptions import InvalidRequestError, NotFoundError
from licenses.domain.customer import Customer
from organizations.domain.organization import Organization, OrgMember
from portal.application.commands.account_commands import (
    CancelAccountDeletionCommand,
    LeaveOrganizationCommand,
    RequestAccountDeletionCommand,
    UpdateSettingsCommand,
)
from portal.application.handlers.settings_handlers import (
    CancelAccountDeletionHandler,
    ExportDataHandler,
    GetSettingsHandler,
    LeaveOrganizationHandler,
    RequestAccountDeletionHandler,
    UpdateSettingsHandler,
)
from portal.application.queries.portal_queries import ExportDataQuery, GetSettingsQuery

PERIOD_END = 1893456000


@pytest.mark.asyncio
class TestSettingsHandlers:
    """Tests for GetSettingsHandler and UpdateSettingsHandler."""

    async def test_defaults_without_profile(self, customer_repository, user):
        """Test a caller with no profile sees default preferences."""
        handler = GetSettingsHandler(customer_repository)

        body = (await handler.handle(GetSettingsQuery(user=user))).to_dict()

        assert body["profile"]["name"] == "Jane"
        assert body["profile"]["accountType"] == "individual"
        assert body["notifications"]["marketingEmails"] is False

    async def test_update_names(self, customer_repository, user, subscriber):
        """Test name parts are trimmed and joined into the full name."""
        handler = UpdateSettingsHandler(customer_repository)

        result = await handler.handle(
            UpdateSettingsCommand(
                user=user, changes={"givenName": " Jane ", "familyName": "Doe"}
            )
        )

        assert result.to_dict() == {"success": True, "updated": ["givenName", "familyName"]}
        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.given_name == "Jane"
        assert customer.name == "Jane Doe"

    async def test_update_notifications_merges(self, customer_repository, user, subscriber):
        """Test unknown keys are dropped and values coerced to booleans."""
        handler = UpdateSettingsHandler(customer_repository)

        await handler.handle(
            UpdateSettingsCommand(
                user=user, changes={"notifications": {"marketingEmails": 1, "spam": True}}
            )
        )

        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.notification_preferences == {
            "productUpdates": True,
            "usageAlerts": True,
            "billingReminders": True,
            "marketingEmails": True,
        }

    async def test_update_creates_profile(self, customer_repository, user):
        """Test a first settings save creates the profile."""
        await UpdateSettingsHandler(customer_repository).handle(
            UpdateSettingsCommand(user=user, changes={"givenName": "Jane"})
        )

        assert (await customer_repository.find_by_user_id("u-1")).name == "Jane"

    @pytest.mark.parametrize(
        "changes, error",
        [
            ({"givenName": "x" * 51}, "Invalid first name"),
            ({"middleName": "abcdefghijk"}, "Invalid middle initial"),
            ({"familyName": 42}, "Invalid last name"),
            ({"notifications": ["usageAlerts"]}, "Invalid notification preferences"),
        ],
    )
    async def test_invalid_changes(self, customer_repository, user, changes, error):
        """Test field validation runs before anything is written."""
        with pytest.raises(InvalidRequestError, match=error):
            await UpdateSettingsHandler(customer_repository).handle(
                UpdateSettingsCommand(user=user, changes=changes)
            )

        assert await customer_repository.find_by_user_id("u-1") is None


@pytest.mark.asyncio
class TestExportDataHandler:
    """Tests for ExportDataHandler."""

    async def test_export(
        self,
        customer_repository,
        license_repository,
        device_repository,
        stripe_gateway,
        user,
        subscriber,
    ):
        """Test the export gathers profile, licenses and Stripe history."""
        await device_repository.add(Device.create("lic-1", "mach-1", "5e" * 32, name="Laptop"))
        stripe_gateway.invoices["cus_1"] = [
            {"id": "in_1", "number": "INV-1", "created": PERIOD_END, "status": "paid"}
        ]
        handler = ExportDataHandler(
            customer_repository, license_repository, device_repository, stripe_gateway
        )

        result = await handler.handle(ExportDataQuery(user=user))

        data = result.to_dict()
        assert result.filename.startswith("mouse-data-export-")
        assert result.filename.endswith(".json")
        assert data["exportVersion"] == "1.0"
        assert data["user"]["email"] == "jane@example.com"
        assert data["customer"]["stripeCustomerId"] == "cus_1"
        assert [lic["id"] for lic in data["licenses"]] == ["lic-1"]
        assert data["devices"][0]["name"] == "Laptop"
        assert data["invoices"][0]["number"] == "INV-1"
        assert data["subscription"] is None

    async def test_export_without_profile(
        self, customer_repository, license_repository, device_repository, stripe_gateway, user
    ):
        """Test a caller with no profile still gets an export."""
        handler = ExportDataHandler(
            customer_repository, license_repository, device_repository, stripe_gateway
        )

        data = (await handler.handle(ExportDataQuery(user=user))).to_dict()

        assert data["customer"] is None
        assert data["licenses"] == []
        assert data["invoices"] == []


@pytest.mark.asyncio
class TestAccountDeletion:
    """Tests for RequestAccountDeletionHandler and CancelAccountDeletionHandler."""

    @pytest.fixture
    def handler(self, customer_repository, organization_repository, stripe_gateway):
        return RequestAccountDeletionHandler(
            customer_repository, organization_repository, stripe_gateway
        )

    async def test_request_cancels_at_period_end(
        self, handler, customer_repository, stripe_gateway, user, subscriber
    ):
        """Test subscriptions run to period end and the account is flagged."""
        stripe_gateway.subscriptions["sub_1"] = {
            "id": "sub_1",
            "customer": "cus_1",
            "status": "active",
            "current_period_end": PERIOD_END,
        }

        result = await handler.handle(
            RequestAccountDeletionCommand(
                user=user, confirmation="DELETE MY ACCOUNT", reason="Too expensive"
            )
        )

        assert result.to_dict() == {
            "success": True,
            "message": "Account deletion requested",
            "accessUntil": "2030-01-01T00:00:00+00:00",
        }
        assert stripe_gateway.calls == [
            ("update_subscription", "sub_1", {"cancel_at_period_end": True})
        ]
        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.account_status == "pending_deletion"
        assert customer.deletion_reason == "Too expensive"

    async def test_wrong_confirmation(self, handler, user, subscriber):
        """Test the confirmation phrase must match exactly."""
        with pytest.raises(InvalidRequestError, match="DELETE MY ACCOUNT"):
            await handler.handle(
                RequestAccountDeletionCommand(user=user, confirmation="delete my account")
            )

    async def test_owner_dissolves_organization(
        self, handler, customer_repository, organization_repository, user
    ):
        """Test an owner's deletion removes every other member."""
        await organization_repository.upsert(
            Organization.for_subscription("cus_1", "u-1", "jane@example.com", seats=5)
        )
        for member_id, role in (("u-1", "owner"), ("u-2", "member")):
            await organization_repository.add_member(
                OrgMember(
                    org_id="cus_1",
                    member_id=member_id,
                    email=f"{member_id}@example.com",
                    role=role,
                )
            )
        await customer_repository.upsert(
            Customer(
                user_id="u-1",
                email="jane@example.com",
                account_type="business",
                org_id="cus_1",
                org_role="owner",
            )
        )
        await customer_repository.upsert(
            Customer(
                user_id="u-2", email="u-2@example.com", org_id="cus_1", org_role="member"
            )
        )

        result = await handler.handle(
            RequestAccountDeletionCommand(user=user, confirmation="DELETE MY ACCOUNT")
        )

        body = result.to_dict()
        assert body["orgDissolved"] is True
        assert body["membersAffected"] == 1
        assert [m.member_id for m in await organization_repository.list_members("cus_1")] == [
            "u-1"
        ]
        assert (await customer_repository.find_by_user_id("u-2")).org_id is None

    async def test_member_must_leave_first(self, handler, customer_repository, user):
        """Test a non-owner member cannot delete while in an organization."""
        await customer_repository.upsert(
            Customer(
                user_id="u-1", email="jane@example.com", org_id="cus_org", org_role="member"
            )
        )

        with pytest.raises(InvalidRequestError, match="leave your organization"):
            await handler.handle(
                RequestAccountDeletionCommand(user=user, confirmation="DELETE MY ACCOUNT")
            )

    async def test_cancel_deletion(self, handler, customer_repository, user, subscriber):
        """Test a pending deletion can be withdrawn exactly once."""
        await handler.handle(
            RequestAccountDeletionCommand(user=user, confirmation="DELETE MY ACCOUNT")
        )
        cancel = CancelAccountDeletionHandler(customer_repository)

        result = await cancel.handle(CancelAccountDeletionCommand(user=user))

        assert result.message == "Account deletion cancelled"
        assert (await customer_repository.find_by_user_id("u-1")).account_status == "active"
        with pytest.raises(NotFoundError, match="No pending deletion request found"):
            await cancel.handle(CancelAccountDeletionCommand(user=user))


@pytest.mark.asyncio
class TestLeaveOrganizationHandler:
    """Tests for LeaveOrganizationHandler."""

    @pytest.fixture
    def handler(self, customer_repository, organization_repository, identity_admin):
        return LeaveOrganizationHandler(
            customer_repository, organization_repository, identity_admin
        )

    async def test_member_leaves(
        self, handler, customer_repository, organization_repository, identity_admin, user
    ):
        """Test membership, Cognito group and profile link are all removed."""
        await organization_repository.add_member(
            OrgMember(org_id="cus_org", member_id="u-1", email="jane@example.com", role="member")
        )
        await customer_repository.upsert(
            Customer(
                user_id="u-1", email="jane@example.com", org_id="cus_org", org_role="member"
            )
        )

        result = await handler.handle(
            LeaveOrganizationCommand(user=user, confirmation="LEAVE ORGANIZATION")
        )

        assert result.to_dict()["redirectTo"] == "/portal"
        assert await organization_repository.get_member("cus_org", "u-1") is None
        assert identity_admin.removed == [("u-1", "member")]
        assert (await customer_repository.find_by_user_id("u-1")).org_id is None

    async def test_owner_cannot_leave(self, handler, customer_repository, user):
        """Test the owner must transfer ownership first."""
        await customer_repository.upsert(
            Customer(
                user_id="u-1", email="jane@example.com", org_id="cus_org", org_role="owner"
            )
        )

        with pytest.raises(InvalidRequestError, match="transfer ownership"):
            await handler.handle(
                LeaveOrganizationCommand(user=user, confirmation="LEAVE ORGANIZATION")
            )

    async def test_not_in_organization(self, handler, user, subscriber):
        """Test a caller outside any organization."""
        with pytest.raises(InvalidRequestError, match="not a member of any organization"):
            await handler.handle(
                LeaveOrganizationCommand(user=user, confirmation="LEAVE ORGANIZATION")
            )
