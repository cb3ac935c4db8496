"""
Portal settings handlers.

Profile and notification settings, the personal data export, account
deletion requests and leaving an organization.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from activations.ports.device_repository import DeviceRepository
from core.domain.exceptions import (
    CustomerNotFoundError,
    InvalidRequestError,
    NotFoundError,
)
from core.ports.identity_admin import IdentityAdmin
from core.ports.stripe_gateway import StripeGateway, StripeGatewayError
from licenses.domain.customer import Customer
from licenses.ports.customer_repository import CustomerRepository
from licenses.ports.license_repository import LicenseRepository
from organizations.ports.organization_repository import OrganizationRepository
from portal.application.commands.account_commands import (
    CancelAccountDeletionCommand,
    LeaveOrganizationCommand,
    RequestAccountDeletionCommand,
    UpdateSettingsCommand,
)
from portal.application.dto.portal_dto import (
    DEFAULT_NOTIFICATIONS,
    ActionResultDTO,
    DataExportDTO,
    SettingsDTO,
)
from portal.application.handlers.billing_handlers import (
    format_invoice,
    format_subscription,
    iso_from_epoch,
)
from portal.application.queries.portal_queries import ExportDataQuery, GetSettingsQuery
from portal.application.services.customer_lookup import find_customer

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE MY ACCOUNT"
LEAVE_CONFIRMATION = "LEAVE ORGANIZATION"
EXPORT_VERSION = "1.0"

# (request key, attribute, max length, error)
NAME_FIELDS = (
    ("givenName", "given_name", 50, "Invalid first name"),
    ("middleName", "middle_name", 10, "Invalid middle initial"),
    ("familyName", "family_name", 50, "Invalid last name"),
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GetSettingsHandler:
    """Handler for GetSettingsQuery."""

    def __init__(self, customer_repository: CustomerRepository):
        """Initialize handler with the customer repository."""
        self.customer_repository = customer_repository

    async def handle(self, query: GetSettingsQuery) -> SettingsDTO:
        customer = await find_customer(self.customer_repository, query.user)
        return SettingsDTO(user=query.user, customer=customer)


class UpdateSettingsHandler:
    """Handler for UpdateSettingsCommand."""

    def __init__(self, customer_repository: CustomerRepository):
        """Initialize handler with the customer repository."""
        self.customer_repository = customer_repository

    @staticmethod
    def _validate(changes: Dict[str, Any]) -> None:
        for key, _, max_length, error in NAME_FIELDS:
            if key not in changes or changes[key] is None:
                continue
            value = changes[key]
            if not isinstance(value, str) or len(value) > max_length:
                raise InvalidRequestError(error)
        notifications = changes.get("notifications")
        if notifications is not None and not isinstance(notifications, dict):
            raise InvalidRequestError("Invalid notification preferences")

    async def handle(self, command: UpdateSettingsCommand) -> ActionResultDTO:
        """
        Handle update settings command.

        Only the four known notification keys are kept, coerced to booleans,
        and merged over the stored preferences.

        Returns:
            ActionResultDTO listing the updated request keys
        """
        changes = command.changes
        self._validate(changes)

        customer = await find_customer(self.customer_repository, command.user)
        if customer is None:
            customer = await self.customer_repository.upsert(
                Customer(user_id=command.user.user_id, email=command.user.email)
            )

        updates: Dict[str, Any] = {}
        updated: List[str] = []
        names = {
            "given_name": customer.given_name,
            "middle_name": customer.middle_name,
            "family_name": customer.family_name,
        }
        for key, attribute, _, _ in NAME_FIELDS:
            if key in changes and changes[key] is not None:
                value = changes[key].strip()
                updates[attribute] = value
                names[attribute] = value
                updated.append(key)

        if updated:
            full_name = " ".join(
                part for part in (names["given_name"], names["middle_name"], names["family_name"])
                if part
            )
            updates["name"] = full_name or None

        notifications = changes.get("notifications")
        if notifications is not None:
            merged = dict(customer.notification_preferences or DEFAULT_NOTIFICATIONS)
            for key in DEFAULT_NOTIFICATIONS:
                if key in notifications:
                    merged[key] = bool(notifications[key])
            updates["notification_preferences"] = merged
            updated.append("notifications")

        if updates:
            await self.customer_repository.update(customer.user_id, updates)
        logger.info("Settings updated", extra={"user_id": customer.user_id, "updated": updated})
        return ActionResultDTO(extra={"updated": updated})


class ExportDataHandler:
    """Handler for ExportDataQuery."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        license_repository: LicenseRepository,
        device_repository: DeviceRepository,
        stripe_gateway: StripeGateway,
    ):
        """Initialize handler with repositories and the Stripe gateway."""
        self.customer_repository = customer_repository
        self.license_repository = license_repository
        self.device_repository = device_repository
        self.stripe_gateway = stripe_gateway

    async def _billing(self, stripe_customer_id: Optional[str]):
        if not stripe_customer_id:
            return [], None
        try:
            invoices = await self.stripe_gateway.list_invoices(stripe_customer_id, limit=100)
            subscriptions = await self.stripe_gateway.list_subscriptions(
                stripe_customer_id, status="all", limit=1
            )
        except StripeGatewayError as e:
            logger.error("Failed to export Stripe data", extra={"error": str(e)})
            return [], None
        subscription = format_subscription(subscriptions[0]) if subscriptions else None
        return [format_invoice(i) for i in invoices.get("data") or []], subscription

    async def handle(self, query: ExportDataQuery) -> DataExportDTO:
        """
        Assemble everything stored about the caller.

        Returns:
            DataExportDTO with a dated download filename
        """
        user = query.user
        customer = await find_customer(self.customer_repository, user)

        licenses: List[Dict[str, Any]] = []
        devices: List[Dict[str, Any]] = []
        for record in await self.license_repository.find_by_user(user.user_id):
            licenses.append(
                {
                    "id": record.keygen_license_id,
                    "licenseKey": record.license_key,
                    "status": record.status,
                    "planName": record.plan_name,
                    "expiresAt": record.expires_at,
                    "createdAt": record.created_at,
                }
            )
            for device in await self.device_repository.list_for_license(record.keygen_license_id):
                devices.append(
                    {
                        "id": device.keygen_machine_id,
                        "licenseId": device.license_id,
                        "name": device.name,
                        "platform": device.platform,
                        "fingerprint": device.fingerprint,
                        "lastSeen": device.last_seen_at,
                        "createdAt": device.created_at,
                    }
                )

        invoices, subscription = await self._billing(
            customer.stripe_customer_id if customer else None
        )

        now = datetime.now(timezone.utc)
        data = {
            "exportedAt": now.isoformat(),
            "exportVersion": EXPORT_VERSION,
            "user": {
                "id": user.user_id,
                "email": user.email,
                "name": user.name,
                "emailVerified": user.email_verified,
            },
            "customer": {
                "accountType": customer.account_type,
                "subscriptionStatus": customer.subscription_status,
                "stripeCustomerId": customer.stripe_customer_id,
                "orgId": customer.org_id,
                "orgRole": customer.org_role,
                "notificationPreferences": customer.notification_preferences,
                "createdAt": customer.created_at,
            }
            if customer
            else None,
            "licenses": licenses,
            "devices": devices,
            "invoices": invoices,
            "subscription": subscription,
        }
        logger.info("Data export generated", extra={"user_id": user.user_id})
        return DataExportDTO(data=data, filename=f"mouse-data-export-{now.date().isoformat()}.json")


class RequestAccountDeletionHandler:
    """Handler for RequestAccountDeletionCommand."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        organization_repository: OrganizationRepository,
        stripe_gateway: StripeGateway,
    ):
        """Initialize handler with repositories and the Stripe gateway."""
        self.customer_repository = customer_repository
        self.organization_repository = organization_repository
        self.stripe_gateway = stripe_gateway

    async def _cancel_subscriptions(self, stripe_customer_id: Optional[str]) -> Optional[str]:
        if not stripe_customer_id:
            return None
        access_until = None
        subscriptions = await self.stripe_gateway.list_subscriptions(
            stripe_customer_id, status="active", limit=10
        )
        for subscription in subscriptions:
            await self.stripe_gateway.update_subscription(
                subscription["id"], cancel_at_period_end=True
            )
            access_until = iso_from_epoch(subscription.get("current_period_end")) or access_until
        return access_until

    async def _dissolve_organization(self, org_id: str, owner_id: str) -> int:
        affected = 0
        for member in await self.organization_repository.list_members(org_id):
            if member.member_id == owner_id:
                continue
            affected += 1
            await self.organization_repository.remove_member(org_id, member.member_id)
            try:
                await self.customer_repository.update(
                    member.member_id, {"org_id": None, "org_role": None}
                )
            except CustomerNotFoundError:
                logger.warning(
                    "Member had no profile to unlink", extra={"member_id": member.member_id}
                )
        return affected

    async def handle(self, command: RequestAccountDeletionCommand) -> ActionResultDTO:
        """
        Schedule the caller's account for deletion.

        Subscriptions are cancelled at period end so access continues until
        then. An owner's organization is dissolved; other members must
        leave their organization first.

        Raises:
            InvalidRequestError: Wrong confirmation or still in an organization
            CustomerNotFoundError: The caller has no profile
        """
        if command.confirmation != DELETE_CONFIRMATION:
            raise InvalidRequestError("Please type 'DELETE MY ACCOUNT' to confirm")

        customer = await find_customer(self.customer_repository, command.user)
        if customer is None:
            raise CustomerNotFoundError()

        if customer.org_id and not customer.is_org_owner:
            raise InvalidRequestError(
                "Please leave your organization before deleting your account. "
                "Contact your organization admin."
            )

        access_until = await self._cancel_subscriptions(customer.stripe_customer_id)

        members_affected = 0
        if customer.org_id:
            members_affected = await self._dissolve_organization(customer.org_id, customer.user_id)

        now = _now()
        access_until = access_until or now
        await self.customer_repository.update(
            customer.user_id,
            {
                "account_status": "pending_deletion",
                "deletion_requested_at": now,
                "deletion_reason": command.reason or "User requested",
                "access_until": access_until,
            },
        )
        logger.info(
            "Account deletion requested",
            extra={"user_id": customer.user_id, "members_affected": members_affected},
        )

        extra: Dict[str, Any] = {"accessUntil": access_until}
        message = "Account deletion requested"
        if customer.org_id:
            message = "Account deletion requested. Your organization has been dissolved."
            if members_affected:
                extra.update({"orgDissolved": True, "membersAffected": members_affected})
        return ActionResultDTO(message=message, extra=extra)


class CancelAccountDeletionHandler:
    """Handler for CancelAccountDeletionCommand."""

    def __init__(self, customer_repository: CustomerRepository):
        """Initialize handler with the customer repository."""
        self.customer_repository = customer_repository

    async def handle(self, command: CancelAccountDeletionCommand) -> ActionResultDTO:
        customer = await find_customer(self.customer_repository, command.user)
        if not customer or customer.account_status != "pending_deletion":
            raise NotFoundError("No pending deletion request found")

        await self.customer_repository.update(
            customer.user_id,
            {
                "account_status": "active",
                "deletion_requested_at": None,
                "deletion_reason": None,
            },
        )
        return ActionResultDTO(message="Account deletion cancelled")


class LeaveOrganizationHandler:
    """Handler for LeaveOrganizationCommand."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        organization_repository: OrganizationRepository,
        identity_admin: Optional[IdentityAdmin] = None,
    ):
        """Initialize handler with repositories and the identity admin."""
        self.customer_repository = customer_repository
        self.organization_repository = organization_repository
        self.identity_admin = identity_admin

    async def handle(self, command: LeaveOrganizationCommand) -> ActionResultDTO:
        """
        Remove the caller from their organization.

        Raises:
            InvalidRequestError: Wrong confirmation, no organization, or the
                caller owns the organization
        """
        if command.confirmation != LEAVE_CONFIRMATION:
            raise InvalidRequestError("Please type 'LEAVE ORGANIZATION' to confirm")

        customer = await find_customer(self.customer_repository, command.user)
        if not customer or not customer.org_id:
            raise InvalidRequestError("You are not a member of any organization")
        if customer.is_org_owner:
            raise InvalidRequestError(
                "As the organization owner, you must transfer ownership to another member "
                "before leaving, or delete the organization."
            )

        await self.organization_repository.remove_member(customer.org_id, customer.user_id)
        if self.identity_admin and customer.org_role:
            await self.identity_admin.remove_role(command.user.user_id, customer.org_role)
        await self.customer_repository.update(customer.user_id, {"org_id": None, "org_role": None})

        logger.info(
            "Member left organization",
            extra={"user_id": customer.user_id, "org_id": customer.org_id},
        )
        return ActionResultDTO(
            message="You have left the organization", extra={"redirectTo": "/portal"}
        )
