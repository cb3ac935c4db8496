"""
StripeWebhookHandler.

Mirrors Stripe billing events into customer, license and organization
records, and drives the matching Keygen suspend/reinstate calls. Each
event id is claimed first so Stripe retries are acknowledged without
being applied twice.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from billing.application.commands.process_stripe_webhook import ProcessStripeWebhookCommand
from billing.domain.events import DisputeOpened, PaymentFailed
from billing.domain.plans import (
    DISPUTE_REINSTATE_STATUSES,
    MAX_PAYMENT_ATTEMPTS,
    map_stripe_status,
    max_devices_for,
    normalize_plan,
    plan_display_name,
)
from core.infrastructure.events import event_bus
from core.metrics import webhook_events_total
from core.ports.identity_admin import IdentityAdmin
from core.ports.keygen_gateway import KeygenError, KeygenGateway
from core.ports.webhook_event_repository import WebhookEventRepository
from licenses.application.dto.license_dto import WebhookReceiptDTO
from licenses.domain.customer import Customer, temporary_user_id
from licenses.domain.events import LicenseProvisioned, LicenseStatusChanged
from licenses.domain.license_record import LicenseRecord
from licenses.ports.customer_repository import CustomerRepository
from licenses.ports.license_repository import LicenseRepository
from organizations.domain.organization import ROLE_OWNER, Organization, OrgMember
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)

SOURCE = "stripe"


def _from_epoch(seconds: Optional[int]) -> Optional[str]:
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def _first_item(obj: Mapping[str, Any], field: str) -> Mapping[str, Any]:
    data = (obj.get(field) or {}).get("data") or []
    return data[0] if data else {}


class StripeWebhookHandler:
    """Handler for ProcessStripeWebhookCommand."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        license_repository: LicenseRepository,
        organization_repository: OrganizationRepository,
        keygen: KeygenGateway,
        webhook_event_repository: WebhookEventRepository,
        identity_admin: Optional[IdentityAdmin] = None,
    ):
        """Initialize handler with repositories and gateways."""
        self.customer_repository = customer_repository
        self.license_repository = license_repository
        self.organization_repository = organization_repository
        self.keygen = keygen
        self.webhook_event_repository = webhook_event_repository
        self.identity_admin = identity_admin
        self._handlers = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_succeeded": self._payment_succeeded,
            "invoice.payment_failed": self._payment_failed,
            "charge.dispute.created": self._dispute_created,
            "charge.dispute.closed": self._dispute_closed,
        }

    async def handle(self, command: ProcessStripeWebhookCommand) -> WebhookReceiptDTO:
        """
        Handle a verified Stripe event.

        Args:
            command: ProcessStripeWebhookCommand

        Returns:
            WebhookReceiptDTO, flagged duplicate for an already-claimed event

        Raises:
            Exception: Any processing failure, after releasing the claim so
                Stripe retries the delivery
        """
        event_type = command.event_type
        claimed = await self.webhook_event_repository.claim(SOURCE, command.event_id, event_type)
        if not claimed:
            webhook_events_total.labels(
                source=SOURCE, event_type=event_type, outcome="duplicate"
            ).inc()
            logger.info("Duplicate Stripe webhook ignored", extra={"event_type": event_type})
            return WebhookReceiptDTO(duplicate=True)

        handler = self._handlers.get(event_type)
        try:
            if handler:
                await handler(command.data_object)
            else:
                logger.info("Unhandled Stripe event", extra={"event_type": event_type})
        except Exception:
            await self.webhook_event_repository.release(SOURCE, command.event_id)
            webhook_events_total.labels(source=SOURCE, event_type=event_type, outcome="failed").inc()
            raise

        await self.webhook_event_repository.mark_processed(SOURCE, command.event_id)
        webhook_events_total.labels(source=SOURCE, event_type=event_type, outcome="processed").inc()
        return WebhookReceiptDTO()

    async def _set_license_status(
        self, customer: Customer, status: str, extra: Optional[dict] = None
    ) -> None:
        if not customer.keygen_license_id:
            return
        updated = await self.license_repository.update_status(
            customer.keygen_license_id, status, extra
        )
        if updated is not None:
            await event_bus.publish(
                LicenseStatusChanged(
                    license_id=customer.keygen_license_id, status=status, source=SOURCE
                )
            )

    async def _suspend(self, customer: Customer) -> None:
        if not customer.keygen_license_id:
            return
        try:
            await self.keygen.suspend_license(customer.keygen_license_id)
        except KeygenError as e:
            logger.warning("Failed to suspend Keygen license", extra={"error": str(e)})

    async def _reinstate(self, customer: Customer) -> None:
        if not customer.keygen_license_id:
            return
        try:
            await self.keygen.reinstate_license(customer.keygen_license_id)
        except KeygenError as e:
            logger.warning("Failed to reinstate Keygen license", extra={"error": str(e)})

    async def _customer_for(self, stripe_customer_id: Optional[str], event_type: str):
        customer = None
        if stripe_customer_id:
            customer = await self.customer_repository.find_by_stripe_customer_id(
                stripe_customer_id
            )
        if not customer:
            logger.info("Customer not found for Stripe event", extra={"event_type": event_type})
        return customer

    async def _checkout_completed(self, session: Mapping[str, Any]) -> None:
        """
        Provision a license for a completed checkout.

        A customer that already has a license is left alone, so a replayed
        or duplicate checkout never issues a second key.
        """
        stripe_customer_id = session.get("customer")
        email = (
            session.get("customer_email")
            or (session.get("customer_details") or {}).get("email")
            or ""
        ).lower()
        metadata = session.get("metadata") or {}
        subscription = session.get("subscription")
        subscription_id = subscription if isinstance(subscription, str) else (
            subscription.get("id") if subscription else None
        )
        plan = normalize_plan(metadata.get("plan") or metadata.get("planType"))
        seats = int(metadata.get("seats") or 1)

        existing = None
        if stripe_customer_id:
            existing = await self.customer_repository.find_by_stripe_customer_id(stripe_customer_id)
        if not existing and email:
            existing = await self.customer_repository.find_by_email(email)
        if existing and existing.keygen_license_id:
            logger.info("Skipping duplicate license creation", extra={"plan": plan})
            return

        policy_id = self.keygen.get_policy_id(plan)
        license = None
        try:
            license = await self.keygen.create_license(
                policy_id,
                f"License for {email}",
                {
                    "email": email,
                    "stripeCustomerId": stripe_customer_id,
                    "stripeSubscriptionId": subscription_id,
                    "plan": plan,
                    "seats": str(seats),
                },
            )
        except KeygenError as e:
            logger.warning("Failed to create Keygen license", extra={"error": str(e)})

        license_id = license.id if license else None
        license_key = license.key if license else None

        if existing:
            user_id = existing.user_id
            updates = {
                "subscription_status": "active",
                "stripe_customer_id": stripe_customer_id,
                "stripe_subscription_id": subscription_id,
                "keygen_license_id": license_id,
                "keygen_license_key": license_key,
                "account_type": plan,
                "seats": seats,
            }
            await self.customer_repository.update(
                user_id, {k: v for k, v in updates.items() if v is not None}
            )
        else:
            user_id = temporary_user_id(email)
            await self.customer_repository.upsert(
                Customer(
                    user_id=user_id,
                    email=email,
                    stripe_customer_id=stripe_customer_id,
                    stripe_subscription_id=subscription_id,
                    keygen_license_id=license_id,
                    keygen_license_key=license_key,
                    account_type=plan,
                    subscription_status="active",
                    seats=seats,
                )
            )
        logger.info("Customer provisioned from checkout", extra={"plan": plan, "seats": seats})

        if license_id and license_key:
            try:
                await self.license_repository.create(
                    LicenseRecord.create(
                        keygen_license_id=license_id,
                        user_id=user_id,
                        license_key=license_key,
                        policy_id=policy_id,
                        max_devices=max_devices_for(plan),
                        email=email,
                        plan_name=plan_display_name(plan),
                    )
                )
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.warning("Failed to create license record", extra={"error": str(e)})

            await event_bus.publish(
                LicenseProvisioned(
                    license_id=license_id,
                    email=email,
                    license_key=license_key,
                    plan_name=plan_display_name(plan),
                )
            )

        if plan == "business":
            await self._create_organization(
                stripe_customer_id, user_id, email, seats, subscription_id
            )

    async def _create_organization(
        self,
        stripe_customer_id: str,
        owner_id: str,
        email: str,
        seats: int,
        subscription_id: Optional[str],
    ) -> None:
        if self.identity_admin and not owner_id.startswith("email:"):
            await self.identity_admin.assign_role(owner_id, ROLE_OWNER)

        try:
            organization = await self.organization_repository.upsert(
                Organization.for_subscription(
                    stripe_customer_id=stripe_customer_id,
                    owner_id=owner_id,
                    owner_email=email,
                    seats=seats,
                    stripe_subscription_id=subscription_id,
                )
            )
            await self.organization_repository.add_member(
                OrgMember(
                    org_id=organization.org_id,
                    member_id=owner_id,
                    email=email,
                    role=ROLE_OWNER,
                    name=email.split("@")[0],
                )
            )
            await self.customer_repository.update(
                owner_id, {"org_id": organization.org_id, "org_role": ROLE_OWNER}
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to create or link organization", extra={"error": str(e)})

    async def _subscription_updated(self, subscription: Mapping[str, Any]) -> None:
        customer = await self._customer_for(
            subscription.get("customer"), "customer.subscription.updated"
        )
        if not customer:
            return

        stripe_status = subscription.get("status")
        status = map_stripe_status(stripe_status)
        cancel_at_period_end = bool(subscription.get("cancel_at_period_end"))

        updates = {"subscription_status": status, "cancel_at_period_end": cancel_at_period_end}
        if cancel_at_period_end:
            updates["access_until"] = _from_epoch(
                subscription.get("cancel_at") or subscription.get("current_period_end")
            )
        await self.customer_repository.update(customer.user_id, updates)

        await self._set_license_status(customer, status)
        if stripe_status in ("unpaid", "canceled"):
            await self._suspend(customer)
        elif stripe_status == "active" and customer.subscription_status == "suspended":
            await self._reinstate(customer)

        quantity = _first_item(subscription, "items").get("quantity") or 1
        try:
            organization = await self.organization_repository.find_by_stripe_customer(
                subscription.get("customer")
            )
            if organization and organization.seat_limit != quantity:
                await self.organization_repository.update_seat_limit(organization.org_id, quantity)
                logger.info(
                    "Organization seat limit synced",
                    extra={"previous_seat_limit": organization.seat_limit, "seat_limit": quantity},
                )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to sync organization seat limit", extra={"error": str(e)})

    async def _subscription_deleted(self, subscription: Mapping[str, Any]) -> None:
        customer = await self._customer_for(
            subscription.get("customer"), "customer.subscription.deleted"
        )
        if not customer:
            return

        await self.customer_repository.update(
            customer.user_id,
            {
                "subscription_status": "canceled",
                "canceled_at": datetime.now(timezone.utc).isoformat(),
                "access_until": datetime.now(timezone.utc).isoformat(),
            },
        )
        await self._set_license_status(customer, "canceled")
        await self._suspend(customer)

    async def _payment_succeeded(self, invoice: Mapping[str, Any]) -> None:
        customer = await self._customer_for(invoice.get("customer"), "invoice.payment_succeeded")
        if not customer:
            return

        expires_at = _from_epoch((_first_item(invoice, "lines").get("period") or {}).get("end"))
        if expires_at:
            await self._set_license_status(customer, "active", {"expiresAt": expires_at})

        if customer.subscription_status == "past_due":
            await self.customer_repository.update(
                customer.user_id, {"subscription_status": "active", "payment_failed_count": 0}
            )
            await self._reinstate(customer)

    async def _payment_failed(self, invoice: Mapping[str, Any]) -> None:
        customer = await self._customer_for(invoice.get("customer"), "invoice.payment_failed")
        if not customer:
            return

        attempt_count = invoice.get("attempt_count") or 0
        next_attempt = invoice.get("next_payment_attempt")
        retry_date = (
            datetime.fromtimestamp(next_attempt, tz=timezone.utc).strftime("%B %d, %Y")
            if next_attempt
            else None
        )

        await self.customer_repository.update(
            customer.user_id,
            {"subscription_status": "past_due", "payment_failed_count": attempt_count},
        )
        await self._set_license_status(customer, "past_due")
        await event_bus.publish(
            PaymentFailed(
                user_id=customer.user_id,
                email=invoice.get("customer_email") or customer.email,
                attempt_count=attempt_count,
                retry_date=retry_date,
            )
        )

        if attempt_count >= MAX_PAYMENT_ATTEMPTS:
            logger.info(
                "Max payment attempts reached, suspending license",
                extra={"attempt_count": attempt_count},
            )
            await self.customer_repository.update(
                customer.user_id, {"subscription_status": "suspended"}
            )
            await self._set_license_status(customer, "suspended")
            await self._suspend(customer)

    async def _dispute_created(self, dispute: Mapping[str, Any]) -> None:
        customer = await self._customer_for(dispute.get("customer"), "charge.dispute.created")
        if customer:
            await self._set_license_status(customer, "disputed")
            await self._suspend(customer)
            await self.customer_repository.update(
                customer.user_id, {"subscription_status": "disputed"}
            )

        await event_bus.publish(
            DisputeOpened(
                dispute_id=dispute.get("id"),
                customer_email=(customer.email if customer else None) or "unknown",
                amount=dispute.get("amount"),
                currency=dispute.get("currency"),
                reason=dispute.get("reason"),
            )
        )

    async def _dispute_closed(self, dispute: Mapping[str, Any]) -> None:
        customer = await self._customer_for(dispute.get("customer"), "charge.dispute.closed")
        if not customer:
            return

        outcome = dispute.get("status")
        if outcome in DISPUTE_REINSTATE_STATUSES:
            await self._set_license_status(customer, "active")
            await self._reinstate(customer)
            await self.customer_repository.update(
                customer.user_id, {"subscription_status": "active"}
            )
        else:
            await self.customer_repository.update(
                customer.user_id, {"subscription_status": "suspended", "fraudulent": True}
            )
        logger.info("Dispute closed", extra={"dispute_status": outcome})
