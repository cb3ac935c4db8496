"""
Unit tests for StripeWebhookHandler.
"""
import itertools

import pytest

from billing.application.commands.process_stripe_webhook import ProcessStripeWebhookCommand
from billing.application.handlers.stripe_webhook_handler import StripeWebhookHandler
from billing.domain.events import DisputeOpened, PaymentFailed
from core.infrastructure.events import event_bus
from core.infrastructure.repositories.dynamodb_webhook_event_repository import (
    DynamoDBWebhookEventRepository,
)
from licenses.domain.customer import Customer
from licenses.domain.license_record import LicenseRecord
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from organizations.domain.organization import Organization
from organizations.infrastructure.repositories.dynamodb_organization_repository import (
    DynamoDBOrganizationRepository,
)
from tests.fakes import RecordingHandler

_event_ids = itertools.count(1)


def stripe_event(event_type, obj, event_id=None):
    return ProcessStripeWebhookCommand(
        event={
            "id": event_id or f"evt_{next(_event_ids)}",
            "type": event_type,
            "data": {"object": obj},
        }
    )


def checkout_session(plan="individual", seats=1, customer="cus_1", email="Buyer@Example.com"):
    return {
        "id": "cs_1",
        "customer": customer,
        "customer_email": email,
        "subscription": "sub_1",
        "metadata": {"plan": plan, "seats": str(seats)},
    }


@pytest.fixture
def customer_repository(dynamodb_table):
    return DynamoDBCustomerRepository()


@pytest.fixture
def license_repository(dynamodb_table):
    return DynamoDBLicenseRepository()


@pytest.fixture
def organization_repository(dynamodb_table):
    return DynamoDBOrganizationRepository()


@pytest.fixture
def handler(
    customer_repository, license_repository, organization_repository, keygen, identity_admin
):
    return StripeWebhookHandler(
        customer_repository=customer_repository,
        license_repository=license_repository,
        organization_repository=organization_repository,
        keygen=keygen,
        webhook_event_repository=DynamoDBWebhookEventRepository(),
        identity_admin=identity_admin,
    )


@pytest.fixture
def subscriber(customer_repository, license_repository):
    """A paying individual customer with a mirrored license."""

    async def make(**overrides):
        values = {
            "user_id": "u-1",
            "email": "buyer@example.com",
            "stripe_customer_id": "cus_1",
            "keygen_license_id": "lic-1",
            "keygen_license_key": "KEY-1",
            "subscription_status": "active",
        }
        values.update(overrides)
        await customer_repository.upsert(Customer(**values))
        await license_repository.create(LicenseRecord.create("lic-1", "u-1", "KEY-1", None, 3))

    return make


@pytest.mark.asyncio
class TestCheckoutCompleted:
    """checkout.session.completed provisions the purchase."""

    async def test_provisions_individual_license(
        self, handler, keygen, customer_repository, license_repository, sent_emails
    ):
        """Test a first checkout creates the license, customer and email."""
        await handler.handle(stripe_event("checkout.session.completed", checkout_session()))

        policy, name, metadata = keygen.called("create_license")[0][1:]
        assert policy == "policy-individual"
        assert name == "License for buyer@example.com"
        assert metadata["stripeSubscriptionId"] == "sub_1"

        customer = await customer_repository.find_by_stripe_customer_id("cus_1")
        assert customer.user_id == "email:buyer@example.com"
        assert customer.is_temporary
        assert customer.subscription_status == "active"
        record = await license_repository.get(customer.keygen_license_id)
        assert record.max_devices == 3
        assert record.plan_name == "Individual"
        assert [e["template"] for e in sent_emails] == ["licenseDelivery"]
        assert sent_emails[0]["data"]["licenseKey"] == customer.keygen_license_key

    async def test_existing_license_is_not_duplicated(self, handler, keygen, subscriber):
        """Test a replayed checkout for a licensed customer does nothing."""
        await subscriber()

        await handler.handle(stripe_event("checkout.session.completed", checkout_session()))

        assert keygen.called("create_license") == []

    async def test_business_checkout_creates_organization(
        self, handler, organization_repository, customer_repository
    ):
        """Test business purchases get an organization owned by the buyer."""
        await handler.handle(
            stripe_event(
                "checkout.session.completed",
                checkout_session(plan="business", seats=10, customer="cus_biz"),
            )
        )

        organization = await organization_repository.find_by_stripe_customer("cus_biz")
        assert organization.seat_limit == 10
        assert organization.name == "buyer's Organization"
        members = await organization_repository.list_members(organization.org_id)
        assert [(m.email, m.role) for m in members] == [("buyer@example.com", "owner")]
        customer = await customer_repository.find_by_stripe_customer_id("cus_biz")
        assert customer.org_role == "owner"

    async def test_duplicate_event(self, handler, keygen):
        """Test the same event id is only applied once."""
        event = stripe_event("checkout.session.completed", checkout_session(), event_id="evt_x")
        await handler.handle(event)

        receipt = await handler.handle(event)

        assert receipt.to_dict() == {"received": True, "duplicate": True}
        assert len(keygen.called("create_license")) == 1


@pytest.mark.asyncio
class TestSubscriptionEvents:
    """Subscription lifecycle events."""

    async def test_cancellation_scheduled(self, handler, subscriber, customer_repository):
        """Test cancel_at_period_end records when access ends."""
        await subscriber()

        await handler.handle(
            stripe_event(
                "customer.subscription.updated",
                {
                    "customer": "cus_1",
                    "status": "active",
                    "cancel_at_period_end": True,
                    "current_period_end": 1893456000,
                    "items": {"data": [{"id": "si_1", "quantity": 1}]},
                },
            )
        )

        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.cancel_at_period_end is True
        assert customer.access_until.startswith("2030-01-01")

    async def test_unpaid_suspends_license(self, handler, subscriber, keygen, license_repository):
        """Test an unpaid subscription suspends the Keygen license."""
        await subscriber()

        await handler.handle(
            stripe_event("customer.subscription.updated", {"customer": "cus_1", "status": "unpaid"})
        )

        assert keygen.called("suspend_license") == [("suspend_license", "lic-1")]
        assert (await license_repository.get("lic-1")).status == "suspended"

    async def test_reactivation_reinstates(self, handler, subscriber, keygen):
        """Test an active subscription after suspension reinstates the license."""
        await subscriber(subscription_status="suspended")

        await handler.handle(
            stripe_event("customer.subscription.updated", {"customer": "cus_1", "status": "active"})
        )

        assert keygen.called("reinstate_license") == [("reinstate_license", "lic-1")]

    async def test_seat_limit_follows_quantity(self, handler, subscriber, organization_repository):
        """Test the organization seat limit tracks the subscription quantity."""
        await subscriber()
        await organization_repository.upsert(
            Organization.for_subscription("cus_1", "u-1", "buyer@example.com", seats=5)
        )

        await handler.handle(
            stripe_event(
                "customer.subscription.updated",
                {"customer": "cus_1", "status": "active", "items": {"data": [{"quantity": 8}]}},
            )
        )

        assert (await organization_repository.get("cus_1")).seat_limit == 8

    async def test_deleted_subscription(self, handler, subscriber, keygen, customer_repository):
        """Test a deleted subscription cancels and suspends."""
        await subscriber()

        await handler.handle(stripe_event("customer.subscription.deleted", {"customer": "cus_1"}))

        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.subscription_status == "canceled"
        assert customer.canceled_at is not None
        assert keygen.called("suspend_license")

    async def test_unknown_customer_is_acknowledged(self, handler):
        """Test events for customers we never provisioned still succeed."""
        receipt = await handler.handle(
            stripe_event("customer.subscription.deleted", {"customer": "cus_ghost"})
        )
        assert receipt.to_dict() == {"received": True}


@pytest.mark.asyncio
class TestInvoiceEvents:
    """Invoice payment events."""

    async def test_payment_failed(self, handler, subscriber, customer_repository, sent_emails):
        """Test a failed payment marks the customer past due and emails them."""
        await subscriber()
        recorder = RecordingHandler()
        event_bus.subscribe(PaymentFailed, recorder)

        await handler.handle(
            stripe_event(
                "invoice.payment_failed",
                {"customer": "cus_1", "attempt_count": 1, "next_payment_attempt": 1893456000},
            )
        )

        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.subscription_status == "past_due"
        assert customer.payment_failed_count == 1
        assert recorder.events[0].retry_date == "January 01, 2030"
        assert [e["template"] for e in sent_emails] == ["paymentFailed"]

    async def test_final_attempt_suspends(self, handler, subscriber, keygen, customer_repository):
        """Test the third failed attempt suspends the license."""
        await subscriber()

        await handler.handle(
            stripe_event("invoice.payment_failed", {"customer": "cus_1", "attempt_count": 3})
        )

        assert (await customer_repository.find_by_user_id("u-1")).subscription_status == "suspended"
        assert keygen.called("suspend_license")

    async def test_payment_recovers_past_due(
        self, handler, subscriber, keygen, customer_repository, license_repository
    ):
        """Test a successful payment clears past due and moves the expiry."""
        await subscriber(subscription_status="past_due", payment_failed_count=2)

        await handler.handle(
            stripe_event(
                "invoice.payment_succeeded",
                {"customer": "cus_1", "lines": {"data": [{"period": {"end": 1893456000}}]}},
            )
        )

        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.subscription_status == "active"
        assert customer.payment_failed_count == 0
        assert (await license_repository.get("lic-1")).expires_at.startswith("2030-01-01")
        assert keygen.called("reinstate_license")


@pytest.mark.asyncio
class TestDisputeEvents:
    """Charge dispute events."""

    async def test_dispute_opened(self, handler, subscriber, keygen, customer_repository):
        """Test a dispute suspends the license and alerts support."""
        await subscriber()
        recorder = RecordingHandler()
        event_bus.subscribe(DisputeOpened, recorder)

        await handler.handle(
            stripe_event(
                "charge.dispute.created",
                {"id": "dp_1", "customer": "cus_1", "amount": 1500, "currency": "usd"},
            )
        )

        assert (await customer_repository.find_by_user_id("u-1")).subscription_status == "disputed"
        assert keygen.called("suspend_license")
        assert recorder.events[0].customer_email == "buyer@example.com"

    async def test_dispute_won(self, handler, subscriber, keygen, customer_repository):
        """Test a won dispute reinstates the customer."""
        await subscriber(subscription_status="disputed")

        await handler.handle(
            stripe_event("charge.dispute.closed", {"customer": "cus_1", "status": "won"})
        )

        assert (await customer_repository.find_by_user_id("u-1")).subscription_status == "active"
        assert keygen.called("reinstate_license")

    async def test_dispute_lost(self, handler, subscriber, customer_repository):
        """Test a lost dispute flags the customer as fraudulent."""
        await subscriber(subscription_status="disputed")

        await handler.handle(
            stripe_event("charge.dispute.closed", {"customer": "cus_1", "status": "lost"})
        )

        customer = await customer_repository.find_by_user_id("u-1")
        assert customer.subscription_status == "suspended"
        assert customer.fraudulent is True
