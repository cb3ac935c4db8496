"""
Integration tests for the checkout and webhook endpoints.
"""
import json

import pytest
from asgiref.sync import async_to_sync

from core.infrastructure.webhooks import WebhookSignatureService
from licenses.domain.customer import Customer
from licenses.domain.license_record import LicenseRecord
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from tests.fakes import VALID_STRIPE_SIGNATURE


def keygen_delivery(event, event_id="kg-evt-1", resource_id="lic-1"):
    return json.dumps({"meta": {"id": event_id, "event": event}, "data": {"id": resource_id}})


@pytest.mark.integration
class TestCheckoutAPI:
    """Tests for /api/checkout and /api/checkout/verify."""

    def test_create_session(self, api_client, gateways):
        """Test an anonymous buyer gets a hosted checkout URL."""
        response = api_client.post(
            "/api/checkout",
            {"plan": "individual", "billingCycle": "annual", "email": "buyer@example.com"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json() == {
            "sessionId": "cs_test_1",
            "url": "https://checkout.stripe.test/cs_test_1",
        }
        params = gateways.stripe.created_sessions[0]
        assert params["customer_email"] == "buyer@example.com"

    def test_signed_in_email_wins(self, auth_client, gateways):
        """Test the token's email is used over the body's."""
        client = auth_client(email="member@example.com")

        client.post(
            "/api/checkout",
            {"plan": "individual", "email": "other@example.com"},
            format="json",
        )

        assert gateways.stripe.created_sessions[0]["customer_email"] == "member@example.com"

    def test_invalid_plan(self, api_client, gateways):
        """Test an unknown plan answers 400."""
        response = api_client.post(
            "/api/checkout", {"plan": "enterprise", "email": "buyer@example.com"}, format="json"
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid plan specified"}

    def test_verify_requires_session(self, api_client, gateways):
        """Test verification without a session id."""
        response = api_client.get("/api/checkout/verify")

        assert response.status_code == 400
        assert response.json() == {"error": "Session ID is required"}

    def test_verify_paid_session(self, api_client, gateways):
        """Test a paid session is confirmed."""
        gateways.stripe.checkout_sessions["cs_paid"] = {
            "id": "cs_paid",
            "payment_status": "paid",
            "customer": "cus_1",
            "customer_email": "buyer@example.com",
            "subscription": "sub_1",
            "metadata": {"plan": "individual"},
        }

        response = api_client.get("/api/checkout/verify", {"session_id": "cs_paid"})

        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert response.json()["planName"] == "Individual"


@pytest.mark.integration
class TestStripeWebhookAPI:
    """Tests for /api/webhooks/stripe."""

    def _post(self, api_client, event, signature=VALID_STRIPE_SIGNATURE):
        headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
        return api_client.post(
            "/api/webhooks/stripe",
            data=json.dumps(event),
            content_type="application/json",
            **headers,
        )

    def test_missing_signature(self, api_client, gateways):
        """Test an unsigned delivery answers 400."""
        response = self._post(api_client, {"id": "evt_1"}, signature=None)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing stripe-signature header"}

    def test_bad_signature(self, api_client, gateways):
        """Test a forged delivery answers 400."""
        response = self._post(api_client, {"id": "evt_1"}, signature="t=1,v1=forged")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}

    def test_checkout_completed_provisions(self, api_client, gateways, sent_emails):
        """Test a completed checkout creates the license and customer."""
        event = {
            "id": "evt_checkout",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_1",
                    "customer": "cus_1",
                    "customer_email": "buyer@example.com",
                    "subscription": "sub_1",
                    "metadata": {"plan": "individual", "seats": "1"},
                }
            },
        }

        first = self._post(api_client, event)
        second = self._post(api_client, event)

        assert first.status_code == 200
        assert first.json() == {"received": True}
        assert second.json() == {"received": True, "duplicate": True}
        assert len(gateways.keygen.called("create_license")) == 1
        assert [email["template"] for email in sent_emails] == ["licenseDelivery"]

    def test_unhandled_event_acknowledged(self, api_client, gateways):
        """Test an event type with no handler is still acknowledged."""
        response = self._post(
            api_client, {"id": "evt_other", "type": "product.created", "data": {"object": {}}}
        )

        assert response.status_code == 200


@pytest.mark.integration
class TestKeygenWebhookAPI:
    """Tests for /api/webhooks/keygen."""

    def _post(self, api_client, payload, signature=None):
        headers = {"HTTP_KEYGEN_SIGNATURE": signature} if signature else {}
        return api_client.post(
            "/api/webhooks/keygen", data=payload, content_type="application/json", **headers
        )

    def test_signed_delivery(self, api_client, gateways):
        """Test a correctly signed delivery is accepted."""
        payload = keygen_delivery("license.created")
        signature = WebhookSignatureService.generate_signature(payload, "keygen-test-secret")

        response = self._post(api_client, payload, signature)

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_bad_signature(self, api_client, gateways):
        """Test a mismatched signature answers 401."""
        response = self._post(api_client, keygen_delivery("license.created"), "deadbeef")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}

    def test_invalid_json(self, api_client, gateways):
        """Test a body that is not JSON answers 400."""
        response = self._post(api_client, "{not json")

        assert response.status_code == 400

    def test_suspension_mirrored(self, api_client, gateways):
        """Test license.suspended updates the local license record."""
        repository = DynamoDBLicenseRepository()
        async_to_sync(repository.create)(
            LicenseRecord.create("lic-1", "u-1", "KEY-1", "policy-individual", 3)
        )

        response = self._post(api_client, keygen_delivery("license.suspended"))

        assert response.status_code == 200
        assert async_to_sync(repository.get)("lic-1").status == "suspended"


@pytest.mark.integration
class TestWebhookCustomerState:
    """End-to-end checks of the customer record after webhooks."""

    def test_subscription_deleted_marks_canceled(self, api_client, gateways):
        """Test customer.subscription.deleted cancels the customer."""
        repository = DynamoDBCustomerRepository()
        async_to_sync(repository.upsert)(
            Customer(
                user_id="u-1",
                email="buyer@example.com",
                stripe_customer_id="cus_1",
                subscription_status="active",
            )
        )
        event = {
            "id": "evt_deleted",
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1", "customer": "cus_1", "status": "canceled"}},
        }

        response = api_client.post(
            "/api/webhooks/stripe",
            data=json.dumps(event),
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=VALID_STRIPE_SIGNATURE,
        )

        assert response.status_code == 200
        customer = async_to_sync(repository.find_by_user_id)("u-1")
        assert customer.subscription_status == "canceled"
