"""
Webhook receiver views.

Stripe and Keygen push lifecycle events here. Both routes read the raw
body so signatures are checked against the exact bytes that were signed,
and both acknowledge duplicates without reprocessing them.
"""

import json

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from activations.infrastructure.repositories.dynamodb_device_repository import (
    DynamoDBDeviceRepository,
)
from billing.application.commands.process_stripe_webhook import ProcessStripeWebhookCommand
from billing.application.handlers.stripe_webhook_handler import StripeWebhookHandler
from core.domain.exceptions import InvalidRequestError, InvalidWebhookSignatureError
from core.infrastructure.cognito import CognitoAdmin
from core.infrastructure.keygen import KeygenClient
from core.infrastructure.repositories.dynamodb_webhook_event_repository import (
    DynamoDBWebhookEventRepository,
)
from core.infrastructure.secrets import get_secret
from core.infrastructure.stripe_gateway import StripeClient
from core.infrastructure.webhooks import WebhookSignatureService
from core.instrumentation import Status, StatusCode, get_tracer
from core.logging import ApiLogger
from core.ports.stripe_gateway import StripeSignatureError
from licenses.application.commands.process_keygen_webhook import ProcessKeygenWebhookCommand
from licenses.application.handlers.keygen_webhook_handler import KeygenWebhookHandler
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from organizations.infrastructure.repositories.dynamodb_organization_repository import (
    DynamoDBOrganizationRepository,
)

# Initialize repositories (in production, use DI container)
_stripe = StripeClient()
_keygen = KeygenClient()
_identity_admin = CognitoAdmin()
_customer_repo = DynamoDBCustomerRepository()
_license_repo = DynamoDBLicenseRepository()
_device_repo = DynamoDBDeviceRepository()
_organization_repo = DynamoDBOrganizationRepository()
_webhook_event_repo = DynamoDBWebhookEventRepository()

tracer = get_tracer(__name__)


class StripeWebhookView(APIView):
    """Receiver for Stripe billing events."""

    server_error_body = {"error": "Webhook handler failed"}

    @extend_schema(
        operation_id="stripe_webhook",
        summary="Stripe Webhook",
        description=(
            "Receive a signed Stripe event. Handled types: checkout.session.completed, "
            "customer.subscription.created/updated/deleted, "
            "invoice.payment_succeeded, invoice.payment_failed and charge.dispute.created."
        ),
        tags=["Webhooks"],
        request=None,
        responses={
            200: {"description": "Event received"},
            400: {"description": "Missing or invalid signature"},
            500: {"description": "Handler failed; Stripe will retry"},
        },
    )
    def post(self, request: Request) -> Response:
        """Receive a Stripe event."""
        return async_to_sync(self._handle_webhook)(request)

    async def _handle_webhook(self, request: Request) -> Response:
        """Async handler for Stripe webhooks."""
        with tracer.start_as_current_span("stripe_webhook") as span:
            log = ApiLogger("plg-api-webhooks-stripe", request, "stripe_webhook")
            signature = request.headers.get("stripe-signature")
            log.request_received(has_signature=bool(signature))

            if not signature:
                log.decision("signature_missing", "Stripe webhook rejected")
                raise InvalidRequestError("Missing stripe-signature header")

            try:
                event = _stripe.construct_event(request.body, signature)
            except StripeSignatureError as e:
                log.warn(
                    "signature_verification_failed",
                    "Stripe webhook signature verification failed",
                    error_message=str(e),
                )
                return Response({"error": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

            command = ProcessStripeWebhookCommand(event=event)
            span.set_attribute("webhook.event_type", command.event_type)

            handler = StripeWebhookHandler(
                customer_repository=_customer_repo,
                license_repository=_license_repo,
                organization_repository=_organization_repo,
                keygen=_keygen,
                webhook_event_repository=_webhook_event_repo,
                identity_admin=_identity_admin,
            )
            result = await handler.handle(command)

            log.response(
                200,
                "Stripe webhook processed",
                event_type=command.event_type,
                duplicate=result.duplicate,
            )
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class KeygenWebhookView(APIView):
    """Receiver for Keygen license and machine events."""

    server_error_body = {"error": "Webhook processing failed"}

    @extend_schema(
        operation_id="keygen_webhook",
        summary="Keygen Webhook",
        description=(
            "Receive a Keygen event. When a keygen-signature header is sent it "
            "must match the HMAC-SHA256 of the body under the webhook secret."
        ),
        tags=["Webhooks"],
        request=None,
        responses={
            200: {"description": "Event received"},
            401: {"description": "Invalid signature"},
            500: {"description": "Processing failed"},
        },
    )
    def post(self, request: Request) -> Response:
        """Receive a Keygen event."""
        return async_to_sync(self._handle_webhook)(request)

    async def _handle_webhook(self, request: Request) -> Response:
        """Async handler for Keygen webhooks."""
        with tracer.start_as_current_span("keygen_webhook") as span:
            log = ApiLogger("plg-api-webhooks-keygen", request, "keygen_webhook")
            payload = request.body
            signature = request.headers.get("keygen-signature")
            log.request_received(has_signature=bool(signature))

            secret = get_secret("KEYGEN_WEBHOOK_SECRET", "")
            if (
                signature
                and secret
                and not WebhookSignatureService.verify_signature(payload, signature, secret)
            ):
                log.decision("invalid_signature", "Keygen webhook rejected")
                raise InvalidWebhookSignatureError()

            try:
                body = json.loads(payload or b"{}")
            except ValueError as e:
                raise InvalidRequestError("Invalid JSON") from e

            command = ProcessKeygenWebhookCommand(payload=body)
            span.set_attribute("webhook.event_type", command.event)

            handler = KeygenWebhookHandler(
                license_repository=_license_repo,
                device_repository=_device_repo,
                webhook_event_repository=_webhook_event_repo,
            )
            result = await handler.handle(command)

            log.response(
                200,
                "Keygen webhook processed",
                event_type=command.event,
                duplicate=result.duplicate,
            )
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())
