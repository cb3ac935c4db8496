"""
Checkout API views.

Stripe hosts the payment page. These endpoints create the checkout
session and let the welcome page confirm it was paid.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.checkout.serializers import (
    CheckoutRequestSerializer,
    CheckoutSessionResponseSerializer,
    CheckoutVerificationResponseSerializer,
)
from api.v1.identity import optional_user
from billing.application.commands.create_checkout_session import CreateCheckoutSessionCommand
from billing.application.handlers.create_checkout_session_handler import (
    CreateCheckoutSessionHandler,
)
from billing.application.handlers.verify_checkout_session_handler import (
    VerifyCheckoutSessionHandler,
)
from billing.application.queries.verify_checkout_session import VerifyCheckoutSessionQuery
from core.infrastructure.stripe_gateway import StripeClient
from core.instrumentation import Status, StatusCode, get_tracer
from core.logging import ApiLogger

# Initialize gateways (in production, use DI container)
_stripe = StripeClient()

tracer = get_tracer(__name__)


class CheckoutView(APIView):
    """View for starting a subscription checkout."""

    server_error_body = {"error": "Failed to create checkout session"}

    @extend_schema(
        operation_id="create_checkout_session",
        summary="Create Checkout Session",
        description=(
            "Create a Stripe Checkout session for a plan. The signed-in user's "
            "email is used when present, otherwise the body's email."
        ),
        tags=["Checkout"],
        request=CheckoutRequestSerializer,
        responses={
            200: CheckoutSessionResponseSerializer,
            400: {"description": "Invalid plan, seats or missing email"},
        },
    )
    def post(self, request: Request) -> Response:
        """Create a checkout session."""
        return async_to_sync(self._handle_create)(request)

    async def _handle_create(self, request: Request) -> Response:
        """Async handler for create checkout session."""
        with tracer.start_as_current_span("create_checkout_session") as span:
            log = ApiLogger("plg-api-checkout", request, "checkout_create")
            log.request_received()

            serializer = CheckoutRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            user = optional_user(request)
            span.set_attribute("checkout.plan", data["plan"])
            span.set_attribute("checkout.authenticated", user is not None)

            handler = CreateCheckoutSessionHandler(stripe_gateway=_stripe)
            result = await handler.handle(
                CreateCheckoutSessionCommand(
                    plan=data["plan"],
                    email=(user.email if user else None) or data.get("email") or None,
                    billing_cycle=data["billingCycle"],
                    seats=data["seats"],
                    promo_code=data.get("promoCode") or None,
                )
            )

            log.response(200, "Checkout session created", plan=data["plan"])
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class VerifyCheckoutView(APIView):
    """View for confirming a completed checkout."""

    server_error_body = {"error": "Verification failed"}

    @extend_schema(
        operation_id="verify_checkout_session",
        summary="Verify Checkout Session",
        description="Confirm that a checkout session was paid.",
        tags=["Checkout"],
        parameters=[
            OpenApiParameter(
                name="session_id",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Stripe checkout session id",
            ),
        ],
        responses={
            200: CheckoutVerificationResponseSerializer,
            400: {"description": "Missing, unknown or unpaid session"},
        },
    )
    def get(self, request: Request) -> Response:
        """Verify a checkout session."""
        return async_to_sync(self._handle_verify)(request)

    async def _handle_verify(self, request: Request) -> Response:
        """Async handler for verify checkout session."""
        with tracer.start_as_current_span("verify_checkout_session") as span:
            log = ApiLogger("plg-api-checkout-verify", request, "checkout_verify")
            session_id = request.query_params.get("session_id")
            log.request_received(has_session_id=bool(session_id))

            handler = VerifyCheckoutSessionHandler(stripe_gateway=_stripe)
            result = await handler.handle(VerifyCheckoutSessionQuery(session_id=session_id))

            log.response(200, "Checkout verify succeeded", plan_type=result.plan_type)
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())
