"""
VerifyCheckoutSessionHandler.

Handler for confirming a checkout on the welcome page.
"""

from billing.application.dto.billing_dto import CheckoutVerificationDTO
from billing.application.queries.verify_checkout_session import VerifyCheckoutSessionQuery
from billing.domain.plans import normalize_plan, plan_display_name
from core.domain.exceptions import InvalidRequestError
from core.ports.stripe_gateway import StripeGateway, StripeInvalidRequestError


class VerifyCheckoutSessionHandler:
    """Handler for VerifyCheckoutSessionQuery."""

    def __init__(self, stripe_gateway: StripeGateway):
        """Initialize handler with the Stripe gateway."""
        self.stripe_gateway = stripe_gateway

    async def handle(self, query: VerifyCheckoutSessionQuery) -> CheckoutVerificationDTO:
        """
        Handle verify checkout session query.

        Args:
            query: VerifyCheckoutSessionQuery

        Returns:
            CheckoutVerificationDTO

        Raises:
            InvalidRequestError: Missing or unknown session id, or an unpaid session
        """
        if not query.session_id:
            raise InvalidRequestError("Session ID is required")

        try:
            session = await self.stripe_gateway.retrieve_checkout_session(
                query.session_id, expand=["subscription", "line_items"]
            )
        except StripeInvalidRequestError as e:
            raise InvalidRequestError("Invalid session ID") from e

        if session.get("payment_status") != "paid":
            raise InvalidRequestError("Payment not completed")

        metadata = session.get("metadata") or {}
        plan_type = normalize_plan(metadata.get("planType") or metadata.get("plan"))

        subscription = session.get("subscription")
        if isinstance(subscription, str):
            subscription_id = subscription
        else:
            subscription_id = subscription.get("id") if subscription else None

        return CheckoutVerificationDTO(
            email=session.get("customer_email")
            or (session.get("customer_details") or {}).get("email"),
            plan_type=plan_type,
            plan_name=plan_display_name(plan_type),
            subscription_id=subscription_id,
            customer_id=session.get("customer"),
        )
