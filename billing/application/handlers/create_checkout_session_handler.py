"""
CreateCheckoutSessionHandler.

Handler for starting a Stripe subscription checkout. Stripe hosts the
payment page; the license itself is provisioned later, from the
``checkout.session.completed`` webhook.
"""

import logging
from typing import Any, Dict, Optional

from django.conf import settings

from billing.application.commands.create_checkout_session import CreateCheckoutSessionCommand
from billing.application.dto.billing_dto import CheckoutSessionDTO
from billing.domain.plans import BILLING_CYCLES, estimate_price, get_plan
from core.domain.exceptions import InvalidRequestError
from core.ports.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class CreateCheckoutSessionHandler:
    """Handler for CreateCheckoutSessionCommand."""

    def __init__(
        self,
        stripe_gateway: StripeGateway,
        prices: Optional[Dict[str, Dict[str, str]]] = None,
        app_url: Optional[str] = None,
    ):
        """Initialize handler with the Stripe gateway and price table."""
        self.stripe_gateway = stripe_gateway
        self.prices = prices if prices is not None else settings.STRIPE_PRICES
        self.app_url = app_url or settings.APP_URL

    async def handle(self, command: CreateCheckoutSessionCommand) -> CheckoutSessionDTO:
        """
        Handle create checkout session command.

        Args:
            command: CreateCheckoutSessionCommand

        Returns:
            CheckoutSessionDTO with the hosted checkout URL

        Raises:
            InvalidRequestError: Unknown plan, too few business seats or no email
        """
        plan = get_plan(command.plan)
        if plan.per_seat and command.seats < plan.min_seats:
            raise InvalidRequestError(
                f"Business plan requires minimum {plan.min_seats} seats"
            )
        if not command.email:
            raise InvalidRequestError("Email is required")

        billing_cycle = command.billing_cycle if command.billing_cycle in BILLING_CYCLES else "monthly"
        quantity = command.seats if plan.per_seat else 1

        params: Dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": self.prices[plan.id][billing_cycle], "quantity": quantity}],
            "success_url": f"{self.app_url}/welcome?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.app_url}/pricing?cancelled=true",
            "customer_email": command.email,
            "allow_promotion_codes": not command.promo_code,
            "metadata": {
                "plan": plan.id,
                "seats": str(command.seats),
                "billingCycle": command.billing_cycle,
            },
        }

        if plan.trial_days and not command.promo_code:
            params["subscription_data"] = {"trial_period_days": plan.trial_days}

        if command.promo_code:
            promotion = await self.stripe_gateway.find_promotion_code(command.promo_code)
            if promotion:
                params["discounts"] = [{"promotion_code": promotion["id"]}]
            else:
                logger.info("Promo code not found in Stripe", extra={"plan": plan.id})

        session = await self.stripe_gateway.create_checkout_session(params)
        logger.info(
            "Checkout session created",
            extra={
                "plan": plan.id,
                "seats": quantity,
                "billing_cycle": billing_cycle,
                "estimated_amount": estimate_price(
                    plan.id, billing_cycle, quantity, command.promo_code
                ),
            },
        )
        return CheckoutSessionDTO(session_id=session["id"], url=session["url"])
