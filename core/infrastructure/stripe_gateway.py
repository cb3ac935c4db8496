"""
Stripe SDK adapter.

Implements StripeGateway with the ``stripe`` package. The API key is passed
per call so a rotated secret takes effect without a restart.
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import stripe
from asgiref.sync import sync_to_async

from core.infrastructure.secrets import get_secret
from core.metrics import upstream_errors_total, upstream_request_duration_seconds
from core.ports.stripe_gateway import (
    StripeGateway,
    StripeGatewayError,
    StripeInvalidRequestError,
    StripeSignatureError,
)

logger = logging.getLogger(__name__)


class StripeClient(StripeGateway):
    """``stripe`` package adapter."""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self._api_key = api_key
        self._webhook_secret = webhook_secret

    @property
    def api_key(self) -> str:
        return self._api_key or get_secret("STRIPE_SECRET_KEY")

    @property
    def webhook_secret(self) -> str:
        return self._webhook_secret or get_secret("STRIPE_WEBHOOK_SECRET")

    def _call(self, operation: str, func, *args, **kwargs):
        """Invoke a Stripe SDK function, translating its errors."""
        start = time.time()
        try:
            return func(*args, api_key=self.api_key, **kwargs)
        except stripe.InvalidRequestError as e:
            upstream_errors_total.labels(service="stripe", operation=operation).inc()
            raise StripeInvalidRequestError(str(e)) from e
        except stripe.StripeError as e:
            upstream_errors_total.labels(service="stripe", operation=operation).inc()
            logger.error(
                "Stripe request failed",
                extra={"operation": operation, "error_type": type(e).__name__},
            )
            raise StripeGatewayError(str(e)) from e
        finally:
            upstream_request_duration_seconds.labels(
                service="stripe", operation=operation
            ).observe(time.time() - start)

    def construct_event(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise StripeSignatureError(str(e)) from e

    async def create_checkout_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "create_checkout_session", stripe.checkout.Session.create, **params
        )

    async def retrieve_checkout_session(
        self, session_id: str, expand: Optional[List[str]] = None
    ) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "retrieve_checkout_session",
            stripe.checkout.Session.retrieve,
            session_id,
            expand=expand or [],
        )

    def _find_promotion_code(self, code: str) -> Optional[Mapping[str, Any]]:
        result = self._call(
            "find_promotion_code", stripe.PromotionCode.list, code=code, active=True, limit=1
        )
        data = result.get("data") or []
        return data[0] if data else None

    async def find_promotion_code(self, code: str) -> Optional[Mapping[str, Any]]:
        return await sync_to_async(self._find_promotion_code)(code)

    async def retrieve_customer(self, customer_id: str) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "retrieve_customer",
            stripe.Customer.retrieve,
            customer_id,
            expand=["invoice_settings.default_payment_method"],
        )

    def _list_subscriptions(
        self, customer_id: str, status: str, limit: int
    ) -> List[Mapping[str, Any]]:
        result = self._call(
            "list_subscriptions",
            stripe.Subscription.list,
            customer=customer_id,
            status=status,
            limit=limit,
        )
        return list(result.get("data") or [])

    async def list_subscriptions(
        self, customer_id: str, status: str = "all", limit: int = 10
    ) -> List[Mapping[str, Any]]:
        return await sync_to_async(self._list_subscriptions)(customer_id, status, limit)

    async def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "retrieve_subscription", stripe.Subscription.retrieve, subscription_id
        )

    async def update_subscription(self, subscription_id: str, **params) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "update_subscription", stripe.Subscription.modify, subscription_id, **params
        )

    async def update_subscription_quantity(
        self, subscription_id: str, item_id: str, quantity: int
    ) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "update_subscription_quantity",
            stripe.Subscription.modify,
            subscription_id,
            items=[{"id": item_id, "quantity": quantity}],
            proration_behavior="create_prorations",
        )

    async def list_invoices(self, customer_id: str, limit: int = 10) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "list_invoices", stripe.Invoice.list, customer=customer_id, limit=limit
        )

    async def retrieve_payment_method(self, payment_method_id: str) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "retrieve_payment_method", stripe.PaymentMethod.retrieve, payment_method_id
        )

    async def create_billing_portal_session(
        self, customer_id: str, return_url: str
    ) -> Mapping[str, Any]:
        return await sync_to_async(self._call)(
            "create_billing_portal_session",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
