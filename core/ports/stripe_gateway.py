"""
Stripe gateway port (interface).

Stripe owns billing. Objects are returned as Stripe hands them back
(mappings keyed like the Stripe API), so handlers read them with
``obj["field"]`` and ``obj.get("field")``.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional


class StripeGatewayError(Exception):
    """Raised when a Stripe call fails."""


class StripeInvalidRequestError(StripeGatewayError):
    """Raised when Stripe rejects the parameters (unknown id, bad value)."""


class StripeSignatureError(StripeGatewayError):
    """Raised when a webhook signature cannot be verified."""


class StripeGateway(ABC):
    """Abstract gateway to the Stripe billing API."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        """
        Verify a webhook payload and return the event.

        Raises:
            StripeSignatureError: If the signature is invalid
        """
        pass

    @abstractmethod
    async def create_checkout_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        pass

    @abstractmethod
    async def retrieve_checkout_session(
        self, session_id: str, expand: Optional[List[str]] = None
    ) -> Mapping[str, Any]:
        """
        Raises:
            StripeInvalidRequestError: For an unknown session id
        """
        pass

    @abstractmethod
    async def find_promotion_code(self, code: str) -> Optional[Mapping[str, Any]]:
        """Return the active promotion code object, or None."""
        pass

    @abstractmethod
    async def retrieve_customer(self, customer_id: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    async def list_subscriptions(
        self, customer_id: str, status: str = "all", limit: int = 10
    ) -> List[Mapping[str, Any]]:
        pass

    @abstractmethod
    async def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    async def update_subscription(self, subscription_id: str, **params) -> Mapping[str, Any]:
        pass

    @abstractmethod
    async def update_subscription_quantity(
        self, subscription_id: str, item_id: str, quantity: int
    ) -> Mapping[str, Any]:
        pass

    @abstractmethod
    async def list_invoices(self, customer_id: str, limit: int = 10) -> Mapping[str, Any]:
        """Return the invoice list object (``data`` and ``has_more``)."""
        pass

    @abstractmethod
    async def retrieve_payment_method(self, payment_method_id: str) -> Mapping[str, Any]:
        pass

    @abstractmethod
    async def create_billing_portal_session(
        self, customer_id: str, return_url: str
    ) -> Mapping[str, Any]:
        pass
