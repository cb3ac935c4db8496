"""
Portal billing handlers.

Read-through views of Stripe billing state plus the hand-off to Stripe's
hosted billing portal.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from django.conf import settings

from billing.domain.plans import PRICING
from core.domain.exceptions import NotFoundError
from core.ports.stripe_gateway import StripeGateway
from licenses.ports.customer_repository import CustomerRepository
from portal.application.commands.account_commands import CreateBillingPortalSessionCommand
from portal.application.dto.portal_dto import BillingDTO, InvoiceListDTO
from portal.application.queries.portal_queries import GetBillingQuery, ListInvoicesQuery
from portal.application.services.customer_lookup import find_customer

logger = logging.getLogger(__name__)

MAX_INVOICES = 100


def iso_from_epoch(seconds: Optional[int]) -> Optional[str]:
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def _first_line(obj: Mapping[str, Any], field: str) -> Mapping[str, Any]:
    data = (obj.get(field) or {}).get("data") or []
    return data[0] if data else {}


def format_payment_method(payment_method: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    card = payment_method.get("card") if payment_method else None
    if not card:
        return None
    return {
        "id": payment_method.get("id"),
        "type": "card",
        "brand": card.get("brand"),
        "last4": card.get("last4"),
        "expMonth": card.get("exp_month"),
        "expYear": card.get("exp_year"),
    }


def format_subscription(subscription: Mapping[str, Any]) -> Dict[str, Any]:
    item = _first_line(subscription, "items")
    price = item.get("price") or {}
    interval = (price.get("recurring") or {}).get("interval")
    return {
        "id": subscription.get("id"),
        "status": subscription.get("status"),
        "currentPeriodStart": iso_from_epoch(subscription.get("current_period_start")),
        "currentPeriodEnd": iso_from_epoch(subscription.get("current_period_end")),
        "cancelAtPeriodEnd": bool(subscription.get("cancel_at_period_end")),
        "cancelAt": iso_from_epoch(subscription.get("cancel_at")),
        "billingCycle": "annual" if interval == "year" else "monthly",
        "priceId": price.get("id"),
        "amount": price.get("unit_amount"),
        "currency": price.get("currency"),
        "quantity": item.get("quantity") or 1,
    }


def format_invoice(invoice: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": invoice.get("id"),
        "number": invoice.get("number"),
        "date": iso_from_epoch(invoice.get("created")),
        "dueDate": iso_from_epoch(invoice.get("due_date")),
        "status": invoice.get("status"),
        "amount": invoice.get("amount_due"),
        "amountPaid": invoice.get("amount_paid"),
        "currency": invoice.get("currency"),
        "description": _first_line(invoice, "lines").get("description") or "Subscription",
        "pdfUrl": invoice.get("invoice_pdf"),
        "hostedUrl": invoice.get("hosted_invoice_url"),
    }


class GetBillingHandler:
    """Handler for GetBillingQuery."""

    def __init__(self, customer_repository: CustomerRepository, stripe_gateway: StripeGateway):
        """Initialize handler with the customer repository and Stripe gateway."""
        self.customer_repository = customer_repository
        self.stripe_gateway = stripe_gateway

    async def handle(self, query: GetBillingQuery) -> BillingDTO:
        """
        Handle get billing query.

        The payment method is the customer's invoice default, else the
        subscription's own default.
        """
        customer = await find_customer(self.customer_repository, query.user)
        if not customer or not customer.stripe_customer_id:
            return BillingDTO()

        stripe_customer = await self.stripe_gateway.retrieve_customer(customer.stripe_customer_id)
        subscriptions = await self.stripe_gateway.list_subscriptions(
            customer.stripe_customer_id, status="all", limit=1
        )
        subscription = subscriptions[0] if subscriptions else None

        default_pm = (stripe_customer.get("invoice_settings") or {}).get(
            "default_payment_method"
        ) or (subscription.get("default_payment_method") if subscription else None)
        if isinstance(default_pm, str):
            default_pm = await self.stripe_gateway.retrieve_payment_method(default_pm)

        plan = PRICING.get(customer.account_type or "")
        return BillingDTO(
            account_type=customer.account_type,
            plan_name=plan.name if plan else customer.account_type,
            subscription=format_subscription(subscription) if subscription else None,
            payment_method=format_payment_method(default_pm),
            stripe_customer_id=customer.stripe_customer_id,
        )


class ListInvoicesHandler:
    """Handler for ListInvoicesQuery."""

    def __init__(self, customer_repository: CustomerRepository, stripe_gateway: StripeGateway):
        """Initialize handler with the customer repository and Stripe gateway."""
        self.customer_repository = customer_repository
        self.stripe_gateway = stripe_gateway

    async def handle(self, query: ListInvoicesQuery) -> InvoiceListDTO:
        customer = await find_customer(self.customer_repository, query.user)
        if not customer or not customer.stripe_customer_id:
            return InvoiceListDTO()

        limit = max(1, min(query.limit, MAX_INVOICES))
        invoices = await self.stripe_gateway.list_invoices(customer.stripe_customer_id, limit=limit)
        return InvoiceListDTO(
            invoices=[format_invoice(invoice) for invoice in invoices.get("data") or []],
            has_more=bool(invoices.get("has_more")),
        )


class CreateBillingPortalSessionHandler:
    """Handler for CreateBillingPortalSessionCommand."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        stripe_gateway: StripeGateway,
        app_url: Optional[str] = None,
    ):
        """Initialize handler with the customer repository and Stripe gateway."""
        self.customer_repository = customer_repository
        self.stripe_gateway = stripe_gateway
        self.app_url = app_url or settings.APP_URL

    async def handle(self, command: CreateBillingPortalSessionCommand) -> str:
        """
        Create a billing portal session.

        Returns:
            The portal session URL to redirect to

        Raises:
            NotFoundError: The caller has no Stripe customer
        """
        customer = await find_customer(self.customer_repository, command.user)
        if not customer or not customer.stripe_customer_id:
            raise NotFoundError("No Stripe customer found. Please purchase a license first.")

        session = await self.stripe_gateway.create_billing_portal_session(
            customer.stripe_customer_id, return_url=f"{self.app_url}/portal/billing"
        )
        return session["url"]
