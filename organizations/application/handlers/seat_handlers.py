"""
Seat management handlers.

Seat quantity lives on the Stripe subscription; the organization's seat
limit follows it. Stripe prorates every change.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from billing.domain.plans import PRICING
from core.domain.exceptions import InvalidRequestError, NotFoundError, PermissionDeniedError
from core.domain.identity import CognitoUser
from core.ports.stripe_gateway import StripeGateway, StripeGatewayError
from licenses.domain.customer import Customer
from licenses.ports.customer_repository import CustomerRepository
from organizations.application.commands.update_seats import UpdateSeatsCommand
from organizations.application.dto.organization_dto import SeatChangeDTO, SeatsDTO
from organizations.application.queries.get_seats import GetSeatsQuery
from organizations.domain.organization import ROLE_MEMBER
from organizations.domain.services import SeatUsage, TeamPolicy
from organizations.ports.organization_repository import OrganizationRepository

logger = logging.getLogger(__name__)


class _SeatHandler:
    def __init__(
        self,
        organization_repository: OrganizationRepository,
        customer_repository: CustomerRepository,
        stripe_gateway: StripeGateway,
    ):
        """Initialize handler with repositories and the Stripe gateway."""
        self.organization_repository = organization_repository
        self.customer_repository = customer_repository
        self.stripe_gateway = stripe_gateway

    async def _resolve(self, user: CognitoUser) -> Tuple[Optional[Customer], str, str]:
        """
        Resolve the caller's customer profile, organization id and org role.

        Members invited into an organization may have no profile of their
        own; their membership makes them Business.
        """
        customer = await self.customer_repository.find_by_user_id(user.user_id)
        if not customer and user.email:
            customer = await self.customer_repository.find_by_email(user.email)

        membership = None
        if not customer:
            membership = await self.organization_repository.find_membership(user.user_id)

        account_type = "business" if membership else (customer.account_type if customer else None)
        if account_type != "business":
            raise PermissionDeniedError("Seat management is only available for Business tier")

        org_id = membership.org_id if membership else customer.org_id
        if not org_id and customer and customer.stripe_customer_id:
            organization = await self.organization_repository.find_by_stripe_customer(
                customer.stripe_customer_id
            )
            if organization:
                org_id = organization.org_id
        if not org_id:
            raise NotFoundError("Organization not found")

        role = (membership.role if membership else None) or (
            customer.org_role if customer else None
        ) or ROLE_MEMBER
        return customer, org_id, role

    async def _usage(self, org_id: str) -> SeatUsage:
        organization = await self.organization_repository.get(org_id)
        if not organization:
            raise NotFoundError("Organization not found")
        members = await self.organization_repository.list_members(org_id)
        return SeatUsage.compute(org_id, organization.seat_limit, members)


def _first_item(subscription) -> dict:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _unit_price(item) -> Optional[float]:
    unit_amount = (item.get("price") or {}).get("unit_amount")
    return unit_amount / 100 if unit_amount else None


class GetSeatsHandler(_SeatHandler):
    """Handler for GetSeatsQuery."""

    async def handle(self, query: GetSeatsQuery) -> SeatsDTO:
        """
        Handle get seats query.

        Stripe failures are logged; the response then falls back to the
        stored seat limit with no price.

        Raises:
            PermissionDeniedError: Not a Business account
            NotFoundError: No organization
        """
        customer, org_id, _ = await self._resolve(query.user)
        usage = await self._usage(org_id)

        quantity = usage.seat_limit
        price_per_seat = None
        if customer and customer.stripe_subscription_id:
            try:
                subscription = await self.stripe_gateway.retrieve_subscription(
                    customer.stripe_subscription_id
                )
                item = _first_item(subscription)
                quantity = item.get("quantity") or 1
                price_per_seat = _unit_price(item)
            except StripeGatewayError as e:
                logger.warning("Failed to fetch Stripe subscription", extra={"error": str(e)})

        return SeatsDTO(
            usage=usage, subscription_quantity=quantity, price_per_seat=price_per_seat
        )


class UpdateSeatsHandler(_SeatHandler):
    """Handler for UpdateSeatsCommand."""

    async def handle(self, command: UpdateSeatsCommand) -> SeatChangeDTO:
        """
        Handle update seats command.

        Args:
            command: UpdateSeatsCommand

        Returns:
            SeatChangeDTO

        Raises:
            PermissionDeniedError: Not Business, or not an owner/admin
            InvalidRequestError: Bad quantity, below the plan minimum or below usage
            NotFoundError: No organization or no subscription
        """
        customer, org_id, role = await self._resolve(command.user)
        if role not in ("owner", "admin"):
            raise PermissionDeniedError("Only owners and admins can change seat quantity")

        quantity = command.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidRequestError("Invalid quantity. Must be a positive number.")

        usage = await self._usage(org_id)
        TeamPolicy.validate_seat_change(quantity, PRICING["business"].min_seats, usage)

        if not customer or not customer.stripe_subscription_id:
            raise NotFoundError("No active subscription found")

        subscription = await self.stripe_gateway.retrieve_subscription(
            customer.stripe_subscription_id
        )
        item = _first_item(subscription)
        updated = await self.stripe_gateway.update_subscription_quantity(
            customer.stripe_subscription_id, item.get("id"), quantity
        )
        await self.organization_repository.update_seat_limit(org_id, quantity)

        logger.info(
            "Seat quantity updated",
            extra={"org_id": org_id, "previous_quantity": usage.seat_limit, "new_quantity": quantity},
        )
        return SeatChangeDTO(
            previous_quantity=usage.seat_limit,
            new_quantity=quantity,
            subscription_id=customer.stripe_subscription_id,
            effective_date=datetime.now(timezone.utc).isoformat(),
            price_per_seat=_unit_price(_first_item(updated)),
        )
