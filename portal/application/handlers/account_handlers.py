"""
Portal dashboard handlers.

Handlers for the subscription summary and the license page.
"""
import logging

from activations.ports.device_repository import DeviceRepository
from billing.domain.plans import max_devices_for, plan_display_name
from core.ports.keygen_gateway import KeygenError, KeygenGateway
from licenses.ports.customer_repository import CustomerRepository
from licenses.ports.license_repository import LicenseRepository
from portal.application.dto.portal_dto import PortalLicenseDTO, PortalStatusDTO
from portal.application.queries.portal_queries import GetPortalLicenseQuery, GetPortalStatusQuery
from portal.application.services.customer_lookup import find_customer

logger = logging.getLogger(__name__)


class GetPortalStatusHandler:
    """Handler for GetPortalStatusQuery."""

    def __init__(
        self, customer_repository: CustomerRepository, device_repository: DeviceRepository
    ):
        """Initialize handler with repositories."""
        self.customer_repository = customer_repository
        self.device_repository = device_repository

    async def handle(self, query: GetPortalStatusQuery) -> PortalStatusDTO:
        """
        Handle get portal status query.

        Args:
            query: GetPortalStatusQuery

        Returns:
            PortalStatusDTO; a caller with no profile gets the ``new`` status
        """
        customer = await find_customer(self.customer_repository, query.user)
        if customer is None:
            return PortalStatusDTO(user=query.user)

        activated = 0
        if customer.keygen_license_id:
            try:
                devices = await self.device_repository.list_for_license(customer.keygen_license_id)
                activated = len(devices)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Failed to get device count", extra={"error": str(e)})

        return PortalStatusDTO(
            user=query.user,
            customer=customer,
            activated_devices=activated,
            max_devices=max_devices_for(customer.account_type),
        )


class GetPortalLicenseHandler:
    """Handler for GetPortalLicenseQuery."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        license_repository: LicenseRepository,
        keygen: KeygenGateway,
    ):
        """Initialize handler with repositories and the Keygen gateway."""
        self.customer_repository = customer_repository
        self.license_repository = license_repository
        self.keygen = keygen

    async def handle(self, query: GetPortalLicenseQuery) -> PortalLicenseDTO:
        """
        Handle get portal license query.

        Keygen's status and expiry win over the local mirror when Keygen
        answers; a Keygen failure falls back to the mirror.
        """
        customer = await find_customer(self.customer_repository, query.user)
        if not customer or not customer.keygen_license_id:
            return PortalLicenseDTO(license=None)

        record = await self.license_repository.get(customer.keygen_license_id)

        remote = None
        try:
            remote = await self.keygen.get_license(customer.keygen_license_id)
        except KeygenError as e:
            logger.error("Failed to fetch license from Keygen", extra={"error": str(e)})

        return PortalLicenseDTO(
            license={
                "id": customer.keygen_license_id,
                "licenseKey": record.license_key if record else None,
                "maskedKey": record.masked_key if record else None,
                "status": (remote.status if remote else None)
                or (record.status if record else None)
                or "unknown",
                "planType": customer.account_type,
                "planName": plan_display_name(customer.account_type),
                "expiresAt": (remote.expires_at if remote else None)
                or (record.expires_at if record else None),
                "maxDevices": (record.max_devices if record else None)
                or max_devices_for(customer.account_type),
                "activatedDevices": record.activated_devices if record else 0,
                "createdAt": record.created_at if record else None,
            },
            subscription={
                "status": customer.subscription_status,
                "stripeCustomerId": customer.stripe_customer_id,
            },
        )
