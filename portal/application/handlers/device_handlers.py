"""
Portal device handlers.
"""
import logging

from activations.application.commands.deactivate_device import DeactivateDeviceCommand
from activations.application.handlers.deactivate_device_handler import DeactivateDeviceHandler
from activations.ports.device_repository import DeviceRepository
from billing.domain.plans import max_devices_for
from core.domain.exceptions import InvalidRequestError, LicenseOwnershipError
from core.ports.keygen_gateway import KeygenError, KeygenGateway
from licenses.ports.customer_repository import CustomerRepository
from licenses.ports.license_repository import LicenseRepository
from portal.application.commands.device_commands import RemoveDeviceCommand
from portal.application.dto.portal_dto import ActionResultDTO, DeviceListDTO
from portal.application.queries.portal_queries import ListDevicesQuery
from portal.application.services.customer_lookup import find_customer

logger = logging.getLogger(__name__)


class ListDevicesHandler:
    """Handler for ListDevicesQuery."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        device_repository: DeviceRepository,
        keygen: KeygenGateway,
    ):
        """Initialize handler with repositories and the Keygen gateway."""
        self.customer_repository = customer_repository
        self.device_repository = device_repository
        self.keygen = keygen

    async def handle(self, query: ListDevicesQuery) -> DeviceListDTO:
        """
        Handle list devices query.

        Local records decide which devices are listed; Keygen's machine data,
        when available, supplies the freshest name, platform and heartbeat.
        """
        customer = await find_customer(self.customer_repository, query.user)
        if not customer or not customer.keygen_license_id:
            return DeviceListDTO()

        license_id = customer.keygen_license_id
        devices = await self.device_repository.list_for_license(license_id)

        machines = {}
        try:
            machines = {m.id: m for m in await self.keygen.get_license_machines(license_id)}
        except KeygenError as e:
            logger.warning("Failed to fetch Keygen machines", extra={"error": str(e)})

        merged = []
        for device in devices:
            machine = machines.get(device.keygen_machine_id)
            merged.append(
                {
                    "id": device.keygen_machine_id,
                    "name": (machine.name if machine else None) or device.name,
                    "platform": (machine.platform if machine else None) or device.platform,
                    "fingerprint": device.fingerprint,
                    "lastSeen": (machine.last_heartbeat if machine else None)
                    or device.last_seen_at,
                    "createdAt": (machine.created_at if machine else None) or device.created_at,
                }
            )

        return DeviceListDTO(
            devices=merged,
            max_devices=max_devices_for(customer.account_type),
            license_id=license_id,
        )


class RemoveDeviceHandler:
    """Handler for RemoveDeviceCommand."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        license_repository: LicenseRepository,
        deactivate_handler: DeactivateDeviceHandler,
    ):
        """Initialize handler with repositories and the device deactivation handler."""
        self.customer_repository = customer_repository
        self.license_repository = license_repository
        self.deactivate_handler = deactivate_handler

    async def handle(self, command: RemoveDeviceCommand) -> ActionResultDTO:
        """
        Handle remove device command.

        Raises:
            InvalidRequestError: Missing machine or license id
            LicenseOwnershipError: The license is not the caller's
        """
        if not command.machine_id or not command.license_id:
            raise InvalidRequestError("Machine ID and License ID required")

        customer = await find_customer(self.customer_repository, command.user)
        owns = bool(customer and customer.keygen_license_id == command.license_id)
        if not owns:
            owns = await self.license_repository.user_owns_license(
                command.user.user_id, command.license_id
            )
        if not owns:
            raise LicenseOwnershipError()

        await self.deactivate_handler.handle(
            DeactivateDeviceCommand(
                license_id=command.license_id, machine_id=command.machine_id, source="portal"
            )
        )
        return ActionResultDTO()
