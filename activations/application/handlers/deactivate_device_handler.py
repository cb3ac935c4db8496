"""
DeactivateDeviceHandler.

Handler for freeing a device slot: the Keygen machine is deleted first,
then the local record and the license's device counter.
"""

import logging

from activations.application.commands.deactivate_device import DeactivateDeviceCommand
from activations.application.dto.activation_dto import DeactivationResultDTO
from activations.domain.events import DeviceDeactivated
from activations.ports.device_repository import DeviceRepository
from core.domain.exceptions import InvalidRequestError, LicenseOwnershipError
from core.infrastructure.events import event_bus
from core.ports.keygen_gateway import KeygenError, KeygenGateway
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class DeactivateDeviceHandler:
    """Handler for DeactivateDeviceCommand."""

    def __init__(
        self,
        keygen: KeygenGateway,
        device_repository: DeviceRepository,
        license_repository: LicenseRepository,
    ):
        """Initialize handler with the Keygen gateway and repositories."""
        self.keygen = keygen
        self.device_repository = device_repository
        self.license_repository = license_repository

    async def handle(self, command: DeactivateDeviceCommand) -> DeactivationResultDTO:
        """
        Handle deactivate device command.

        Args:
            command: DeactivateDeviceCommand

        Returns:
            DeactivationResultDTO

        Raises:
            LicenseOwnershipError: If an authenticated caller does not own the license
            InvalidRequestError: If no machine id can be resolved
        """
        if command.user_id and not await self.license_repository.user_owns_license(
            command.user_id, command.license_id
        ):
            raise LicenseOwnershipError()

        machine_id = command.machine_id
        if not machine_id and command.fingerprint:
            device = await self.device_repository.find_by_fingerprint(
                command.license_id, command.fingerprint
            )
            machine_id = device.keygen_machine_id if device else None
        if not machine_id:
            raise InvalidRequestError("Unable to resolve machine ID for deactivation")

        try:
            await self.keygen.deactivate_device(machine_id)
        except KeygenError as e:
            if e.status != 404:
                raise
            logger.warning(
                "Machine not found in Keygen during deactivation",
                extra={"license_id": command.license_id, "machine_id": machine_id},
            )
            # Drop the stale local record so the slot is not counted
            await self.device_repository.remove(command.license_id, machine_id)
            return DeactivationResultDTO(
                message="Device not found (may already be deactivated)",
                machine_id=machine_id,
            )

        await self.device_repository.remove(command.license_id, machine_id)
        await event_bus.publish(
            DeviceDeactivated(
                license_id=command.license_id, machine_id=machine_id, source=command.source
            )
        )
        return DeactivationResultDTO(message="Device deactivated successfully", machine_id=machine_id)
