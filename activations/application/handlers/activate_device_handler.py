"""
ActivateDeviceHandler.

Handler for binding a license key to a device. Keygen validates the key
against the device fingerprint first; activating a device that is already
bound is reported as success, never as an error.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from activations.application.commands.activate_device import ActivateDeviceCommand
from activations.application.dto.activation_dto import ActivationResultDTO
from activations.domain.device import Device
from activations.domain.events import DeviceActivated
from activations.domain.services import (
    ACTIVATABLE_CODES,
    DEFAULT_CONCURRENT_DEVICE_WINDOW_HOURS,
    DeviceWindow,
    default_device_name,
)
from activations.ports.device_repository import DeviceRepository
from core.domain.exceptions import (
    ActivationRejectedError,
    LicenseDataMissingError,
    LicenseValidationFailedError,
)
from core.infrastructure.events import event_bus
from core.ports.keygen_gateway import KeygenError, KeygenGateway, KeygenLicense

logger = logging.getLogger(__name__)


def license_summary(license: Optional[KeygenLicense]) -> Optional[Dict[str, Any]]:
    if license is None:
        return None
    return {"id": license.id, "status": license.status, "expiresAt": license.expires_at}


class ActivateDeviceHandler:
    """Handler for ActivateDeviceCommand."""

    def __init__(
        self,
        keygen: KeygenGateway,
        device_repository: DeviceRepository,
        window_hours: int = DEFAULT_CONCURRENT_DEVICE_WINDOW_HOURS,
    ):
        """Initialize handler with the Keygen gateway and device repository."""
        self.keygen = keygen
        self.device_repository = device_repository
        self.window_hours = window_hours

    async def handle(self, command: ActivateDeviceCommand) -> ActivationResultDTO:
        """
        Handle activate device command.

        Args:
            command: ActivateDeviceCommand

        Returns:
            ActivationResultDTO

        Raises:
            LicenseValidationFailedError: If Keygen rejects the key for a reason
                other than this device not being bound yet
            LicenseDataMissingError: If Keygen returns no license to activate
            ActivationRejectedError: If Keygen refuses to create the machine
        """
        validation = await self.keygen.validate_license(command.license_key, command.fingerprint)

        if validation.valid:
            return ActivationResultDTO(
                already_activated=True,
                message="Device already activated",
                license=license_summary(validation.license),
            )
        if validation.code == "HEARTBEAT_NOT_STARTED":
            return ActivationResultDTO(
                already_activated=True,
                message="Device already activated (awaiting first heartbeat)",
                license=license_summary(validation.license),
            )
        if validation.code not in ACTIVATABLE_CODES:
            raise LicenseValidationFailedError(validation.code, validation.detail)
        if not validation.license or not validation.license.id:
            raise LicenseDataMissingError()

        license = await self.keygen.get_license(validation.license.id)
        devices = await self.device_repository.list_for_license(license.id)
        active = DeviceWindow.active_devices(devices, self.window_hours)
        over_limit = DeviceWindow.activation_over_limit(len(active), license.max_machines)

        try:
            machine = await self.keygen.activate_device(
                license_id=license.id,
                fingerprint=command.fingerprint,
                name=command.device_name or default_device_name(command.fingerprint),
                platform=command.platform or "unknown",
                metadata={"activatedAt": datetime.now(timezone.utc).isoformat()},
            )
        except KeygenError as e:
            if e.status == 422:
                raise ActivationRejectedError(e.detail) from e
            raise

        await self.device_repository.add(
            Device.create(
                license_id=license.id,
                keygen_machine_id=machine.id,
                fingerprint=command.fingerprint,
                name=machine.name,
                platform=machine.platform,
                user_id=command.user_id,
                user_email=command.user_email,
            )
        )

        await event_bus.publish(
            DeviceActivated(
                license_id=license.id,
                machine_id=machine.id,
                fingerprint=command.fingerprint,
                over_limit=over_limit,
                user_id=command.user_id,
            )
        )

        device_count = len(active) + 1
        return ActivationResultDTO(
            already_activated=False,
            activation_id=machine.id,
            user_id=command.user_id,
            user_email=command.user_email,
            device_count=device_count,
            max_devices=license.max_machines,
            over_limit=over_limit,
            message=(
                f"You're using {device_count} of {license.max_machines} allowed devices. "
                "Consider upgrading for more concurrent devices."
                if over_limit
                else None
            ),
            machine={
                "id": machine.id,
                "name": machine.name,
                "fingerprint": machine.fingerprint,
            },
            license=license_summary(license),
        )
