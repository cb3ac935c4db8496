"""
RecordHeartbeatHandler.

Handler for device heartbeats. Trial devices only leave a trace on their
trial record. Licensed devices ping their Keygen machine, refresh their
local record and get the concurrent-device count back.
"""

import logging
from typing import Any, Dict, Optional

from activations.application.commands.record_heartbeat import RecordHeartbeatCommand
from activations.application.dto.activation_dto import HeartbeatResultDTO
from activations.domain.services import (
    DEFAULT_CONCURRENT_DEVICE_WINDOW_HOURS,
    HEARTBEAT_INTERVAL_SECONDS,
    DeviceWindow,
)
from activations.ports.device_repository import DeviceRepository
from activations.ports.version_repository import VersionRepository
from core.domain.exceptions import AuthenticationRequiredError, InvalidRequestError
from core.domain.value_objects import LicenseKeyFormat
from core.metrics import heartbeats_total
from core.ports.keygen_gateway import KeygenGateway
from licenses.domain.license_record import LicenseRecord
from licenses.ports.license_repository import LicenseRepository
from trials.domain.trial import now_ms
from trials.ports.trial_repository import TrialRepository

logger = logging.getLogger(__name__)


class RecordHeartbeatHandler:
    """Handler for RecordHeartbeatCommand."""

    def __init__(
        self,
        keygen: KeygenGateway,
        license_repository: LicenseRepository,
        device_repository: DeviceRepository,
        trial_repository: TrialRepository,
        version_repository: VersionRepository,
        window_hours: int = DEFAULT_CONCURRENT_DEVICE_WINDOW_HOURS,
    ):
        """Initialize handler with the Keygen gateway and repositories."""
        self.keygen = keygen
        self.license_repository = license_repository
        self.device_repository = device_repository
        self.trial_repository = trial_repository
        self.version_repository = version_repository
        self.window_hours = window_hours

    async def handle(self, command: RecordHeartbeatCommand) -> HeartbeatResultDTO:
        """
        Handle record heartbeat command.

        Args:
            command: RecordHeartbeatCommand

        Returns:
            HeartbeatResultDTO

        Raises:
            AuthenticationRequiredError: Licensed heartbeat without a verified identity
            InvalidRequestError: Licensed heartbeat without a session id
            InvalidLicenseKeyFormatError: Malformed license key
        """
        if not command.license_key:
            result = await self._trial_heartbeat(command)
        else:
            result = await self._licensed_heartbeat(command)
        heartbeats_total.labels(status=result.status).inc()
        return result

    async def _version_fields(self) -> Dict[str, Any]:
        version = await self.version_repository.get_current()
        return version.to_fields()

    async def _trial_heartbeat(self, command: RecordHeartbeatCommand) -> HeartbeatResultDTO:
        try:
            await self.trial_repository.record_heartbeat(
                command.fingerprint,
                now_ms(),
                machine_id=command.machine_id,
                session_id=command.session_id,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Trial heartbeat recording failed", extra={"error": str(e)})

        return HeartbeatResultDTO(
            status="trial",
            body={
                "valid": True,
                "status": "trial",
                "reason": "Trial heartbeat recorded",
                "concurrentMachines": 1,
                "maxMachines": 1,
                "nextHeartbeat": HEARTBEAT_INTERVAL_SECONDS,
                **await self._version_fields(),
            },
        )

    async def _licensed_heartbeat(self, command: RecordHeartbeatCommand) -> HeartbeatResultDTO:
        if not command.user_id:
            raise AuthenticationRequiredError(
                "Authentication is required for licensed heartbeats"
            )
        if not command.session_id:
            raise InvalidRequestError("Session ID is required")
        LicenseKeyFormat(command.license_key)

        ping = await self.keygen.machine_heartbeat(command.fingerprint)
        if not ping.success:
            return HeartbeatResultDTO(
                status="machine_not_found",
                body={
                    "valid": False,
                    "status": "machine_not_found",
                    "reason": ping.error or "Machine not found or deactivated",
                    "concurrentMachines": 0,
                    "maxMachines": 0,
                },
            )

        license = await self.license_repository.find_by_key(command.license_key)
        if license is None:
            return HeartbeatResultDTO(
                status="active",
                body={
                    "valid": True,
                    "status": "active",
                    "reason": "Heartbeat successful",
                    "concurrentMachines": 1,
                    "maxMachines": None,
                    "nextHeartbeat": HEARTBEAT_INTERVAL_SECONDS,
                    **await self._version_fields(),
                },
            )

        concurrent = await self._touch_and_count(license, command.fingerprint, command.user_id)
        max_machines = license.max_devices or None

        if DeviceWindow.heartbeat_over_limit(concurrent, max_machines):
            return HeartbeatResultDTO(
                status="over_limit",
                body={
                    "valid": True,
                    "status": "over_limit",
                    "reason": f"You're using {concurrent} of {max_machines} allowed devices",
                    "concurrentMachines": concurrent,
                    "maxMachines": max_machines,
                    "message": "Consider upgrading your plan for more concurrent devices.",
                },
            )

        return HeartbeatResultDTO(
            status="active",
            with_rate_limit_headers=True,
            body={
                "valid": True,
                "status": "active",
                "reason": "Heartbeat successful",
                "concurrentMachines": concurrent,
                "maxMachines": max_machines,
                "overLimit": False,
                "message": None,
                "nextHeartbeat": HEARTBEAT_INTERVAL_SECONDS,
                **await self._version_fields(),
            },
        )

    async def _touch_and_count(
        self, license: LicenseRecord, fingerprint: str, user_id: str
    ) -> int:
        """Refresh this device's last-seen time and user, then count devices in the window."""
        license_id = license.keygen_license_id
        try:
            device = await self.device_repository.find_by_fingerprint(license_id, fingerprint)
            if device:
                await self.device_repository.update_last_seen(
                    license_id, device.keygen_machine_id, user_id=user_id
                )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Device last-seen update failed", extra={"error": str(e)})

        concurrent: Optional[int] = None
        try:
            devices = await self.device_repository.list_for_license(license_id)
            concurrent = len(DeviceWindow.active_devices(devices, self.window_hours))
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Active device count failed", extra={"error": str(e)})
        return concurrent if concurrent is not None else 1
