"""
ValidateLicenseHandler.

Handles the validate license query. With a key, Keygen decides validity
and the local device record only enriches the answer; without one, the
device's trial is reported, or started on first contact.
"""

import logging

from activations.ports.device_repository import DeviceRepository
from core.infrastructure.events import event_bus
from core.ports.keygen_gateway import KeygenGateway
from licenses.application.dto.license_dto import LicenseValidationDTO, TrialValidationDTO
from licenses.application.queries.validate_license import ValidateLicenseQuery
from licenses.domain.services import BOUND_DEVICE_CODES, trial_features
from trials.domain.events import TrialStarted
from trials.domain.trial import TRIAL_DURATION_DAYS, Trial, ms_to_iso, now_ms
from trials.ports.trial_repository import DuplicateTrialError, TrialRepository

logger = logging.getLogger(__name__)


def _active_trial(trial: Trial, code: str, at: int) -> TrialValidationDTO:
    days = trial.remaining_days(at)
    return TrialValidationDTO(
        valid=True,
        code=code,
        detail=(
            f"Trial started with {TRIAL_DURATION_DAYS} days"
            if code == "TRIAL_STARTED"
            else f"Trial active with {days} days remaining"
        ),
        is_active=True,
        trial_start_date=ms_to_iso(trial.issued_at),
        trial_end_date=ms_to_iso(trial.expires_at),
        days_remaining=TRIAL_DURATION_DAYS if code == "TRIAL_STARTED" else days,
        features=trial_features(True),
    )


class ValidateLicenseHandler:
    """Handler for ValidateLicenseQuery."""

    def __init__(
        self,
        keygen: KeygenGateway,
        trial_repository: TrialRepository,
        device_repository: DeviceRepository,
    ):
        """Initialize handler with the Keygen gateway and repositories."""
        self.keygen = keygen
        self.trial_repository = trial_repository
        self.device_repository = device_repository

    async def handle(self, query: ValidateLicenseQuery):
        """
        Handle validate license query.

        Args:
            query: ValidateLicenseQuery

        Returns:
            TrialValidationDTO when no key was given, else LicenseValidationDTO
        """
        if not query.license_key:
            return await self._validate_trial(query.fingerprint)
        return await self._validate_license(query)

    async def _validate_trial(self, fingerprint: str) -> TrialValidationDTO:
        now = now_ms()
        existing = await self.trial_repository.find_by_fingerprint(fingerprint)
        if existing:
            if now > existing.expires_at:
                return TrialValidationDTO(
                    valid=False,
                    code="TRIAL_EXPIRED",
                    detail="Trial period has ended. Please purchase a license.",
                    is_active=False,
                    trial_start_date=ms_to_iso(existing.issued_at),
                    trial_end_date=ms_to_iso(existing.expires_at),
                    days_remaining=0,
                    features=trial_features(False),
                )
            return _active_trial(existing, "TRIAL_ACTIVE", now)

        trial = Trial.start(fingerprint, f"trial_{fingerprint}_{now}", at=now)
        try:
            await self.trial_repository.create(trial)
        except DuplicateTrialError:
            winner = await self.trial_repository.find_by_fingerprint(fingerprint)
            if winner is None:
                raise
            return _active_trial(winner, "TRIAL_ACTIVE", now)

        await event_bus.publish(
            TrialStarted(fingerprint=fingerprint, expires_at=trial.expires_at, source="validate")
        )
        return _active_trial(trial, "TRIAL_STARTED", now)

    async def _validate_license(self, query: ValidateLicenseQuery) -> LicenseValidationDTO:
        result = await self.keygen.validate_license(query.license_key, query.fingerprint)
        license_id = result.license.id if result.license else None

        if result.valid and license_id and query.machine_id:
            await self._touch_machine(license_id, query.machine_id)

        dto = LicenseValidationDTO(
            valid=result.valid,
            code=result.code,
            detail=result.detail,
            has_license=result.license is not None,
            license_status=result.license.status if result.license else None,
            license_expires_at=result.license.expires_at if result.license else None,
        )

        if license_id and (result.valid or result.code == "HEARTBEAT_NOT_STARTED"):
            try:
                device = await self.device_repository.find_by_fingerprint(
                    license_id, query.fingerprint
                )
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Device lookup failed", extra={"error": str(e)})
                device = None
            if device:
                dto.user_id = device.user_id
                dto.user_email = device.user_email
                dto.machine_id = device.keygen_machine_id

            if result.code == "HEARTBEAT_NOT_STARTED" and dto.machine_id:
                # Bound machine that never pinged: start its heartbeat now
                ping = await self.keygen.machine_heartbeat(dto.machine_id)
                if ping.success:
                    dto.valid = True
                else:
                    logger.warning("Self-healing heartbeat failed", extra={"error": ping.error})

        if result.code not in BOUND_DEVICE_CODES:
            logger.info("License validation rejected", extra={"code": result.code})
        return dto

    async def _touch_machine(self, license_id: str, machine_id: str) -> None:
        try:
            await self.device_repository.update_last_seen(license_id, machine_id)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Device last-seen update failed", extra={"error": str(e)})
        ping = await self.keygen.machine_heartbeat(machine_id)
        if not ping.success:
            logger.warning("Machine heartbeat failed", extra={"error": ping.error})
