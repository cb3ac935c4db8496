"""
InitTrialHandler.

Handles the init trial command: one signed 14-day trial per fingerprint.
"""

import logging

from core.domain.exceptions import TrialExistsError, TrialExpiredError
from core.domain.value_objects import Fingerprint
from core.infrastructure.events import event_bus
from trials.application.commands.init_trial import InitTrialCommand
from trials.application.dto.trial_dto import TrialIssuedDTO
from trials.domain.events import TrialStarted
from trials.domain.services import TrialTokenService
from trials.domain.trial import TRIAL_DURATION_DAYS, Trial, ms_to_iso
from trials.ports.trial_repository import DuplicateTrialError, TrialRepository

logger = logging.getLogger(__name__)


class InitTrialHandler:
    """Handler for InitTrialCommand."""

    def __init__(self, trial_repository: TrialRepository, token_service: TrialTokenService):
        """Initialize handler with repository and token service."""
        self.trial_repository = trial_repository
        self.token_service = token_service

    def _reject_existing(self, trial: Trial) -> None:
        if trial.remaining_days() <= 0:
            raise TrialExpiredError(ms_to_iso(trial.expires_at))
        raise TrialExistsError(ms_to_iso(trial.expires_at), trial.remaining_days())

    async def handle(self, command: InitTrialCommand) -> TrialIssuedDTO:
        """
        Handle init trial command.

        Args:
            command: InitTrialCommand

        Returns:
            TrialIssuedDTO with the signed token

        Raises:
            InvalidFingerprintError: If the fingerprint is malformed
            TrialExpiredError: If the device's trial has ended
            TrialExistsError: If the device already has a running trial
        """
        fingerprint = Fingerprint(command.fingerprint)

        existing = await self.trial_repository.find_by_fingerprint(fingerprint.value)
        if existing:
            self._reject_existing(existing)

        issued = self.token_service.issue(fingerprint.value)
        trial = Trial.create(
            fingerprint=fingerprint.value,
            trial_token=issued.token,
            issued_at=issued.issued_at,
            expires_at=issued.expires_at,
        )

        try:
            await self.trial_repository.create(trial)
        except DuplicateTrialError:
            # Lost a race with a concurrent init for the same device
            winner = await self.trial_repository.find_by_fingerprint(fingerprint.value)
            if winner is None:
                raise
            self._reject_existing(winner)

        await event_bus.publish(
            TrialStarted(
                fingerprint=fingerprint.value,
                expires_at=trial.expires_at,
                source="trial_init",
            )
        )
        logger.info("Trial issued", extra={"fingerprint_prefix": fingerprint.short})

        return TrialIssuedDTO(
            trial_token=issued.token,
            expires_at=ms_to_iso(issued.expires_at),
            remaining_days=TRIAL_DURATION_DAYS,
            issued_at=ms_to_iso(issued.issued_at),
        )
