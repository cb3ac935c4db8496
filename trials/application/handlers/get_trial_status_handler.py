"""
GetTrialStatusHandler.
"""

from core.domain.value_objects import Fingerprint
from trials.application.dto.trial_dto import TrialStatusDTO
from trials.application.queries.get_trial_status import GetTrialStatusQuery
from trials.domain.trial import ms_to_iso
from trials.ports.trial_repository import TrialRepository


class GetTrialStatusHandler:
    """Handler for GetTrialStatusQuery."""

    def __init__(self, trial_repository: TrialRepository):
        self.trial_repository = trial_repository

    async def handle(self, query: GetTrialStatusQuery) -> TrialStatusDTO:
        fingerprint = Fingerprint(query.fingerprint)
        trial = await self.trial_repository.find_by_fingerprint(fingerprint.value)
        if not trial:
            return TrialStatusDTO(has_trial_history=False, can_start_trial=True)

        remaining = trial.remaining_days()
        return TrialStatusDTO(
            has_trial_history=True,
            can_start_trial=False,
            is_expired=remaining <= 0,
            remaining_days=remaining,
            expires_at=ms_to_iso(trial.expires_at),
        )
