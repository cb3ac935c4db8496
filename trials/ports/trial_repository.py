"""
Trial repository port (interface).

This defines the contract for trial persistence operations.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from typing import Optional

from trials.domain.trial import Trial


class DuplicateTrialError(Exception):
    """Raised when a trial already exists for the fingerprint."""


class TrialRepository(ABC):
    """
    Abstract repository for Trial entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def find_by_fingerprint(self, fingerprint: str) -> Optional[Trial]:
        """
        Find the trial for a device.

        Args:
            fingerprint: Device fingerprint

        Returns:
            Trial entity or None if the device never started one
        """
        pass

    @abstractmethod
    async def create(self, trial: Trial) -> Trial:
        """
        Persist a new trial.

        Raises:
            DuplicateTrialError: If the fingerprint already has a trial
        """
        pass

    @abstractmethod
    async def record_heartbeat(
        self,
        fingerprint: str,
        at: int,
        machine_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        """
        Record a heartbeat from a trial device.

        Args:
            fingerprint: Device fingerprint
            at: Heartbeat time (epoch ms)
            machine_id: Machine id reported by the device, if any
            session_id: Editor session id, if any
        """
        pass
