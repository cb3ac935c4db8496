"""
Device repository port (interface).

This defines the contract for device persistence operations.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from activations.domain.device import Device


class DeviceRepository(ABC):
    """
    Abstract repository for Device entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def list_for_license(self, license_id: str) -> List[Device]:
        """
        Find all devices of a license.

        Args:
            license_id: Keygen license id

        Returns:
            List of Device entities
        """
        pass

    @abstractmethod
    async def find_by_fingerprint(self, license_id: str, fingerprint: str) -> Optional[Device]:
        pass

    @abstractmethod
    async def add(self, device: Device) -> Device:
        """
        Record an activated device.

        Recording a machine that is already stored refreshes its
        ``last_seen_at`` without counting it again.

        Args:
            device: Device entity to save

        Returns:
            Saved device
        """
        pass

    @abstractmethod
    async def remove(self, license_id: str, machine_id: str) -> bool:
        """
        Delete a device and free its slot on the license counter.

        Args:
            license_id: Keygen license id
            machine_id: Keygen machine id

        Returns:
            True if a device record was removed
        """
        pass

    @abstractmethod
    async def update_last_seen(
        self, license_id: str, machine_id: str, user_id: Optional[str] = None
    ) -> bool:
        """
        Mark a stored device as seen now, recording the user when given.

        Returns:
            False when no such device is stored
        """
        pass
