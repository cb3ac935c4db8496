"""
License repository port (interface).

This defines the contract for license record persistence operations.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from licenses.domain.license_record import LicenseRecord


class LicenseRepository(ABC):
    """
    Abstract repository for LicenseRecord entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def get(self, license_id: str) -> Optional[LicenseRecord]:
        """
        Find a license by its Keygen id.

        Args:
            license_id: Keygen license id

        Returns:
            LicenseRecord or None if not found
        """
        pass

    @abstractmethod
    async def find_by_key(self, license_key: str) -> Optional[LicenseRecord]:
        """
        Find a license by its key.

        Args:
            license_key: License key

        Returns:
            LicenseRecord or None if not found
        """
        pass

    @abstractmethod
    async def create(self, record: LicenseRecord) -> LicenseRecord:
        """
        Save a new license and link it to its owner.

        Args:
            record: LicenseRecord to save

        Returns:
            Saved record with timestamps set
        """
        pass

    @abstractmethod
    async def update_status(
        self, license_id: str, status: str, extra: Optional[Dict[str, Any]] = None
    ) -> Optional[LicenseRecord]:
        """
        Set the mirrored status of an existing license.

        Args:
            license_id: Keygen license id
            status: New local status
            extra: Additional table attributes to set (e.g. ``suspendedAt``)

        Returns:
            Updated record, or None if no such license is stored
        """
        pass

    @abstractmethod
    async def update(self, license_id: str, updates: Dict[str, Any]) -> Optional[LicenseRecord]:
        pass

    @abstractmethod
    async def find_by_user(self, user_id: str) -> List[LicenseRecord]:
        pass

    @abstractmethod
    async def user_owns_license(self, user_id: str, license_id: str) -> bool:
        """
        Check the user-to-license link.

        Args:
            user_id: Customer user id
            license_id: Keygen license id

        Returns:
            True if the user is linked to the license
        """
        pass
