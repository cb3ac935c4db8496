"""
Version config repository port (interface).
"""
from abc import ABC, abstractmethod

from activations.domain.version import VersionInfo


class VersionRepository(ABC):
    """Read access to the published extension version."""

    @abstractmethod
    async def get_current(self) -> VersionInfo:
        """
        Current version advertisement.

        Returns:
            VersionInfo; all fields None when nothing is published or the
            lookup fails
        """
        pass
