"""
Identity admin port (interface).
"""
from abc import ABC, abstractmethod


class IdentityAdmin(ABC):
    """
    Manages the identity-provider groups that mirror organization roles.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def assign_role(self, username: str, role: str) -> bool:
        """
        Put a user in the group for a role.

        Returns:
            True on success; failures are logged, never raised
        """
        pass

    @abstractmethod
    async def remove_role(self, username: str, role: str) -> bool:
        pass
