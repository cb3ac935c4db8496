"""
Keygen gateway port (interface).

Keygen is the system of record for license keys, machine activation and
seat enforcement. This port describes the calls the application makes;
the HTTP adapter lives in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class KeygenError(Exception):
    """Raised when the Keygen API answers with a non-2xx status."""

    def __init__(self, status: int, detail: str = "Keygen API error", errors: Optional[list] = None):
        super().__init__(detail)
        self.status = status
        self.detail = detail
        self.errors = errors or []

    @property
    def code(self) -> Optional[str]:
        if self.errors:
            return self.errors[0].get("code")
        return None


@dataclass
class KeygenLicense:
    """License as reported by Keygen."""

    id: str
    key: Optional[str] = None
    status: Optional[str] = None
    expires_at: Optional[str] = None
    max_machines: Optional[int] = None
    policy_id: Optional[str] = None
    uses: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class KeygenValidation:
    """Result of a validate-key action."""

    valid: bool
    code: Optional[str]
    detail: Optional[str]
    license: Optional[KeygenLicense] = None


@dataclass
class KeygenMachine:
    """Machine (activated device) as reported by Keygen."""

    id: str
    fingerprint: Optional[str] = None
    name: Optional[str] = None
    platform: Optional[str] = None
    created_at: Optional[str] = None
    last_heartbeat: Optional[str] = None


@dataclass
class HeartbeatResult:
    """Outcome of a machine ping. Never raised as an error."""

    success: bool
    error: Optional[str] = None


class KeygenGateway(ABC):
    """
    Abstract gateway to the Keygen licensing API.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def create_license(
        self, policy_id: str, name: str, metadata: Dict[str, Any]
    ) -> KeygenLicense:
        """
        Create a license under a policy.

        Args:
            policy_id: Keygen policy id for the plan
            name: Display name for the license
            metadata: Metadata stored on the license (email, stripe ids, plan)

        Returns:
            The created license, including its key
        """
        pass

    @abstractmethod
    async def get_license(self, license_id: str) -> KeygenLicense:
        """
        Fetch a license by id.

        Raises:
            KeygenError: If Keygen returns an error
        """
        pass

    @abstractmethod
    async def get_licenses_by_email(self, email: str) -> List[KeygenLicense]:
        """
        Find licenses whose metadata email matches.

        Returns:
            Matching licenses; an empty list when Keygen fails
        """
        pass

    @abstractmethod
    async def validate_license(
        self, key: str, fingerprint: Optional[str] = None
    ) -> KeygenValidation:
        """
        Validate a license key, optionally scoped to a device fingerprint.

        Errors are folded into an invalid result, never raised.
        """
        pass

    @abstractmethod
    async def suspend_license(self, license_id: str) -> None:
        pass

    @abstractmethod
    async def reinstate_license(self, license_id: str) -> None:
        pass

    @abstractmethod
    async def revoke_license(self, license_id: str) -> None:
        pass

    @abstractmethod
    async def update_license_metadata(
        self, license_id: str, metadata: Dict[str, Any]
    ) -> KeygenLicense:
        pass

    @abstractmethod
    async def activate_device(
        self,
        license_id: str,
        fingerprint: str,
        name: str,
        platform: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> KeygenMachine:
        """
        Create a machine for a license.

        Raises:
            KeygenError: 422 when Keygen refuses the activation
        """
        pass

    @abstractmethod
    async def deactivate_device(self, machine_id: str) -> None:
        """
        Delete a machine, freeing its slot.

        Raises:
            KeygenError: 404 when the machine is already gone
        """
        pass

    @abstractmethod
    async def get_license_machines(self, license_id: str) -> List[KeygenMachine]:
        pass

    @abstractmethod
    async def machine_heartbeat(self, machine_id: str) -> HeartbeatResult:
        """
        Ping a machine's heartbeat.

        Args:
            machine_id: Machine id or fingerprint

        Returns:
            HeartbeatResult, with the failure reason when the ping failed
        """
        pass

    @abstractmethod
    async def checkout_license(self, license_id: str, ttl: int = 86400) -> Dict[str, Any]:
        """Check out a signed offline license file."""
        pass

    @abstractmethod
    def get_policy_id(self, plan_type: str) -> str:
        """
        Map a plan to its Keygen policy.

        Raises:
            ValueError: For an unknown plan
        """
        pass
