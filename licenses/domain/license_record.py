"""
License record domain entity.

The local mirror of a Keygen license. Keygen stays the system of record
for validity and seat enforcement; this record carries what the portal
and heartbeat need without a Keygen round trip.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LicenseRecord:
    """License record domain entity."""

    keygen_license_id: str
    user_id: str
    license_key: str
    policy_id: Optional[str] = None
    status: str = "active"
    expires_at: Optional[str] = None
    max_devices: Optional[int] = None
    activated_devices: int = 0
    email: Optional[str] = None
    plan_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Validate license record."""
        if not self.keygen_license_id:
            raise ValueError("Keygen license ID is required")
        if not self.license_key:
            raise ValueError("License key is required")

    @classmethod
    def create(
        cls,
        keygen_license_id: str,
        user_id: str,
        license_key: str,
        policy_id: Optional[str],
        max_devices: int,
        email: Optional[str] = None,
        plan_name: Optional[str] = None,
        expires_at: Optional[str] = None,
        status: str = "active",
    ) -> "LicenseRecord":
        """
        Create a new license record.

        Args:
            keygen_license_id: Keygen license id
            user_id: Owning customer's user id
            license_key: The license key
            policy_id: Keygen policy id
            max_devices: Device limit for the plan
            email: Owner email
            plan_name: Display plan name
            expires_at: Expiry, if any
            status: Initial status

        Returns:
            LicenseRecord with no activated devices
        """
        return cls(
            keygen_license_id=keygen_license_id,
            user_id=user_id,
            license_key=license_key,
            policy_id=policy_id,
            status=status,
            expires_at=expires_at,
            max_devices=max_devices,
            activated_devices=0,
            email=email.lower() if email else None,
            plan_name=plan_name,
        )

    @property
    def masked_key(self) -> str:
        return f"{self.license_key[:8]}...{self.license_key[-4:]}"
