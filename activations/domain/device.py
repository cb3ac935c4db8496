"""
Device domain entity.

A device is a Keygen machine bound to a license, mirrored locally so the
portal and the concurrent-device window can be answered without Keygen.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` or offset), or None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Device:
    """
    Device domain entity.

    Immutable; ``touch`` returns a copy with a new ``last_seen_at``.
    """

    license_id: str
    keygen_machine_id: str
    fingerprint: str
    name: Optional[str] = None
    platform: Optional[str] = None
    last_seen_at: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        """Validate device entity."""
        if not self.license_id:
            raise ValueError("License ID is required")
        if not self.keygen_machine_id:
            raise ValueError("Machine ID is required")

    @classmethod
    def create(
        cls,
        license_id: str,
        keygen_machine_id: str,
        fingerprint: str,
        name: Optional[str] = None,
        platform: Optional[str] = None,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
    ) -> "Device":
        """
        Create a newly activated device.

        Args:
            license_id: Keygen license id
            keygen_machine_id: Keygen machine id
            fingerprint: Device fingerprint
            name: Display name
            platform: Reported platform
            user_id: Activating user, when the activation was authenticated
            user_email: Activating user's email

        Returns:
            Device seen now
        """
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            license_id=license_id,
            keygen_machine_id=keygen_machine_id,
            fingerprint=fingerprint,
            name=name,
            platform=platform,
            last_seen_at=now,
            user_id=user_id,
            user_email=user_email,
            created_at=now,
        )

    def touch(self, at: Optional[datetime] = None) -> "Device":
        moment = at or datetime.now(timezone.utc)
        return replace(self, last_seen_at=moment.isoformat())

    def seen_since(self, cutoff: datetime) -> bool:
        """True if the device was last seen (or created) at or after ``cutoff``."""
        seen = parse_timestamp(self.last_seen_at) or parse_timestamp(self.created_at)
        return seen is not None and seen >= cutoff

    def is_active_within(self, window_hours: int, at: Optional[datetime] = None) -> bool:
        now = at or datetime.now(timezone.utc)
        return self.seen_since(now - timedelta(hours=window_hours))
