"""
Activation domain events.
"""

from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent


class DeviceActivated(DomainEvent):
    """Event raised when a device is bound to a license."""

    payload_fields = ("license_id", "machine_id", "over_limit", "user_id")

    def __init__(
        self,
        license_id: str,
        machine_id: str,
        fingerprint: str,
        over_limit: bool = False,
        user_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize DeviceActivated event.

        Args:
            license_id: Keygen license id
            machine_id: Keygen machine id
            fingerprint: Device fingerprint (kept out of the payload)
            over_limit: The activation exceeded the concurrent-device count
            user_id: Authenticated activating user, if any
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=license_id, occurred_at=occurred_at)
        self.license_id = license_id
        self.machine_id = machine_id
        self.fingerprint = fingerprint
        self.over_limit = over_limit
        self.user_id = user_id


class DeviceDeactivated(DomainEvent):
    """Event raised when a device's slot is freed."""

    payload_fields = ("license_id", "machine_id", "source")

    def __init__(
        self,
        license_id: str,
        machine_id: str,
        source: str,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=license_id, occurred_at=occurred_at)
        self.license_id = license_id
        self.machine_id = machine_id
        self.source = source
