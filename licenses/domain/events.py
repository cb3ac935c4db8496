"""
License domain events.

Domain events represent something that happened in the license domain.
"""
from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent


class LicenseProvisioned(DomainEvent):
    """Event raised when a purchase produces a new Keygen license."""

    payload_fields = ("license_id", "email", "plan_name")

    def __init__(
        self,
        license_id: str,
        email: str,
        license_key: str,
        plan_name: str,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize LicenseProvisioned event.

        Args:
            license_id: Keygen license id
            email: Buyer email
            license_key: The new license key (not part of the payload)
            plan_name: Display plan name
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=license_id, occurred_at=occurred_at)
        self.license_id = license_id
        self.email = email
        self.license_key = license_key
        self.plan_name = plan_name


class LicenseStatusChanged(DomainEvent):
    """Event raised when the mirrored license status changes."""

    payload_fields = ("license_id", "status", "source")

    def __init__(
        self,
        license_id: str,
        status: str,
        source: str,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=license_id, occurred_at=occurred_at)
        self.license_id = license_id
        self.status = status
        self.source = source
