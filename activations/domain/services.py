"""
Activation domain services.

Domain services contain business logic that doesn't naturally
fit within a single entity. Keygen enforces the hard machine limit; the
rules here only report concurrent use against the plan's device count.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from activations.domain.device import Device

HEARTBEAT_INTERVAL_SECONDS = 900
DEFAULT_CONCURRENT_DEVICE_WINDOW_HOURS = 2

# Validation codes after which activation creates a new machine
ACTIVATABLE_CODES = ("FINGERPRINT_SCOPE_MISMATCH", "NO_MACHINES")


class DeviceWindow:
    """Domain service for counting devices in the concurrent-use window."""

    @staticmethod
    def active_devices(
        devices: Iterable[Device], window_hours: int, at: Optional[datetime] = None
    ) -> List[Device]:
        """
        Devices seen within the window.

        Args:
            devices: Devices of one license
            window_hours: Window length in hours
            at: Reference time, defaults to now

        Returns:
            The devices active in the window
        """
        return [device for device in devices if device.is_active_within(window_hours, at)]

    @staticmethod
    def activation_over_limit(active_count: int, max_devices: Optional[int]) -> bool:
        """A new activation is over the limit once the window is already full."""
        return bool(max_devices) and active_count >= max_devices

    @staticmethod
    def heartbeat_over_limit(concurrent: int, max_devices: Optional[int]) -> bool:
        """A heartbeat counts itself, so it is over the limit only past the maximum."""
        return bool(max_devices) and concurrent > max_devices


def default_device_name(fingerprint: str) -> str:
    return f"Device {fingerprint[:8]}"
