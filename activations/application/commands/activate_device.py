"""
ActivateDeviceCommand.

Command to bind a license key to a device.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ActivateDeviceCommand:
    """Command to activate a license on a device."""

    license_key: str
    fingerprint: str
    device_name: Optional[str] = None
    platform: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
