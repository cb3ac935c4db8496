"""
DeactivateDeviceCommand.

Command to release a device's slot on a license.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class DeactivateDeviceCommand:
    """Command to deactivate a device by machine id or fingerprint."""

    license_id: str
    machine_id: Optional[str] = None
    fingerprint: Optional[str] = None
    user_id: Optional[str] = None
    source: str = "api"
