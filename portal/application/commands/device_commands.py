"""
RemoveDeviceCommand.
"""

from dataclasses import dataclass
from typing import Optional

from core.domain.identity import CognitoUser


@dataclass
class RemoveDeviceCommand:
    """Command to deactivate one of the caller's devices from the portal."""

    user: CognitoUser
    machine_id: Optional[str]
    license_id: Optional[str]
