"""
ValidateLicenseQuery.

Query used by the extension on startup: validate a license key for this
device, or, with no key, report (and start) the device's trial.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ValidateLicenseQuery:
    """Query to validate a license or trial for a device."""

    fingerprint: str
    license_key: Optional[str] = None
    machine_id: Optional[str] = None
