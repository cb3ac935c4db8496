"""
InitTrialCommand.

Command to issue a trial token for a device.
"""

from dataclasses import dataclass


@dataclass
class InitTrialCommand:
    """Command to start a device trial."""

    fingerprint: str
