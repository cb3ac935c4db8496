"""
RecordHeartbeatCommand.

Command sent by a running extension every heartbeat interval.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RecordHeartbeatCommand:
    """Command to record a device heartbeat."""

    fingerprint: str
    license_key: Optional[str] = None
    machine_id: Optional[str] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None
