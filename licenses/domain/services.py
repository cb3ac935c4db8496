"""
License domain services.

Domain services contain business logic that doesn't naturally
fit within a single entity.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

TRIAL_FEATURES = (
    "basic_editing",
    "file_operations",
    "batch_edit",
    "find_in_file",
    "datetime_tools",
    "calculator_tools",
    "notepad",
)

# Keygen validation codes that still mean the device is bound to the license
BOUND_DEVICE_CODES = ("VALID", "HEARTBEAT_NOT_STARTED")

# Keygen event -> (local status, timestamp attribute)
KEYGEN_LICENSE_EVENTS: Dict[str, Tuple[str, str]] = {
    "license.expired": ("expired", "expiredAt"),
    "license.suspended": ("suspended", "suspendedAt"),
    "license.reinstated": ("active", "reinstatedAt"),
    "license.renewed": ("active", "renewedAt"),
    "license.revoked": ("revoked", "revokedAt"),
}


def plan_from_policy(policy_id: Optional[str]) -> str:
    """Plan type for a Keygen policy id."""
    if policy_id and "business" in policy_id.lower():
        return "business"
    return "individual"


@dataclass(frozen=True)
class KeygenStatusChange:
    status: str
    updates: Dict[str, str]


def status_change_for_event(
    event: str, expiry: Optional[str] = None, at: Optional[datetime] = None
) -> Optional[KeygenStatusChange]:
    """
    Local license update for a Keygen lifecycle event.

    Args:
        event: Keygen event name, e.g. ``license.suspended``
        expiry: New expiry carried by ``license.renewed``
        at: Event time, defaults to now

    Returns:
        KeygenStatusChange, or None for events that do not change status
    """
    if event not in KEYGEN_LICENSE_EVENTS:
        return None
    status, timestamp_field = KEYGEN_LICENSE_EVENTS[event]
    moment = (at or datetime.now(timezone.utc)).isoformat()
    updates = {timestamp_field: moment}
    if event == "license.renewed" and expiry:
        updates["expiresAt"] = expiry
    return KeygenStatusChange(status=status, updates=updates)


def trial_features(is_active: bool) -> List[str]:
    return list(TRIAL_FEATURES) if is_active else []
