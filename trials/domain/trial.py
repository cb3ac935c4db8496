"""
Trial domain entity.

A trial is a 14-day usage grant for one device fingerprint. All
timestamps are epoch milliseconds, matching what the extension sends
and what the signed trial token carries.
"""

import math
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

TRIAL_DURATION_DAYS = 14
DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def ms_to_iso(value: int) -> str:
    """Render epoch milliseconds as an ISO 8601 UTC string with milliseconds."""
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def remaining_days(expires_at: int, at: Optional[int] = None) -> int:
    """Whole days left before ``expires_at``, rounded up; 0 once expired."""
    remaining = expires_at - (at if at is not None else now_ms())
    if remaining <= 0:
        return 0
    return math.ceil(remaining / DAY_MS)


@dataclass(frozen=True)
class Trial:
    """
    Trial domain entity.

    One per fingerprint; the repository refuses a second create.
    """

    fingerprint: str
    trial_token: str
    issued_at: int
    expires_at: int
    created_at: int
    last_heartbeat_at: Optional[int] = None
    machine_id: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        """Validate trial entity."""
        if not self.fingerprint:
            raise ValueError("Fingerprint is required")
        if self.expires_at <= self.issued_at:
            raise ValueError("Trial must expire after it is issued")

    @classmethod
    def create(cls, fingerprint: str, trial_token: str, issued_at: int, expires_at: int) -> "Trial":
        """
        Create a new Trial entity.

        Args:
            fingerprint: Device fingerprint
            trial_token: Token handed to the device
            issued_at: Issue time (epoch ms)
            expires_at: Expiry time (epoch ms)

        Returns:
            Trial entity instance
        """
        return cls(
            fingerprint=fingerprint,
            trial_token=trial_token,
            issued_at=issued_at,
            expires_at=expires_at,
            created_at=issued_at,
        )

    @classmethod
    def start(cls, fingerprint: str, trial_token: str, at: Optional[int] = None) -> "Trial":
        """Create a trial running for the standard duration from ``at``."""
        issued_at = at if at is not None else now_ms()
        return cls.create(
            fingerprint=fingerprint,
            trial_token=trial_token,
            issued_at=issued_at,
            expires_at=issued_at + TRIAL_DURATION_DAYS * DAY_MS,
        )

    def is_expired(self, at: Optional[int] = None) -> bool:
        return (at if at is not None else now_ms()) >= self.expires_at

    def remaining_days(self, at: Optional[int] = None) -> int:
        return remaining_days(self.expires_at, at)

    def record_heartbeat(
        self, at: int, machine_id: Optional[str] = None, session_id: Optional[str] = None
    ) -> "Trial":
        """Return a copy carrying the latest heartbeat."""
        return replace(
            self,
            last_heartbeat_at=at,
            machine_id=machine_id or self.machine_id,
            session_id=session_id or self.session_id,
        )
