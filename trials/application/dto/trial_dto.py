"""
Trial DTOs for API responses.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class TrialIssuedDTO:
    """DTO for a newly issued trial token."""

    trial_token: str
    expires_at: str
    remaining_days: int
    issued_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trialToken": self.trial_token,
            "expiresAt": self.expires_at,
            "remainingDays": self.remaining_days,
            "issuedAt": self.issued_at,
        }


@dataclass
class TrialStatusDTO:
    """DTO for a device's trial status."""

    has_trial_history: bool
    can_start_trial: bool
    is_expired: Optional[bool] = None
    remaining_days: Optional[int] = None
    expires_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "hasTrialHistory": self.has_trial_history,
            "canStartTrial": self.can_start_trial,
        }
        if self.has_trial_history:
            data.update(
                {
                    "isExpired": self.is_expired,
                    "remainingDays": self.remaining_days,
                    "expiresAt": self.expires_at,
                }
            )
        return data
