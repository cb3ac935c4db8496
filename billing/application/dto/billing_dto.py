"""
Billing DTOs for API responses.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CheckoutSessionDTO:
    """DTO for a created checkout session."""

    session_id: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"sessionId": self.session_id, "url": self.url}


@dataclass
class CheckoutVerificationDTO:
    """DTO for a verified, paid checkout session."""

    email: Optional[str]
    plan_type: str
    plan_name: str
    subscription_id: Optional[str]
    customer_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": True,
            "email": self.email,
            "planType": self.plan_type,
            "planName": self.plan_name,
            "subscriptionId": self.subscription_id,
            "customerId": self.customer_id,
        }


@dataclass
class EmailJobResultDTO:
    """DTO for a scheduled email job run."""

    task: str
    sent: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task": self.task,
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
        }
