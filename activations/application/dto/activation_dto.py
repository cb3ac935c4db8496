"""
Activation DTOs for API responses.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ActivationResultDTO:
    """DTO for the activate response."""

    already_activated: bool
    message: Optional[str]
    license: Dict[str, Any]
    activation_id: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    device_count: int = 0
    max_devices: Optional[int] = None
    over_limit: bool = False
    machine: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        if self.already_activated:
            return {
                "success": True,
                "alreadyActivated": True,
                "license": self.license,
                "message": self.message,
            }
        return {
            "success": True,
            "activated": True,
            "activationId": self.activation_id,
            "userId": self.user_id,
            "userEmail": self.user_email,
            "deviceCount": self.device_count,
            "maxDevices": self.max_devices,
            "overLimit": self.over_limit,
            "message": self.message,
            "machine": self.machine,
            "license": self.license,
        }


@dataclass
class DeactivationResultDTO:
    """DTO for the deactivate response."""

    message: str
    machine_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": True, "message": self.message}


@dataclass
class HeartbeatResultDTO:
    """
    DTO for the heartbeat response.

    The body differs by outcome, so the handler assembles it; the view
    adds rate-limit headers only when ``with_rate_limit_headers`` is set.
    """

    status: str
    body: Dict[str, Any]
    with_rate_limit_headers: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.body)
