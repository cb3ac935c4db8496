"""
License DTOs for API responses.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class TrialValidationDTO:
    """DTO for the fingerprint-only (trial) validation result."""

    valid: bool
    code: str
    detail: str
    is_active: bool
    trial_start_date: str
    trial_end_date: str
    days_remaining: int
    features: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "valid": self.valid,
            "status": "trial" if self.is_active else "expired",
            "code": self.code,
            "detail": self.detail,
            "trial": {
                "isActive": self.is_active,
                "trialStartDate": self.trial_start_date,
                "trialEndDate": self.trial_end_date,
                "daysRemaining": self.days_remaining,
            },
            "features": self.features,
        }


@dataclass
class LicenseValidationDTO:
    """DTO for a license key validation result."""

    valid: bool
    code: Optional[str]
    detail: Optional[str]
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    machine_id: Optional[str] = None
    license_status: Optional[str] = None
    license_expires_at: Optional[str] = None
    has_license: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "code": self.code,
            "detail": self.detail,
            "userId": self.user_id,
            "userEmail": self.user_email,
            "machineId": self.machine_id,
            "license": (
                {"status": self.license_status, "expiresAt": self.license_expires_at}
                if self.has_license
                else None
            ),
        }


@dataclass
class LicenseCheckDTO:
    """DTO for the license held by an email address."""

    status: str
    email: str
    license_key: Optional[str] = None
    license_id: Optional[str] = None
    plan: Optional[str] = None
    expires_at: Optional[str] = None
    include_expiry: bool = False

    def to_dict(self) -> Dict[str, Any]:
        if self.status == "none":
            return {"status": "none", "licenseKey": None, "email": self.email}
        data = {
            "status": self.status,
            "licenseKey": self.license_key,
            "licenseId": self.license_id,
            "plan": self.plan,
            "email": self.email,
        }
        if self.include_expiry:
            data["expiresAt"] = self.expires_at
        return data


@dataclass
class WebhookReceiptDTO:
    """DTO acknowledging a webhook delivery."""

    duplicate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"received": True}
        if self.duplicate:
            body["duplicate"] = True
        return body
