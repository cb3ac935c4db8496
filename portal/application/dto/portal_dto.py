"""
Portal DTOs for API responses.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.domain.identity import CognitoUser
from licenses.domain.customer import Customer

DEFAULT_NOTIFICATIONS = {
    "productUpdates": True,
    "usageAlerts": True,
    "billingReminders": True,
    "marketingEmails": False,
}


def _user_summary(user: CognitoUser) -> Dict[str, Any]:
    return {"email": user.email, "userId": user.user_id}


@dataclass
class PortalStatusDTO:
    """DTO for the dashboard subscription summary."""

    user: CognitoUser
    customer: Optional[Customer] = None
    activated_devices: int = 0
    max_devices: int = 0

    def to_dict(self) -> Dict[str, Any]:
        if self.customer is None:
            return {
                "status": "new",
                "subscriptionStatus": "none",
                "hasSubscription": False,
                "shouldRedirectToCheckout": True,
                "user": _user_summary(self.user),
            }

        customer = self.customer
        active = customer.has_active_subscription
        expired = customer.has_expired_subscription
        return {
            "status": "active" if active else ("expired" if expired else "none"),
            "subscriptionStatus": customer.subscription_status or "none",
            "hasSubscription": active,
            "shouldRedirectToCheckout": not active and not expired,
            "accountType": customer.account_type or "individual",
            "keygenLicenseId": customer.keygen_license_id,
            "stripeCustomerId": customer.stripe_customer_id,
            "activatedDevices": self.activated_devices,
            "maxDevices": self.max_devices,
            "user": _user_summary(self.user),
        }


@dataclass
class PortalLicenseDTO:
    """DTO for the license page; carries the full key for its owner."""

    license: Optional[Dict[str, Any]]
    subscription: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.license is None:
            return {"license": None, "message": "No license found"}
        return {"license": self.license, "subscription": self.subscription}


@dataclass
class DeviceListDTO:
    """DTO for devices merged from the local records and Keygen."""

    devices: List[Dict[str, Any]] = field(default_factory=list)
    max_devices: int = 0
    license_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body = {"devices": self.devices, "maxDevices": self.max_devices}
        if self.license_id:
            body["licenseId"] = self.license_id
        return body


@dataclass
class BillingDTO:
    """DTO for subscription and payment method details."""

    account_type: Optional[str] = None
    plan_name: Optional[str] = None
    subscription: Optional[Dict[str, Any]] = None
    payment_method: Optional[Dict[str, Any]] = None
    stripe_customer_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.stripe_customer_id:
            return {
                "subscription": None,
                "paymentMethod": None,
                "message": "No billing information found",
            }
        return {
            "accountType": self.account_type,
            "planName": self.plan_name,
            "subscription": self.subscription,
            "paymentMethod": self.payment_method,
            "stripeCustomerId": self.stripe_customer_id,
        }


@dataclass
class InvoiceListDTO:
    """DTO for a page of invoices."""

    invoices: List[Dict[str, Any]] = field(default_factory=list)
    has_more: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"invoices": self.invoices, "hasMore": self.has_more}


@dataclass
class SettingsDTO:
    """DTO for the settings page."""

    user: CognitoUser
    customer: Optional[Customer] = None

    def to_dict(self) -> Dict[str, Any]:
        customer = self.customer
        return {
            "profile": {
                "name": self.user.name or (customer.name if customer else None) or "",
                "email": self.user.email,
                "givenName": customer.given_name if customer else None,
                "middleName": customer.middle_name if customer else None,
                "familyName": customer.family_name if customer else None,
                "accountType": (customer.account_type if customer else None) or "individual",
                "createdAt": customer.created_at if customer else None,
            },
            "notifications": (customer.notification_preferences if customer else None)
            or dict(DEFAULT_NOTIFICATIONS),
        }


@dataclass
class DataExportDTO:
    """DTO for a downloadable data export."""

    data: Dict[str, Any]
    filename: str

    def to_dict(self) -> Dict[str, Any]:
        return self.data


@dataclass
class ActionResultDTO:
    """DTO for a portal action that reports a message."""

    message: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": True}
        if self.message:
            body["message"] = self.message
        body.update(self.extra)
        return body
