"""
Portal queries.

Read-only views of the signed-in customer's account.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class GetPortalStatusQuery:
    """Query for the dashboard subscription summary."""

    user: CognitoUser


@dataclass
class GetPortalLicenseQuery:
    """Query for the caller's license and key."""

    user: CognitoUser


@dataclass
class ListDevicesQuery:
    """Query for devices activated on the caller's license."""

    user: CognitoUser


@dataclass
class GetBillingQuery:
    """Query for subscription and payment method details."""

    user: CognitoUser


@dataclass
class ListInvoicesQuery:
    """Query for recent invoices."""

    user: CognitoUser
    limit: int = 10


@dataclass
class GetSettingsQuery:
    """Query for profile and notification preferences."""

    user: CognitoUser


@dataclass
class ExportDataQuery:
    """Query for a full export of the caller's data."""

    user: CognitoUser
