"""
Account commands.

Commands for the portal settings page and billing portal hand-off.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.domain.identity import CognitoUser


@dataclass
class CreateBillingPortalSessionCommand:
    """Command to open a Stripe billing portal session."""

    user: CognitoUser


@dataclass
class UpdateSettingsCommand:
    """Command to update name fields and notification preferences.

    ``changes`` holds only the keys the client sent, so an omitted field
    is left untouched while an empty string clears it.
    """

    user: CognitoUser
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RequestAccountDeletionCommand:
    """Command to schedule the caller's account for deletion."""

    user: CognitoUser
    confirmation: Optional[str]
    reason: Optional[str] = None


@dataclass
class CancelAccountDeletionCommand:
    """Command to withdraw a pending deletion request."""

    user: CognitoUser


@dataclass
class LeaveOrganizationCommand:
    """Command for a member to leave their organization."""

    user: CognitoUser
    confirmation: Optional[str]
