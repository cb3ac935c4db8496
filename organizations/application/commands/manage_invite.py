"""
Invite management commands.

Commands to re-send or cancel a pending invite.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class ResendInviteCommand:
    """Command to renew an invite's expiry and email it again."""

    user: CognitoUser
    invite_id: str


@dataclass
class CancelInviteCommand:
    """Command to delete a pending invite."""

    user: CognitoUser
    invite_id: str
