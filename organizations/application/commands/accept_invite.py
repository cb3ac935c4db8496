"""
AcceptInviteCommand.

Command for a signed-in user to join an organization through an invite link.
"""

from dataclasses import dataclass
from typing import Optional

from core.domain.identity import CognitoUser


@dataclass
class AcceptInviteCommand:
    """Command to accept an invite token."""

    token: str
    user: Optional[CognitoUser]
