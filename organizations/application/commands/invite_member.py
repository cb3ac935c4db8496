"""
InviteMemberCommand.

Command to invite someone to the caller's organization.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class InviteMemberCommand:
    """Command to create an organization invite."""

    user: CognitoUser
    email: str
    role: str = "member"
