"""
RemoveMemberCommand.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class RemoveMemberCommand:
    """Command to remove a member from the caller's organization."""

    user: CognitoUser
    member_id: str
