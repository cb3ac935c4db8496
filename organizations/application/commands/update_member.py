"""
Member update commands.

Commands to change a member's status or role.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class UpdateMemberStatusCommand:
    """Command to activate, suspend or revoke a member."""

    user: CognitoUser
    member_id: str
    status: str


@dataclass
class UpdateMemberRoleCommand:
    """Command to promote or demote a member."""

    user: CognitoUser
    member_id: str
    role: str
