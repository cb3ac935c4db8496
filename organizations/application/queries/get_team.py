"""
GetTeamQuery.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class GetTeamQuery:
    """Query for members, pending invites and seat usage of the caller's organization."""

    user: CognitoUser
