"""
GetSeatsQuery.
"""

from dataclasses import dataclass

from core.domain.identity import CognitoUser


@dataclass
class GetSeatsQuery:
    """Query for seat usage and per-seat pricing of the caller's organization."""

    user: CognitoUser
