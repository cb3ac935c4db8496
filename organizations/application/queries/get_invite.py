"""
GetInviteQuery.
"""

from dataclasses import dataclass


@dataclass
class GetInviteQuery:
    """Query to look up an invite by its token."""

    token: str
