"""
UpdateSeatsCommand.

Command to change the seat quantity of a Business subscription.
"""

from dataclasses import dataclass
from typing import Any

from core.domain.identity import CognitoUser


@dataclass
class UpdateSeatsCommand:
    """Command to set a new seat quantity."""

    user: CognitoUser
    quantity: Any
