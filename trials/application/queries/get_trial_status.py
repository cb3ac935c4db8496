"""
GetTrialStatusQuery.

Query whether a device has trial history and may start a trial.
"""

from dataclasses import dataclass


@dataclass
class GetTrialStatusQuery:
    """Query for a device's trial status."""

    fingerprint: str
