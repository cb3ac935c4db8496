"""
CheckLicenseQuery.

Query to look up the license held by an email address.
"""

from dataclasses import dataclass


@dataclass
class CheckLicenseQuery:
    """Query for the license status of an email address."""

    email: str
