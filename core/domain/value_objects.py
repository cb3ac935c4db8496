"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
import re
from abc import ABC
from dataclasses import dataclass
from enum import Enum

from core.domain.exceptions import (
    InvalidFingerprintError,
    InvalidLicenseKeyFormatError,
    InvalidRequestError,
)


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects.

    Value objects are immutable and compared by value.
    """

    def __eq__(self, other):
        """Compare value objects by their attributes."""
        if not isinstance(other, self.__class__):
            return False
        return self.__dict__ == other.__dict__

    def __hash__(self):
        """Make value objects hashable."""
        return hash(tuple(sorted(self.__dict__.items())))


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class Email(ValueObject):
    """Email value object with validation. Stored lowercased."""

    value: str

    def __post_init__(self):
        """Validate email format."""
        value = self.value.strip() if isinstance(self.value, str) else ""
        if not value:
            raise InvalidRequestError("Email parameter is required")
        if not EMAIL_PATTERN.match(value):
            raise InvalidRequestError("Invalid email format")
        object.__setattr__(self, "value", value.lower())

    def __str__(self) -> str:
        """Return email as string."""
        return self.value

    @property
    def local_part(self) -> str:
        return self.value.split("@", 1)[0]


FINGERPRINT_MIN_LENGTH = 32
FINGERPRINT_MAX_LENGTH = 128
FINGERPRINT_PATTERN = re.compile(r"[a-f0-9]+", re.IGNORECASE)


@dataclass(frozen=True)
class Fingerprint(ValueObject):
    """Hex device fingerprint, 32 to 128 characters."""

    value: str

    def __post_init__(self):
        """Validate fingerprint format."""
        if not self.value or not isinstance(self.value, str):
            raise InvalidFingerprintError("Fingerprint is required")
        if not FINGERPRINT_MIN_LENGTH <= len(self.value) <= FINGERPRINT_MAX_LENGTH:
            raise InvalidFingerprintError("Invalid fingerprint length")
        if not FINGERPRINT_PATTERN.fullmatch(self.value):
            raise InvalidFingerprintError("Invalid fingerprint format")

    def __str__(self) -> str:
        """Return fingerprint as string."""
        return self.value

    @property
    def short(self) -> str:
        return self.value[:8]


LICENSE_KEY_PATTERN = re.compile(r"^MOUSE-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")
CHECKSUM_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def license_key_checksum(body: str) -> str:
    """
    Compute the 4-character checksum for a license key body.

    Args:
        body: The 12 characters of the three key groups after the prefix

    Returns:
        Checksum string
    """
    total = 0
    for index, char in enumerate(body):
        total += ord(char) * (index + 1)
    return "".join(
        CHECKSUM_ALPHABET[(total >> (i * 5)) % len(CHECKSUM_ALPHABET)] for i in range(4)
    )


@dataclass(frozen=True)
class LicenseKeyFormat(ValueObject):
    """
    License key in the MOUSE-XXXX-XXXX-XXXX-CCCC format.

    The last group is a checksum over the three groups before it, so typos
    are caught before any upstream call is made.
    """

    value: str

    def __post_init__(self):
        """Validate key format and checksum."""
        if not self.value or not isinstance(self.value, str):
            raise InvalidLicenseKeyFormatError("License key is required")
        if not LICENSE_KEY_PATTERN.match(self.value):
            raise InvalidLicenseKeyFormatError("Invalid license key format")
        parts = self.value.split("-")
        if license_key_checksum("".join(parts[1:4])) != parts[4]:
            raise InvalidLicenseKeyFormatError("Invalid license key checksum")

    def __str__(self) -> str:
        """Return key as string."""
        return self.value

    @classmethod
    def build(cls, body: str) -> "LicenseKeyFormat":
        """Build a key from a 12-character body, appending its checksum."""
        body = body.upper()
        groups = [body[0:4], body[4:8], body[8:12]]
        return cls("-".join(["MOUSE", *groups, license_key_checksum(body)]))


class PlanType(str, Enum):
    """Purchasable plan."""

    INDIVIDUAL = "individual"
    BUSINESS = "business"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()
