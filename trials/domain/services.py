"""
Trial domain services.

Trial tokens are ``base64url(payload).base64url(HMAC-SHA256(payload))``
where the payload is the compact JSON of
``{type, fingerprint, issuedAt, expiresAt}`` (epoch ms). Both parts are
unpadded base64url.
"""

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from trials.domain.trial import DAY_MS, TRIAL_DURATION_DAYS, ms_to_iso, now_ms, remaining_days


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


@dataclass(frozen=True)
class IssuedTrialToken:
    token: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class TrialTokenVerification:
    """Outcome of ``verify_trial_token``."""

    valid: bool
    reason: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    remaining_days: Optional[int] = None
    expired_at: Optional[str] = None


class TrialTokenService:
    """Issues and verifies signed trial tokens."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Trial token secret is not configured")
        self._secret = secret.encode("utf-8")

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).digest()
        return _b64encode(digest)

    def issue(self, fingerprint: str, at: Optional[int] = None) -> IssuedTrialToken:
        """
        Issue a token for a fingerprint.

        Args:
            fingerprint: Device fingerprint
            at: Issue time (epoch ms), defaults to now

        Returns:
            IssuedTrialToken with the token and its timestamps
        """
        issued_at = at if at is not None else now_ms()
        expires_at = issued_at + TRIAL_DURATION_DAYS * DAY_MS
        payload = json.dumps(
            {
                "type": "trial",
                "fingerprint": fingerprint,
                "issuedAt": issued_at,
                "expiresAt": expires_at,
            },
            separators=(",", ":"),
        )
        token = f"{_b64encode(payload.encode('utf-8'))}.{self._sign(payload)}"
        return IssuedTrialToken(token=token, issued_at=issued_at, expires_at=expires_at)

    def verify(
        self, token: str, expected_fingerprint: str, at: Optional[int] = None
    ) -> TrialTokenVerification:
        """
        Verify a token for a fingerprint.

        Checks format, then signature, then fingerprint, then expiry.
        """
        parts = token.split(".") if isinstance(token, str) else []
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return TrialTokenVerification(valid=False, reason="Invalid token format")

        payload_b64, signature = parts
        try:
            payload_str = _b64decode(payload_b64).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return TrialTokenVerification(valid=False, reason="Token parsing failed")

        if not hmac.compare_digest(signature, self._sign(payload_str)):
            return TrialTokenVerification(valid=False, reason="Invalid signature")

        try:
            payload = json.loads(payload_str)
            token_fingerprint = payload["fingerprint"]
            expires_at = int(payload["expiresAt"])
        except (ValueError, KeyError, TypeError):
            return TrialTokenVerification(valid=False, reason="Token parsing failed")

        if token_fingerprint != expected_fingerprint:
            return TrialTokenVerification(valid=False, reason="Fingerprint mismatch")

        current = at if at is not None else now_ms()
        if current > expires_at:
            return TrialTokenVerification(
                valid=False, reason="Trial expired", expired_at=ms_to_iso(expires_at)
            )

        return TrialTokenVerification(
            valid=True,
            payload=payload,
            remaining_days=remaining_days(expires_at, current),
        )


def verify_trial_token(
    token: str, expected_fingerprint: str, secret: str, at: Optional[int] = None
) -> TrialTokenVerification:
    """Verify a trial token with the given secret."""
    return TrialTokenService(secret).verify(token, expected_fingerprint, at)
