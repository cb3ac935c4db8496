"""
Fixed-window rate limiting on the Django cache.

Limits are keyed by whatever identifies the caller for a route (device
fingerprint, license key, client IP), so they are applied inside views
rather than in middleware.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from django.core.cache import cache

from core.domain.exceptions import RateLimitExceededError
from core.metrics import errors_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPreset:
    window_seconds: int
    max_requests: int
    key_prefix: str


RATE_LIMIT_PRESETS: Dict[str, RateLimitPreset] = {
    "heartbeat": RateLimitPreset(60, 10, "heartbeat"),
    "trialInit": RateLimitPreset(3600, 5, "trial-init"),
    "validate": RateLimitPreset(60, 20, "validate"),
    "activate": RateLimitPreset(3600, 10, "activate"),
    "licenseCheck": RateLimitPreset(60, 10, "license-check"),
}


class RateLimiter:
    """Cache-backed fixed-window counter."""

    def __init__(self, preset: str):
        if preset not in RATE_LIMIT_PRESETS:
            raise ValueError(f"Unknown rate limit preset: {preset}")
        self.name = preset
        self.preset = RATE_LIMIT_PRESETS[preset]

    def _cache_key(self, identifier: str, window_start: int) -> str:
        # Hash the identifier so raw keys never land in the cache
        digest = hashlib.sha256(identifier.encode()).hexdigest()[:16]
        return f"rate_limit:{self.preset.key_prefix}:{digest}:{window_start}"

    def check(self, identifier: str) -> Dict[str, Any]:
        """
        Count a request against the window.

        Args:
            identifier: Caller identity for this route

        Returns:
            Dict with allowed, current, limit, remaining, reset_at, retry_after
        """
        window = self.preset.window_seconds
        limit = self.preset.max_requests
        now = time.time()
        window_start = int(now / window)
        reset_at = (window_start + 1) * window
        full_key = self._cache_key(identifier or "anonymous", window_start)

        current_count = cache.get(full_key, 0)
        if current_count >= limit:
            allowed = False
            new_count = current_count
        else:
            try:
                new_count = cache.incr(full_key, 1)
            except ValueError:
                # Key doesn't exist, create it with initial value of 1
                cache.set(full_key, 1, timeout=window)
                new_count = 1
            allowed = True

        return {
            "allowed": allowed,
            "current": new_count,
            "limit": limit,
            "remaining": max(0, limit - new_count) if allowed else 0,
            "reset_at": reset_at,
            "reset_at_iso": datetime.fromtimestamp(reset_at, tz=timezone.utc).isoformat(),
            "retry_after": max(1, int(reset_at - now)),
        }

    def enforce(
        self, identifier: str, endpoint: str, body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Check the limit and raise when it is exceeded.

        Raises:
            RateLimitExceededError: Carrying the check result for headers
        """
        result = self.check(identifier)
        if not result["allowed"]:
            errors_total.labels(error_type="rate_limit_exceeded", endpoint=endpoint).inc()
            logger.warning(
                "Rate limit exceeded",
                extra={"preset": self.name, "endpoint": endpoint, "limit": result["limit"]},
            )
            raise RateLimitExceededError(result, body=body)
        return result


def rate_limit_headers(result: Dict[str, Any]) -> Dict[str, str]:
    """X-RateLimit-* headers for a check result (RFC 6585 style)."""
    return {
        "X-RateLimit-Limit": str(result["limit"]),
        "X-RateLimit-Remaining": str(result["remaining"]),
        "X-RateLimit-Reset": str(result["reset_at"]),
    }


def get_client_ip(request) -> str:
    """Client IP from X-Forwarded-For, X-Real-IP, then REMOTE_ADDR."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.META.get("HTTP_X_REAL_IP")
    if real_ip:
        return real_ip.strip()
    return request.META.get("REMOTE_ADDR") or "unknown"
