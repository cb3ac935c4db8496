"""
Unit tests for the cache-backed rate limiter.
"""
import pytest
from django.test import RequestFactory

from core.domain.exceptions import RateLimitExceededError
from core.infrastructure.rate_limit import RateLimiter, get_client_ip, rate_limit_headers


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_counts_down_to_the_limit(self):
        """Test remaining drops with each request until the preset maximum."""
        limiter = RateLimiter("heartbeat")

        results = [limiter.check("fp-1") for _ in range(10)]

        assert all(result["allowed"] for result in results)
        assert [result["remaining"] for result in results[:3]] == [9, 8, 7]
        assert results[-1]["remaining"] == 0

        blocked = limiter.check("fp-1")
        assert blocked["allowed"] is False
        assert blocked["current"] == 10
        assert 1 <= blocked["retry_after"] <= 60

    def test_identifiers_are_independent(self):
        """Test one caller exhausting its window leaves another untouched."""
        limiter = RateLimiter("trialInit")
        for _ in range(5):
            limiter.check("fp-1")

        assert limiter.check("fp-1")["allowed"] is False
        assert limiter.check("fp-2")["allowed"] is True

    def test_presets_are_separate(self):
        """Test the same identifier is counted per preset."""
        for _ in range(5):
            RateLimiter("trialInit").check("fp-1")

        assert RateLimiter("activate").check("fp-1")["remaining"] == 9

    def test_enforce_raises_with_body(self):
        """Test enforce raises with the route's custom body once exhausted."""
        limiter = RateLimiter("licenseCheck")
        for _ in range(10):
            limiter.enforce("203.0.113.9", "/api/license/check")

        body = {"error": "Too many requests", "status": "rate_limited"}
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.enforce("203.0.113.9", "/api/license/check", body=body)

        assert exc_info.value.to_payload() == body
        assert exc_info.value.retry_after >= 1

    def test_default_payload(self):
        """Test the default rate-limit body."""
        limiter = RateLimiter("trialInit")
        for _ in range(5):
            limiter.check("fp-1")

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.enforce("fp-1", "/api/license/trial/init")

        payload = exc_info.value.to_payload()
        assert payload["error"] == "Rate limit exceeded"
        assert payload["limit"] == 5
        assert payload["remaining"] == 0

    def test_unknown_preset(self):
        """Test unknown preset names are rejected."""
        with pytest.raises(ValueError, match="Unknown rate limit preset"):
            RateLimiter("download")

    def test_headers(self):
        """Test X-RateLimit headers reflect the check result."""
        result = RateLimiter("validate").check("KEY-1")

        headers = rate_limit_headers(result)

        assert headers["X-RateLimit-Limit"] == "20"
        assert headers["X-RateLimit-Remaining"] == "19"
        assert headers["X-RateLimit-Reset"] == str(result["reset_at"])


class TestGetClientIp:
    """Tests for get_client_ip."""

    def test_forwarded_for_first_hop(self):
        """Test the first X-Forwarded-For address wins."""
        request = RequestFactory().get(
            "/", HTTP_X_FORWARDED_FOR="198.51.100.7, 10.0.0.1", HTTP_X_REAL_IP="10.0.0.2"
        )
        assert get_client_ip(request) == "198.51.100.7"

    def test_real_ip(self):
        """Test X-Real-IP is used without X-Forwarded-For."""
        request = RequestFactory().get("/", HTTP_X_REAL_IP="198.51.100.8")
        assert get_client_ip(request) == "198.51.100.8"

    def test_remote_addr(self):
        """Test REMOTE_ADDR is the last resort."""
        request = RequestFactory().get("/", REMOTE_ADDR="192.0.2.10")
        assert get_client_ip(request) == "192.0.2.10"
