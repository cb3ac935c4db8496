"""
Unit tests for trial tokens and the Trial entity.
"""
import pytest

from trials.domain.services import TrialTokenService, verify_trial_token
from trials.domain.trial import DAY_MS, Trial, ms_to_iso, remaining_days

FINGERPRINT = "0123456789abcdef" * 4
ISSUED_AT = 1_700_000_000_000


class TestTrialTokenService:
    """Tests for TrialTokenService."""

    def test_issue_and_verify(self):
        """Test a fresh token verifies with 14 days left."""
        service = TrialTokenService("secret")
        issued = service.issue(FINGERPRINT, at=ISSUED_AT)

        assert issued.expires_at == ISSUED_AT + 14 * DAY_MS
        result = service.verify(issued.token, FINGERPRINT, at=ISSUED_AT)
        assert result.valid
        assert result.remaining_days == 14
        assert result.payload["type"] == "trial"

    def test_wrong_secret(self):
        """Test a token signed with another secret is rejected."""
        token = TrialTokenService("secret").issue(FINGERPRINT, at=ISSUED_AT).token
        result = verify_trial_token(token, FINGERPRINT, "other-secret", at=ISSUED_AT)
        assert not result.valid
        assert result.reason == "Invalid signature"

    def test_fingerprint_mismatch(self):
        """Test a token is bound to its device."""
        service = TrialTokenService("secret")
        token = service.issue(FINGERPRINT, at=ISSUED_AT).token
        result = service.verify(token, "f" * 64, at=ISSUED_AT)
        assert result.reason == "Fingerprint mismatch"

    def test_expired(self):
        """Test a token past its expiry reports when it ended."""
        service = TrialTokenService("secret")
        issued = service.issue(FINGERPRINT, at=ISSUED_AT)
        result = service.verify(issued.token, FINGERPRINT, at=issued.expires_at + 1)
        assert result.reason == "Trial expired"
        assert result.expired_at == ms_to_iso(issued.expires_at)

    @pytest.mark.parametrize("token", ["", "no-dot", "a.b.c", ".sig"])
    def test_malformed(self, token):
        """Test tokens that are not two dot-separated parts."""
        result = TrialTokenService("secret").verify(token, FINGERPRINT)
        assert result.reason == "Invalid token format"

    def test_missing_secret(self):
        """Test the service refuses to run without a secret."""
        with pytest.raises(ValueError):
            TrialTokenService("")


class TestTrial:
    """Tests for the Trial entity."""

    def test_start_runs_fourteen_days(self):
        """Test a started trial expires 14 days after issue."""
        trial = Trial.start(FINGERPRINT, "token", at=ISSUED_AT)
        assert trial.expires_at - trial.issued_at == 14 * DAY_MS
        assert trial.remaining_days(ISSUED_AT) == 14
        assert not trial.is_expired(ISSUED_AT)

    def test_remaining_days_rounds_up(self):
        """Test a partial day counts as a whole day."""
        assert remaining_days(ISSUED_AT + DAY_MS + 1, at=ISSUED_AT) == 2
        assert remaining_days(ISSUED_AT, at=ISSUED_AT + 1) == 0

    def test_record_heartbeat_keeps_known_ids(self):
        """Test a heartbeat without ids keeps the ones already stored."""
        trial = Trial.start(FINGERPRINT, "token", at=ISSUED_AT).record_heartbeat(
            ISSUED_AT + 1000, machine_id="m1", session_id="s1"
        )
        updated = trial.record_heartbeat(ISSUED_AT + 2000)
        assert updated.last_heartbeat_at == ISSUED_AT + 2000
        assert updated.machine_id == "m1"
        assert updated.session_id == "s1"

    def test_expiry_must_follow_issue(self):
        """Test invalid timestamps are rejected."""
        with pytest.raises(ValueError):
            Trial.create(FINGERPRINT, "token", issued_at=ISSUED_AT, expires_at=ISSUED_AT)

    def test_ms_to_iso(self):
        """Test ISO rendering keeps milliseconds and a Z suffix."""
        assert ms_to_iso(0) == "1970-01-01T00:00:00.000Z"
