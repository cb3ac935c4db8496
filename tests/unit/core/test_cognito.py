"""
Unit tests for Cognito token verification and webhook signatures.
"""
import time

from django.test import RequestFactory

from core.domain.identity import CognitoUser
from core.infrastructure import cognito
from core.infrastructure.cognito import CognitoTokenVerifier, get_bearer_token
from core.infrastructure.webhooks import WebhookSignatureService


class TestCognitoTokenVerifier:
    """Tests for CognitoTokenVerifier."""

    def test_valid_id_token(self, cognito_verifier, make_id_token):
        """Test a well-formed ID token yields its claims."""
        claims = cognito_verifier.verify(make_id_token(sub="u-1", email="Jane@Example.com"))

        assert claims["sub"] == "u-1"
        user = CognitoUser.from_claims(claims)
        assert user.user_id == "u-1"
        assert user.email == "jane@example.com"

    def test_custom_claims(self, cognito_verifier, make_id_token):
        """Test organization claims are read from the custom attributes."""
        token = make_id_token(**{"custom:org_id": "cus_org", "custom:role": "admin"})

        user = CognitoUser.from_claims(cognito_verifier.verify(token))

        assert user.org_id == "cus_org"
        assert user.role == "admin"

    def test_expired_token(self, cognito_verifier, make_id_token):
        """Test an expired token is rejected."""
        assert cognito_verifier.verify(make_id_token(exp=int(time.time()) - 60)) is None

    def test_wrong_audience(self, cognito_verifier, make_id_token):
        """Test a token for another app client is rejected."""
        assert cognito_verifier.verify(make_id_token(aud="other-client")) is None

    def test_wrong_issuer(self, cognito_verifier, make_id_token):
        """Test a token from another pool is rejected."""
        issuer = "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_Other"
        assert cognito_verifier.verify(make_id_token(iss=issuer)) is None

    def test_access_token_rejected(self, cognito_verifier, make_id_token):
        """Test only ID tokens are accepted."""
        assert cognito_verifier.verify(make_id_token(token_use="access")) is None

    def test_garbage(self, cognito_verifier):
        """Test a malformed token is rejected."""
        assert cognito_verifier.verify("not-a-jwt") is None
        assert cognito_verifier.verify("") is None

    def test_empty_key_set(self, make_id_token):
        """Test a JWKS without keys rejects the token instead of erroring."""
        verifier = CognitoTokenVerifier(jwks={"keys": []})
        assert verifier.verify(make_id_token(sub="u-1")) is None

    def test_malformed_jwks_response(self, monkeypatch, make_id_token):
        """Test a JWKS endpoint answering non-JSON rejects the token."""

        class NotJson:
            def raise_for_status(self):
                pass

            def json(self):
                raise ValueError("Expecting value")

        monkeypatch.setattr(cognito.requests, "get", lambda *args, **kwargs: NotJson())

        assert CognitoTokenVerifier().verify(make_id_token(sub="u-1")) is None


class TestGetBearerToken:
    """Tests for get_bearer_token."""

    def test_bearer(self):
        request = RequestFactory().get("/", HTTP_AUTHORIZATION="Bearer abc.def.ghi")
        assert get_bearer_token(request) == "abc.def.ghi"

    def test_other_schemes(self):
        assert get_bearer_token(RequestFactory().get("/", HTTP_AUTHORIZATION="Basic eA==")) is None
        assert get_bearer_token(RequestFactory().get("/", HTTP_AUTHORIZATION="Bearer ")) is None
        assert get_bearer_token(RequestFactory().get("/")) is None


class TestWebhookSignatureService:
    """Tests for WebhookSignatureService."""

    def test_round_trip(self):
        """Test a signature generated with the secret verifies."""
        payload = b'{"data": {"type": "webhook-events"}}'
        signature = WebhookSignatureService.generate_signature(payload, "keygen-test-secret")

        assert WebhookSignatureService.verify_signature(payload, signature, "keygen-test-secret")

    def test_tampered_payload(self):
        """Test a changed body fails verification."""
        signature = WebhookSignatureService.generate_signature("original", "keygen-test-secret")

        assert not WebhookSignatureService.verify_signature(
            "tampered", signature, "keygen-test-secret"
        )

    def test_missing_signature(self):
        """Test an absent signature never verifies."""
        assert not WebhookSignatureService.verify_signature(b"{}", "", "keygen-test-secret")
