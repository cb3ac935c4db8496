"""
Pytest configuration and shared fixtures.
"""

import json
import time
import uuid

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from django.conf import settings
from django.core.cache import cache
from moto import mock_aws

from core.infrastructure.cognito import CognitoTokenVerifier
from core.infrastructure.dynamodb import create_table, get_dynamodb_resource
from core.infrastructure.event_handlers import register_event_handlers
from core.infrastructure.events import event_bus
from core.middleware.auth import set_verifier
from tests.fakes import FakeIdentityAdmin, FakeKeygen, FakeStripe

FINGERPRINT = "a1b2c3d4e5f60718293a4b5c6d7e8f90a1b2c3d4e5f60718293a4b5c6d7e8f90"
OTHER_FINGERPRINT = "ffeeddccbbaa99887766554433221100ffeeddccbbaa99887766554433221100"
SIGNING_KID = "test-key-1"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture(autouse=True)
def clear_cache():
    """Rate-limit windows live in the Django cache; start every test empty."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Re-register the standard event handlers around each test."""
    event_bus.clear()
    register_event_handlers()
    yield
    event_bus.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Record transactional email instead of calling SES."""
    sent = []

    def fake_send(self, template, to, data):
        sent.append({"template": template, "to": to, "data": data})
        return True

    monkeypatch.setattr("core.infrastructure.email.SesEmailSender.send", fake_send)
    return sent


@pytest.fixture
def dynamodb_table():
    """Application table created in moto with the real key schema."""
    with mock_aws():
        get_dynamodb_resource.cache_clear()
        yield create_table()
    get_dynamodb_resource.cache_clear()


@pytest.fixture
def keygen():
    """In-memory Keygen gateway."""
    return FakeKeygen()


@pytest.fixture
def stripe_gateway():
    """In-memory Stripe gateway."""
    return FakeStripe()


@pytest.fixture
def identity_admin():
    """Recording Cognito group admin."""
    return FakeIdentityAdmin()


@pytest.fixture(scope="session")
def signing_key():
    """Throwaway RSA key standing in for the Cognito pool key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def cognito_verifier(signing_key):
    """Verifier pinned to the throwaway key's JWKS."""
    public_jwk = json.loads(jwt.algorithms.RSAAlgorithm.to_jwk(signing_key.public_key()))
    public_jwk.update({"kid": SIGNING_KID, "alg": "RS256", "use": "sig"})
    verifier = CognitoTokenVerifier(jwks={"keys": [public_jwk]})
    set_verifier(verifier)
    yield verifier
    set_verifier(None)


@pytest.fixture
def make_id_token(signing_key, cognito_verifier):
    """Factory for signed Cognito ID tokens."""

    def make(**claims):
        now = int(time.time())
        payload = {
            "sub": claims.pop("sub", str(uuid.uuid4())),
            "email": claims.pop("email", "user@example.com"),
            "email_verified": True,
            "token_use": "id",
            "iss": cognito_verifier.issuer,
            "aud": settings.COGNITO_CLIENT_ID,
            "iat": now,
            "exp": now + 3600,
        }
        payload.update(claims)
        return jwt.encode(payload, signing_key, algorithm="RS256", headers={"kid": SIGNING_KID})

    return make


@pytest.fixture
def api_client():
    """Fixture for DRF API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def auth_client(api_client, make_id_token):
    """Factory for an API client signed in with the given claims."""

    def make(**claims):
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_id_token(**claims)}")
        return api_client

    return make
