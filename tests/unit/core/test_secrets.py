"""
Unit tests for secret lookup.
"""
import json

import boto3
import pytest
from moto import mock_aws

from core.infrastructure import secrets
from core.infrastructure.secrets import get_secret


@pytest.fixture(autouse=True)
def empty_secret_cache(monkeypatch):
    monkeypatch.setattr(secrets, "_cache", {})
    monkeypatch.setattr(secrets, "_cache_time", 0.0)


@pytest.fixture
def secret_document(settings):
    with mock_aws():
        client = boto3.client("secretsmanager", region_name=settings.AWS_REGION)
        created = client.create_secret(
            Name="plg/app",
            SecretString=json.dumps({"TRIAL_TOKEN_SECRET": "from-secrets-manager"}),
        )
        settings.APP_SECRETS_ARN = created["ARN"]
        yield


class TestGetSecret:
    """Tests for get_secret."""

    def test_settings_used_without_secret_document(self, settings):
        """Test the Django setting is returned when no secret ARN is configured."""
        settings.APP_SECRETS_ARN = None

        assert get_secret("TRIAL_TOKEN_SECRET") == "trial-test-secret"
        assert get_secret("KEYGEN_WEBHOOK_SECRET", "") == "keygen-test-secret"

    def test_default_for_unknown_name(self, settings):
        """Test the default is returned when neither source has the name."""
        settings.APP_SECRETS_ARN = None

        assert get_secret("NOT_CONFIGURED_ANYWHERE", "fallback") == "fallback"
        assert get_secret("NOT_CONFIGURED_ANYWHERE") is None

    def test_secret_document_wins(self, secret_document):
        """Test a key present in Secrets Manager overrides the setting."""
        assert get_secret("TRIAL_TOKEN_SECRET") == "from-secrets-manager"

    def test_missing_document_key_falls_back_to_settings(self, secret_document):
        """Test a key absent from the document still resolves from settings."""
        assert get_secret("KEYGEN_WEBHOOK_SECRET") == "keygen-test-secret"
