"""
Integration tests for the license API endpoints.
"""
import pytest

from core.ports.keygen_gateway import KeygenValidation

FINGERPRINT = "6a" * 32
LICENSE_KEY = "KEY-LIC-1"


@pytest.mark.integration
class TestTrialInitAPI:
    """Tests for /api/license/trial/init."""

    def test_issue_trial(self, api_client, gateways):
        """Test a new device gets a trial token and rate-limit headers."""
        response = api_client.post(
            "/api/license/trial/init", {"fingerprint": FINGERPRINT}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["trialToken"]
        assert data["remainingDays"] == 14
        assert response["X-RateLimit-Limit"] == "5"
        assert response["X-RateLimit-Remaining"] == "4"

    def test_second_init_conflicts(self, api_client, gateways):
        """Test a running trial answers 409."""
        api_client.post("/api/license/trial/init", {"fingerprint": FINGERPRINT}, format="json")

        response = api_client.post(
            "/api/license/trial/init", {"fingerprint": FINGERPRINT}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["remainingDays"] == 14

    def test_invalid_fingerprint(self, api_client, gateways):
        """Test a malformed fingerprint answers 400."""
        response = api_client.post(
            "/api/license/trial/init", {"fingerprint": "not-hex"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_fingerprint"

    def test_rate_limited(self, api_client, gateways):
        """Test the sixth attempt within the hour answers 429."""
        for _ in range(5):
            api_client.post("/api/license/trial/init", {"fingerprint": FINGERPRINT}, format="json")

        response = api_client.post(
            "/api/license/trial/init", {"fingerprint": FINGERPRINT}, format="json"
        )

        assert response.status_code == 429
        assert int(response["Retry-After"]) >= 1
        assert response.json()["error"] == "Rate limit exceeded"

    def test_status(self, api_client, gateways):
        """Test the trial lookup for a device with no history."""
        response = api_client.get("/api/license/trial/init", {"fingerprint": FINGERPRINT})

        assert response.status_code == 200
        assert response.json() == {"hasTrialHistory": False, "canStartTrial": True}


@pytest.mark.integration
class TestValidateAPI:
    """Tests for /api/license/validate."""

    def test_trial_flow_without_key(self, api_client, gateways):
        """Test validating without a key starts the device's trial."""
        response = api_client.post(
            "/api/license/validate", {"fingerprint": FINGERPRINT}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["code"] == "TRIAL_STARTED"

    def test_fingerprint_required(self, api_client, gateways):
        """Test a missing fingerprint answers 400."""
        response = api_client.post("/api/license/validate", {}, format="json")

        assert response.status_code == 400
        assert response.json() == {"error": "Device fingerprint is required"}

    def test_unknown_key(self, api_client, gateways):
        """Test an unknown key is reported invalid, not as an error."""
        response = api_client.post(
            "/api/license/validate",
            {"fingerprint": FINGERPRINT, "licenseKey": "KEY-NOPE"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["valid"] is False
        assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.integration
class TestActivateAPI:
    """Tests for /api/license/activate and /api/license/deactivate."""

    def _seed_unbound(self, keygen):
        lic = keygen.add_license("lic-1", LICENSE_KEY, status="ACTIVE", max_machines=3)
        keygen.validations[LICENSE_KEY] = KeygenValidation(
            valid=False, code="NO_MACHINES", detail="no machines", license=lic
        )

    def test_activate(self, api_client, gateways):
        """Test an anonymous activation binds the device."""
        self._seed_unbound(gateways.keygen)

        response = api_client.post(
            "/api/license/activate",
            {"licenseKey": LICENSE_KEY, "fingerprint": FINGERPRINT, "platform": "darwin"},
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["activated"] is True
        assert data["deviceCount"] == 1

    def test_invalid_token_rejected(self, api_client, gateways, cognito_verifier):
        """Test a bad bearer token fails activation instead of going anonymous."""
        self._seed_unbound(gateways.keygen)
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")

        response = api_client.post(
            "/api/license/activate",
            {"licenseKey": LICENSE_KEY, "fingerprint": FINGERPRINT},
            format="json",
        )

        assert response.status_code == 401
        assert gateways.keygen.called("activate_device") == []

    def test_missing_fields(self, api_client, gateways):
        """Test the key and fingerprint are both required."""
        response = api_client.post(
            "/api/license/activate", {"licenseKey": LICENSE_KEY}, format="json"
        )

        assert response.status_code == 400
        assert response.json() == {"error": "License key and fingerprint are required"}

    def test_rejected_requests_keep_quota(self, api_client, gateways):
        """Test incomplete activations never count against the key's hourly limit."""
        self._seed_unbound(gateways.keygen)
        for _ in range(11):
            rejected = api_client.post(
                "/api/license/activate", {"licenseKey": LICENSE_KEY}, format="json"
            )
            assert rejected.status_code == 400

        response = api_client.post(
            "/api/license/activate",
            {"licenseKey": LICENSE_KEY, "fingerprint": FINGERPRINT},
            format="json",
        )

        assert response.status_code == 200

    def test_deactivate(self, api_client, gateways):
        """Test DELETE releases the device's slot."""
        self._seed_unbound(gateways.keygen)
        machine_id = api_client.post(
            "/api/license/activate",
            {"licenseKey": LICENSE_KEY, "fingerprint": FINGERPRINT},
            format="json",
        ).json()["machine"]["id"]

        response = api_client.delete(
            "/api/license/deactivate",
            {"licenseId": "lic-1", "machineId": machine_id},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert gateways.keygen.called("deactivate_device") == [("deactivate_device", machine_id)]

    def test_deactivate_requires_license_id(self, api_client, gateways):
        """Test the license id is required."""
        response = api_client.delete(
            "/api/license/deactivate", {"fingerprint": FINGERPRINT}, format="json"
        )

        assert response.status_code == 400
        assert response.json() == {"error": "License ID is required"}


@pytest.mark.integration
class TestHeartbeatAPI:
    """Tests for /api/license/heartbeat."""

    def test_trial_heartbeat(self, api_client, gateways):
        """Test an anonymous trial heartbeat is accepted."""
        response = api_client.post(
            "/api/license/heartbeat", {"fingerprint": FINGERPRINT}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["valid"] is True

    def test_licensed_heartbeat_needs_identity(self, api_client, gateways):
        """Test a licensed heartbeat without a token answers 401."""
        response = api_client.post(
            "/api/license/heartbeat",
            {"fingerprint": FINGERPRINT, "licenseKey": LICENSE_KEY, "sessionId": "sess-1"},
            format="json",
        )

        assert response.status_code == 401


@pytest.mark.integration
class TestLicenseCheckAPI:
    """Tests for /api/license/check."""

    def test_no_license(self, api_client, gateways):
        """Test an email with no license."""
        response = api_client.get("/api/license/check", {"email": "nobody@example.com"})

        assert response.status_code == 200
        assert response.json()["status"] == "none"

    def test_bad_email(self, api_client, gateways):
        """Test a malformed email answers 400."""
        response = api_client.get("/api/license/check", {"email": "nobody"})

        assert response.status_code == 400


@pytest.mark.integration
class TestHealthAPI:
    """Tests for the health endpoints."""

    def test_health(self, api_client):
        """Test the liveness check."""
        response = api_client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "plg-website"}

    def test_dynamodb_health(self, api_client, dynamodb_table):
        """Test the table check against the moto table."""
        response = api_client.get("/health/dynamodb/")

        assert response.status_code == 200
        assert response.json()["dynamodb"] == "connected"
