"""
Unit tests for the Keygen HTTP adapter.
"""
from unittest.mock import Mock

import pytest
import requests

from core.infrastructure.keygen import KeygenClient
from core.ports.keygen_gateway import KeygenError

LICENSE_DATA = {
    "id": "lic-1",
    "type": "licenses",
    "attributes": {
        "key": "MOUSE-ABCD-1234-WXYZ-0000",
        "status": "ACTIVE",
        "expiry": "2030-01-01T00:00:00Z",
        "maxMachines": 3,
        "metadata": {"email": "jane@example.com"},
    },
    "relationships": {"policy": {"data": {"type": "policies", "id": "policy-individual"}}},
}


def response(status_code=200, body=None):
    resp = Mock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.content = b"{}" if body is not None else b""
    resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def client(session):
    return KeygenClient(account_id="acct-1", product_token="prod-token", session=session)


@pytest.mark.asyncio
class TestKeygenClient:
    """Tests for KeygenClient."""

    async def test_get_license(self, client, session):
        """Test JSON:API license data is mapped and the product token sent."""
        session.request.return_value = response(body={"data": LICENSE_DATA})

        lic = await client.get_license("lic-1")

        assert lic.key == "MOUSE-ABCD-1234-WXYZ-0000"
        assert lic.status == "ACTIVE"
        assert lic.max_machines == 3
        assert lic.policy_id == "policy-individual"
        method, url = session.request.call_args.args
        assert (method, url) == ("GET", "https://api.keygen.sh/v1/accounts/acct-1/licenses/lic-1")
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer prod-token"
        assert headers["Accept"] == "application/vnd.api+json"

    async def test_error_carries_keygen_code(self, client, session):
        """Test a non-2xx answer raises with Keygen's first error."""
        session.request.return_value = response(
            422,
            {"errors": [{"code": "MACHINE_LIMIT_EXCEEDED", "detail": "machine count exceeded"}]},
        )

        with pytest.raises(KeygenError) as exc_info:
            await client.activate_device("lic-1", "ab" * 32, "Laptop", "darwin")

        assert exc_info.value.status == 422
        assert exc_info.value.code == "MACHINE_LIMIT_EXCEEDED"
        assert exc_info.value.detail == "machine count exceeded"

    async def test_unreachable(self, client, session):
        """Test connection failures surface as a 503 KeygenError."""
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(KeygenError) as exc_info:
            await client.get_license("lic-1")

        assert exc_info.value.status == 503

    async def test_validate_scopes_fingerprint(self, client, session):
        """Test the fingerprint scope is sent and the meta result mapped."""
        session.request.return_value = response(
            body={
                "data": LICENSE_DATA,
                "meta": {"valid": True, "code": "VALID", "detail": "is valid"},
            }
        )

        result = await client.validate_license("MOUSE-ABCD-1234-WXYZ-0000", "ab" * 32)

        assert result.valid is True
        assert result.code == "VALID"
        assert result.license.id == "lic-1"
        assert session.request.call_args.kwargs["json"] == {
            "meta": {"key": "MOUSE-ABCD-1234-WXYZ-0000", "scope": {"fingerprint": "ab" * 32}}
        }

    async def test_validate_error_is_a_result(self, client, session):
        """Test a Keygen error during validation is reported, not raised."""
        session.request.return_value = response(
            404, {"errors": [{"code": "NOT_FOUND", "detail": "license not found"}]}
        )

        result = await client.validate_license("MOUSE-NOPE")

        assert result.valid is False
        assert result.code == "NOT_FOUND"
        assert result.license is None

    async def test_heartbeat_failure_is_a_result(self, client, session):
        """Test a failed ping returns an unsuccessful result."""
        session.request.return_value = response(
            404, {"errors": [{"detail": "machine not found"}]}
        )

        result = await client.machine_heartbeat("mach-1")

        assert result.success is False
        assert result.error == "machine not found"

    async def test_deactivate_empty_response(self, client, session):
        """Test a 204 with no body is accepted."""
        session.request.return_value = response(204)

        await client.deactivate_device("mach-1")

        method, url = session.request.call_args.args
        assert method == "DELETE"
        assert url == "https://api.keygen.sh/v1/accounts/acct-1/machines/mach-1"

    async def test_licenses_by_email_swallows_errors(self, client, session):
        """Test a failed metadata search yields no licenses."""
        session.request.return_value = response(500, {"errors": []})

        assert await client.get_licenses_by_email("Jane@Example.com") == []
        assert session.request.call_args.kwargs["params"] == {"metadata[email]": "jane@example.com"}


class TestPolicyIds:
    """Tests for plan to policy mapping."""

    def test_policy_for_plan(self):
        """Test plans map to the configured policies."""
        client = KeygenClient(account_id="acct-1", product_token="t", session=Mock())

        assert client.get_policy_id("individual") == "policy-individual"
        assert client.get_policy_id("business") == "policy-business"
        with pytest.raises(ValueError, match="Unknown plan type"):
            client.get_policy_id("enterprise")
