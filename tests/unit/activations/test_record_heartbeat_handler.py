"""
Unit tests for RecordHeartbeatHandler.
"""
import pytest

from activations.application.commands.record_heartbeat import RecordHeartbeatCommand
from activations.application.handlers.record_heartbeat_handler import RecordHeartbeatHandler
from activations.domain.device import Device
from core.domain.exceptions import (
    AuthenticationRequiredError,
    InvalidLicenseKeyFormatError,
    InvalidRequestError,
)
from core.domain.value_objects import LicenseKeyFormat
from core.infrastructure.dynamodb import get_table
from licenses.domain.license_record import LicenseRecord
from trials.domain.trial import Trial

FINGERPRINT = "3d" * 32
LICENSE_KEY = LicenseKeyFormat.build("HB00HB11HB22").value


@pytest.fixture
def handler(keygen, license_repository, device_repository, trial_repository, version_repository):
    return RecordHeartbeatHandler(
        keygen=keygen,
        license_repository=license_repository,
        device_repository=device_repository,
        trial_repository=trial_repository,
        version_repository=version_repository,
    )


def licensed(**overrides):
    values = {
        "fingerprint": FINGERPRINT,
        "license_key": LICENSE_KEY,
        "session_id": "sess-1",
        "user_id": "u-1",
    }
    values.update(overrides)
    return RecordHeartbeatCommand(**values)


@pytest.mark.asyncio
class TestTrialHeartbeat:
    """Heartbeats without a license key."""

    async def test_records_on_trial(self, handler, trial_repository):
        """Test the trial record keeps the latest heartbeat."""
        await trial_repository.create(Trial.start(FINGERPRINT, "t"))

        result = await handler.handle(
            RecordHeartbeatCommand(fingerprint=FINGERPRINT, machine_id="m-1")
        )

        assert result.status == "trial"
        assert result.body["maxMachines"] == 1
        assert result.body["nextHeartbeat"] == 900
        assert (await trial_repository.find_by_fingerprint(FINGERPRINT)).machine_id == "m-1"

    async def test_unknown_trial_still_answers(self, handler):
        """Test a failed trial write does not fail the heartbeat."""
        result = await handler.handle(RecordHeartbeatCommand(fingerprint=FINGERPRINT))
        assert result.body["valid"] is True

    async def test_version_fields(self, handler, dynamodb_table):
        """Test the advertised extension version is included."""
        get_table().put_item(
            Item={"PK": "VERSION#mouse", "SK": "CURRENT", "latestVersion": "1.4.0"}
        )

        result = await handler.handle(RecordHeartbeatCommand(fingerprint=FINGERPRINT))

        assert result.body["latestVersion"] == "1.4.0"
        assert result.body["updateUrl"].startswith("https://marketplace.visualstudio.com/")


@pytest.mark.asyncio
class TestLicensedHeartbeat:
    """Heartbeats carrying a license key."""

    async def test_requires_identity(self, handler):
        """Test licensed heartbeats need a verified user."""
        with pytest.raises(AuthenticationRequiredError):
            await handler.handle(licensed(user_id=None))

    async def test_requires_session(self, handler):
        """Test licensed heartbeats need a session id."""
        with pytest.raises(InvalidRequestError, match="Session ID is required"):
            await handler.handle(licensed(session_id=None))

    async def test_rejects_malformed_key(self, handler):
        """Test malformed keys fail before Keygen is called."""
        with pytest.raises(InvalidLicenseKeyFormatError):
            await handler.handle(licensed(license_key="KEY-NOPE"))

    async def test_machine_not_found(self, handler, keygen):
        """Test a failed Keygen ping reports the machine as gone."""
        keygen.heartbeat_failures[FINGERPRINT] = "Machine not found"

        result = await handler.handle(licensed())

        assert result.status == "machine_not_found"
        assert result.body["valid"] is False
        assert result.body["concurrentMachines"] == 0

    async def test_active_within_limit(self, handler, license_repository, device_repository):
        """Test a bound device inside the limit gets rate-limit headers."""
        await license_repository.create(
            LicenseRecord.create("lic-1", "u-1", LICENSE_KEY, None, max_devices=2)
        )
        await device_repository.add(Device.create("lic-1", "mach-1", FINGERPRINT))

        result = await handler.handle(licensed())

        assert result.status == "active"
        assert result.with_rate_limit_headers is True
        assert result.body["concurrentMachines"] == 1
        assert result.body["maxMachines"] == 2

    async def test_records_authenticated_user(
        self, handler, license_repository, device_repository
    ):
        """Test a device activated anonymously is attributed to the heartbeat's user."""
        await license_repository.create(
            LicenseRecord.create("lic-1", "u-1", LICENSE_KEY, None, max_devices=2)
        )
        await device_repository.add(Device.create("lic-1", "mach-1", FINGERPRINT))

        await handler.handle(licensed(user_id="u-7"))

        device = await device_repository.find_by_fingerprint("lic-1", FINGERPRINT)
        assert device.user_id == "u-7"
        assert device.last_seen_at is not None

    async def test_over_limit(self, handler, license_repository, device_repository):
        """Test exceeding the plan's device count is reported, still valid."""
        await license_repository.create(
            LicenseRecord.create("lic-1", "u-1", LICENSE_KEY, None, max_devices=1)
        )
        await device_repository.add(Device.create("lic-1", "mach-1", FINGERPRINT))
        await device_repository.add(Device.create("lic-1", "mach-2", "4c" * 32))

        result = await handler.handle(licensed())

        assert result.status == "over_limit"
        assert result.body["valid"] is True
        assert result.body["reason"] == "You're using 2 of 1 allowed devices"
        assert result.with_rate_limit_headers is False

    async def test_unknown_license_locally(self, handler):
        """Test a key not mirrored locally still succeeds."""
        result = await handler.handle(licensed())
        assert result.status == "active"
        assert result.body["maxMachines"] is None
