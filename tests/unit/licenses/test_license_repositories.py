"""
Unit tests for the license and customer DynamoDB adapters.
"""
import pytest

from core.domain.exceptions import CustomerNotFoundError
from licenses.domain.customer import Customer
from licenses.domain.license_record import LicenseRecord
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)


@pytest.mark.asyncio
class TestDynamoDBLicenseRepository:
    """Tests for the license adapter."""

    async def test_create_and_lookup(self, dynamodb_table):
        """Test a record is found by id, key and owner."""
        repo = DynamoDBLicenseRepository()
        await repo.create(
            LicenseRecord.create(
                "lic-1", "u-1", "KEY-ABCDEFGH-1234", "policy-individual", 3, email="A@B.co"
            )
        )

        by_id = await repo.get("lic-1")
        assert by_id.email == "a@b.co"
        assert by_id.activated_devices == 0
        assert (await repo.find_by_key("KEY-ABCDEFGH-1234")).keygen_license_id == "lic-1"
        assert [r.keygen_license_id for r in await repo.find_by_user("u-1")] == ["lic-1"]
        assert await repo.user_owns_license("u-1", "lic-1")
        assert not await repo.user_owns_license("u-2", "lic-1")

    async def test_update_status_of_missing_license(self, dynamodb_table):
        """Test status updates for unknown licenses return None."""
        assert await DynamoDBLicenseRepository().update_status("ghost", "expired") is None


@pytest.mark.asyncio
class TestDynamoDBCustomerRepository:
    """Tests for the customer adapter."""

    async def test_upsert_and_indexes(self, dynamodb_table):
        """Test profiles are reachable by user id, Stripe id and email."""
        repo = DynamoDBCustomerRepository()
        await repo.upsert(
            Customer(user_id="u-1", email="Buyer@Example.com", stripe_customer_id="cus_1")
        )

        assert (await repo.find_by_user_id("u-1")).email == "buyer@example.com"
        assert (await repo.find_by_stripe_customer_id("cus_1")).user_id == "u-1"
        assert (await repo.find_by_email("BUYER@example.com")).user_id == "u-1"

    async def test_update_missing_profile(self, dynamodb_table):
        """Test updates to unknown users raise CustomerNotFoundError."""
        with pytest.raises(CustomerNotFoundError):
            await DynamoDBCustomerRepository().update("ghost", {"seats": 2})

    async def test_mark_email_sent(self, dynamodb_table):
        """Test sent lifecycle emails are recorded by type."""
        repo = DynamoDBCustomerRepository()
        await repo.upsert(Customer(user_id="u-1", email="a@b.co"))

        await repo.mark_email_sent("u-1", "trialEnding", "2026-01-01T00:00:00+00:00")

        assert (await repo.find_by_user_id("u-1")).was_email_sent("trialEnding")


class TestLicenseEntities:
    """Tests for the license record and customer entities."""

    def test_masked_key(self):
        """Test the key is masked to its first eight and last four characters."""
        record = LicenseRecord.create("lic-1", "u-1", "KEY-ABCDEFGH-1234", None, 1)
        assert record.masked_key == "KEY-ABCD...1234"

    def test_temporary_profile(self):
        """Test checkout-created profiles are marked temporary."""
        assert Customer(user_id="email:a@b.co", email="a@b.co").is_temporary

    def test_customer_requires_email(self):
        """Test customers cannot be created without an email."""
        with pytest.raises(ValueError, match="Email is required"):
            Customer(user_id="u-1", email="")
