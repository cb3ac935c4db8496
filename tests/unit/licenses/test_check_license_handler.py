"""
Unit tests for CheckLicenseHandler.
"""
import pytest

from core.domain.exceptions import InvalidRequestError
from licenses.application.handlers.check_license_handler import CheckLicenseHandler
from licenses.application.queries.check_license import CheckLicenseQuery
from licenses.domain.customer import Customer
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)


@pytest.fixture
def customer_repository(dynamodb_table):
    return DynamoDBCustomerRepository()


@pytest.fixture
def handler(customer_repository, keygen):
    return CheckLicenseHandler(customer_repository=customer_repository, keygen=keygen)


@pytest.mark.asyncio
class TestCheckLicenseHandler:
    """Tests for CheckLicenseHandler."""

    async def test_active_customer_answers_locally(self, handler, customer_repository, keygen):
        """Test an active local customer is answered without Keygen."""
        await customer_repository.upsert(
            Customer(
                user_id="u-1",
                email="buyer@example.com",
                keygen_license_id="lic-1",
                keygen_license_key="KEY-1",
                account_type="business",
                subscription_status="active",
            )
        )

        body = (await handler.handle(CheckLicenseQuery(email="Buyer@Example.com"))).to_dict()

        assert body == {
            "status": "active",
            "licenseKey": "KEY-1",
            "licenseId": "lic-1",
            "plan": "business",
            "email": "buyer@example.com",
        }
        assert keygen.calls == []

    async def test_falls_back_to_keygen(self, handler, keygen):
        """Test Keygen metadata search prefers an active license."""
        keygen.add_license(
            "lic-old", "KEY-OLD", status="EXPIRED", metadata={"email": "buyer@example.com"}
        )
        keygen.add_license(
            "lic-new",
            "KEY-NEW",
            status="ACTIVE",
            policy_id="policy-business",
            expires_at="2030-01-01T00:00:00Z",
            metadata={"email": "buyer@example.com"},
        )

        body = (await handler.handle(CheckLicenseQuery(email="buyer@example.com"))).to_dict()

        assert body["status"] == "active"
        assert body["licenseId"] == "lic-new"
        assert body["plan"] == "business"
        assert body["expiresAt"] == "2030-01-01T00:00:00Z"

    async def test_no_license(self, handler):
        """Test unknown emails report status none."""
        body = (await handler.handle(CheckLicenseQuery(email="nobody@example.com"))).to_dict()
        assert body == {"status": "none", "licenseKey": None, "email": "nobody@example.com"}

    @pytest.mark.parametrize(
        "email,message",
        [("", "Email parameter is required"), ("not-an-email", "Invalid email format")],
    )
    async def test_bad_email(self, handler, email, message):
        """Test missing and malformed emails are rejected."""
        with pytest.raises(InvalidRequestError, match=message):
            await handler.handle(CheckLicenseQuery(email=email))
