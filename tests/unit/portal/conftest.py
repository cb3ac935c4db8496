"""
Fixtures for the portal tests: an individual subscriber with a license.
"""
import pytest
import pytest_asyncio

from activations.infrastructure.repositories.dynamodb_device_repository import (
    DynamoDBDeviceRepository,
)
from core.domain.identity import CognitoUser
from licenses.domain.customer import Customer
from licenses.domain.license_record import LicenseRecord
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from organizations.infrastructure.repositories.dynamodb_organization_repository import (
    DynamoDBOrganizationRepository,
)

LICENSE_KEY = "MOUSE-ABCD-1234-WXYZ-0000"


@pytest.fixture
def customer_repository(dynamodb_table):
    return DynamoDBCustomerRepository()


@pytest.fixture
def license_repository(dynamodb_table):
    return DynamoDBLicenseRepository()


@pytest.fixture
def device_repository(dynamodb_table):
    return DynamoDBDeviceRepository()


@pytest.fixture
def organization_repository(dynamodb_table):
    return DynamoDBOrganizationRepository()


@pytest.fixture
def user():
    return CognitoUser(user_id="u-1", email="jane@example.com", name="Jane", email_verified=True)


@pytest_asyncio.fixture
async def subscriber(customer_repository, license_repository):
    """Active individual customer owning license lic-1."""
    await license_repository.create(
        LicenseRecord.create(
            "lic-1",
            "u-1",
            LICENSE_KEY,
            "policy-individual",
            3,
            email="jane@example.com",
            plan_name="Individual",
            expires_at="2030-01-01T00:00:00+00:00",
        )
    )
    return await customer_repository.upsert(
        Customer(
            user_id="u-1",
            email="jane@example.com",
            stripe_customer_id="cus_1",
            stripe_subscription_id="sub_1",
            keygen_license_id="lic-1",
            keygen_license_key=LICENSE_KEY,
            account_type="individual",
            subscription_status="active",
        )
    )
