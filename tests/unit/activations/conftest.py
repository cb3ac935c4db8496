"""
Fixtures shared by the activation tests.
"""
import pytest

from activations.infrastructure.repositories.dynamodb_device_repository import (
    DynamoDBDeviceRepository,
)
from activations.infrastructure.repositories.dynamodb_version_repository import (
    DynamoDBVersionRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from trials.infrastructure.repositories.dynamodb_trial_repository import DynamoDBTrialRepository


@pytest.fixture
def device_repository(dynamodb_table):
    return DynamoDBDeviceRepository()


@pytest.fixture
def license_repository(dynamodb_table):
    return DynamoDBLicenseRepository()


@pytest.fixture
def trial_repository(dynamodb_table):
    return DynamoDBTrialRepository()


@pytest.fixture
def version_repository(dynamodb_table):
    return DynamoDBVersionRepository()
