"""
Fixtures for the organization tests: a five-seat organization with an
owner, an admin and a member.
"""
import pytest
import pytest_asyncio

from core.domain.identity import CognitoUser
from licenses.domain.customer import Customer
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from organizations.domain.organization import Organization, OrgMember
from organizations.infrastructure.repositories.dynamodb_organization_repository import (
    DynamoDBOrganizationRepository,
)

ORG_ID = "cus_org"


def business_user(user_id, role, email=None, **fields):
    return CognitoUser(
        user_id=user_id,
        email=email or f"{user_id}@example.com",
        account_type="business",
        org_id=ORG_ID,
        role=role,
        **fields,
    )


@pytest.fixture
def organization_repository(dynamodb_table):
    return DynamoDBOrganizationRepository()


@pytest.fixture
def customer_repository(dynamodb_table):
    return DynamoDBCustomerRepository()


@pytest_asyncio.fixture
async def organization(organization_repository, customer_repository):
    org = await organization_repository.upsert(
        Organization.for_subscription(
            ORG_ID, "owner-1", "owner-1@example.com", seats=5, stripe_subscription_id="sub_org"
        )
    )
    for member_id, role in (("owner-1", "owner"), ("admin-1", "admin"), ("mem-1", "member")):
        await organization_repository.add_member(
            OrgMember(
                org_id=ORG_ID,
                member_id=member_id,
                email=f"{member_id}@example.com",
                role=role,
                name=member_id,
            )
        )
    await customer_repository.upsert(
        Customer(
            user_id="owner-1",
            email="owner-1@example.com",
            account_type="business",
            stripe_customer_id=ORG_ID,
            stripe_subscription_id="sub_org",
            org_id=ORG_ID,
            org_role="owner",
            name="Olivia Owner",
        )
    )
    return org


@pytest.fixture
def owner():
    return business_user("owner-1", "owner")


@pytest.fixture
def admin():
    return business_user("admin-1", "admin")


@pytest.fixture
def member():
    return business_user("mem-1", "member")
