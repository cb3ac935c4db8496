"""
Customer lookup for portal requests.
"""
from typing import Optional

from core.domain.identity import CognitoUser
from licenses.domain.customer import Customer
from licenses.ports.customer_repository import CustomerRepository


async def find_customer(
    customer_repository: CustomerRepository, user: CognitoUser
) -> Optional[Customer]:
    """
    Find the caller's customer profile.

    Profiles written by a Stripe checkout before the buyer first signed in
    are keyed by email, so the email index is the fallback.
    """
    customer = await customer_repository.find_by_user_id(user.user_id)
    if not customer and user.email:
        customer = await customer_repository.find_by_email(user.email)
    return customer
