"""
Customer repository port (interface).

This defines the contract for customer profile persistence.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from licenses.domain.customer import Customer


class CustomerRepository(ABC):
    """
    Abstract repository for Customer entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def find_by_user_id(self, user_id: str) -> Optional[Customer]:
        """
        Find a customer by user id.

        Args:
            user_id: Cognito sub, or a temporary ``email:`` id

        Returns:
            Customer entity or None if not found
        """
        pass

    @abstractmethod
    async def find_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[Customer]:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Customer]:
        """
        Find a customer by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            Customer entity or None if not found
        """
        pass

    @abstractmethod
    async def upsert(self, customer: Customer) -> Customer:
        """
        Write the whole profile, keeping the original creation time.

        Args:
            customer: Customer entity to save

        Returns:
            Saved customer entity
        """
        pass

    @abstractmethod
    async def update(self, user_id: str, updates: Dict[str, Any]) -> Customer:
        """
        Update selected profile attributes.

        Args:
            user_id: Customer user id
            updates: Snake-case attribute names to new values

        Returns:
            Updated customer entity
        """
        pass

    @abstractmethod
    async def find_for_email_job(
        self, subscription_status: str, date_field: str, start: str, end: str
    ) -> List[Customer]:
        """
        Find customers in a subscription status whose date attribute falls in a range.

        Args:
            subscription_status: e.g. ``trialing`` or ``canceled``
            date_field: Snake-case date attribute, e.g. ``current_period_end``
            start: Inclusive ISO lower bound
            end: Inclusive ISO upper bound
        """
        pass

    @abstractmethod
    async def mark_email_sent(self, user_id: str, email_type: str, sent_at: str) -> None:
        pass
