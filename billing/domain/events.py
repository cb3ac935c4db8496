"""
Billing domain events.
"""
from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent


class PaymentFailed(DomainEvent):
    """Event raised when Stripe reports a failed renewal payment."""

    payload_fields = ("user_id", "attempt_count", "retry_date")

    def __init__(
        self,
        user_id: str,
        email: Optional[str],
        attempt_count: int,
        retry_date: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize PaymentFailed event.

        Args:
            user_id: Customer user id
            email: Address the dunning email goes to
            attempt_count: Stripe's attempt counter for the invoice
            retry_date: Next retry, formatted for display
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=user_id, occurred_at=occurred_at)
        self.user_id = user_id
        self.email = email
        self.attempt_count = attempt_count
        self.retry_date = retry_date


class DisputeOpened(DomainEvent):
    """Event raised when a charge is disputed."""

    payload_fields = ("dispute_id", "amount", "currency", "reason")

    def __init__(
        self,
        dispute_id: str,
        customer_email: Optional[str],
        amount: Optional[int],
        currency: Optional[str],
        reason: Optional[str],
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=dispute_id, occurred_at=occurred_at)
        self.dispute_id = dispute_id
        self.customer_email = customer_email
        self.amount = amount
        self.currency = currency
        self.reason = reason
