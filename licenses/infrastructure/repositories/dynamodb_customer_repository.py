"""
DynamoDB implementation of CustomerRepository port.

Profiles live at ``USER#{userId}`` / ``PROFILE``. GSI1 indexes the Stripe
customer id and GSI2 the lowercased email.
"""
from dataclasses import fields
from typing import Any, Dict, List, Optional

from asgiref.sync import sync_to_async
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from core.domain.exceptions import CustomerNotFoundError
from core.infrastructure.dynamodb import (
    GSI1,
    GSI2,
    attribute_name,
    camelize,
    get_item,
    get_table,
    is_conditional_check_failure,
    now_iso,
    query,
    scan,
    to_dynamo,
    update_item,
)
from licenses.domain.customer import Customer
from licenses.ports.customer_repository import CustomerRepository

PROFILE_SK = "PROFILE"
CUSTOMER_FIELDS = tuple(f.name for f in fields(Customer))


def _pk(user_id: str) -> str:
    return f"USER#{user_id}"


def _index_keys(stripe_customer_id: Optional[str], email: Optional[str]) -> Dict[str, str]:
    keys = {}
    if stripe_customer_id:
        keys.update({"GSI1PK": f"STRIPE#{stripe_customer_id}", "GSI1SK": "CUSTOMER"})
    if email:
        keys.update({"GSI2PK": f"EMAIL#{email.lower()}", "GSI2SK": "USER"})
    return keys


class DynamoDBCustomerRepository(CustomerRepository):
    """DynamoDB adapter for customer profiles."""

    def _to_domain(self, item: Dict[str, Any]) -> Customer:
        """
        Convert a table item to a domain entity.

        Args:
            item: DynamoDB item

        Returns:
            Customer domain entity
        """
        values = {name: item.get(attribute_name(name)) for name in CUSTOMER_FIELDS}
        values["user_id"] = item.get("userId") or item["PK"][len("USER#"):]
        values["emails_sent"] = item.get("emailsSent") or {}
        values["cancel_at_period_end"] = bool(item.get("cancelAtPeriodEnd"))
        values["payment_failed_count"] = int(item.get("paymentFailedCount") or 0)
        values["fraudulent"] = bool(item.get("fraudulent"))
        values["seats"] = int(item["seats"]) if item.get("seats") is not None else None
        return Customer(**values)

    def _to_item(self, customer: Customer) -> Dict[str, Any]:
        item = {
            "PK": _pk(customer.user_id),
            "SK": PROFILE_SK,
            **_index_keys(customer.stripe_customer_id, customer.email),
        }
        for name in CUSTOMER_FIELDS:
            item[attribute_name(name)] = getattr(customer, name)
        return to_dynamo(item)

    @sync_to_async
    def find_by_user_id(self, user_id: str) -> Optional[Customer]:
        item = get_item(_pk(user_id), PROFILE_SK)
        return self._to_domain(item) if item else None

    @sync_to_async
    def find_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[Customer]:
        items = query(f"STRIPE#{stripe_customer_id}", sk_prefix="CUSTOMER", index=GSI1, limit=1)
        return self._to_domain(items[0]) if items else None

    @sync_to_async
    def find_by_email(self, email: str) -> Optional[Customer]:
        items = query(f"EMAIL#{email.lower()}", sk_prefix="USER", index=GSI2, limit=1)
        return self._to_domain(items[0]) if items else None

    @sync_to_async
    def upsert(self, customer: Customer) -> Customer:
        existing = get_item(_pk(customer.user_id), PROFILE_SK)
        now = now_iso()
        customer = customer.with_updates(
            created_at=(existing or {}).get("createdAt") or customer.created_at or now,
            updated_at=now,
        )
        get_table().put_item(Item=self._to_item(customer))
        return customer

    @sync_to_async
    def update(self, user_id: str, updates: Dict[str, Any]) -> Customer:
        attributes = camelize(updates)
        if "stripe_customer_id" in updates or "email" in updates:
            if "email" in updates and updates["email"]:
                attributes["email"] = updates["email"].lower()
            attributes.update(
                _index_keys(updates.get("stripe_customer_id"), updates.get("email"))
            )
        try:
            item = update_item(
                {"PK": _pk(user_id), "SK": PROFILE_SK},
                attributes,
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                raise CustomerNotFoundError() from e
            raise
        return self._to_domain(item)

    @sync_to_async
    def find_for_email_job(
        self, subscription_status: str, date_field: str, start: str, end: str
    ) -> List[Customer]:
        items = scan(
            Attr("SK").eq(PROFILE_SK)
            & Attr("subscriptionStatus").eq(subscription_status)
            & Attr(attribute_name(date_field)).between(start, end)
        )
        return [self._to_domain(item) for item in items]

    @sync_to_async
    def mark_email_sent(self, user_id: str, email_type: str, sent_at: str) -> None:
        table = get_table()
        key = {"PK": _pk(user_id), "SK": PROFILE_SK}
        table.update_item(
            Key=key,
            UpdateExpression="SET emailsSent = if_not_exists(emailsSent, :empty)",
            ExpressionAttributeValues={":empty": {}},
        )
        table.update_item(
            Key=key,
            UpdateExpression="SET emailsSent.#type = :sent",
            ExpressionAttributeNames={"#type": email_type},
            ExpressionAttributeValues={":sent": sent_at},
        )
