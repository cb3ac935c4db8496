"""
DynamoDB single-table access.

All entities share one table keyed by ``PK``/``SK`` with two overloaded
global secondary indexes (``GSI1PK``/``GSI1SK`` and ``GSI2PK``/``GSI2SK``).
Repositories go through ``get_table`` and the helpers below rather than
creating their own boto3 resources.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

import boto3
from boto3.dynamodb.conditions import Key
from django.conf import settings

logger = logging.getLogger(__name__)

GSI1 = "GSI1"
GSI2 = "GSI2"


@lru_cache(maxsize=1)
def get_dynamodb_resource():
    """Shared boto3 DynamoDB resource."""
    kwargs = {"region_name": settings.AWS_REGION}
    if getattr(settings, "DYNAMODB_ENDPOINT_URL", None):
        kwargs["endpoint_url"] = settings.DYNAMODB_ENDPOINT_URL
    return boto3.resource("dynamodb", **kwargs)


def get_table():
    """The application table."""
    return get_dynamodb_resource().Table(settings.DYNAMODB_TABLE_NAME)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def from_dynamo(value: Any) -> Any:
    """Convert DynamoDB ``Decimal`` values back to int/float, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    if isinstance(value, set):
        return {from_dynamo(v) for v in value}
    return value


def to_dynamo(value: Any) -> Any:
    """Convert floats to ``Decimal`` and drop ``None`` map values for boto3."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def build_update_expression(
    updates: Dict[str, Any], touch: bool = True
) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    """
    Build a ``SET`` update expression from a dict of attribute values.

    Args:
        updates: Attribute name to new value
        touch: Also set ``updatedAt`` to now

    Returns:
        Tuple of (expression, attribute names, attribute values)
    """
    fields = dict(updates)
    if touch:
        fields["updatedAt"] = now_iso()

    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    parts: List[str] = []
    for index, (name, value) in enumerate(fields.items()):
        names[f"#f{index}"] = name
        values[f":v{index}"] = to_dynamo(value)
        parts.append(f"#f{index} = :v{index}")
    return "SET " + ", ".join(parts), names, values


def update_item(key: Dict[str, str], updates: Dict[str, Any], **kwargs) -> Dict[str, Any]:
    """Apply a dynamic ``SET`` update and return the new item."""
    expression, names, values = build_update_expression(updates)
    response = get_table().update_item(
        Key=key,
        UpdateExpression=expression,
        ExpressionAttributeNames=names,
        ExpressionAttributeValues=values,
        ReturnValues="ALL_NEW",
        **kwargs,
    )
    return from_dynamo(response.get("Attributes", {}))


def get_item(pk: str, sk: str) -> Optional[Dict[str, Any]]:
    response = get_table().get_item(Key={"PK": pk, "SK": sk})
    item = response.get("Item")
    return from_dynamo(item) if item else None


def query(
    pk: str,
    sk_prefix: Optional[str] = None,
    index: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Query a partition, optionally narrowed by sort-key prefix.

    Follows ``LastEvaluatedKey`` until the partition (or ``limit``) is exhausted.
    """
    pk_name = f"{index}PK" if index else "PK"
    sk_name = f"{index}SK" if index else "SK"
    condition = Key(pk_name).eq(pk)
    if sk_prefix:
        condition = condition & Key(sk_name).begins_with(sk_prefix)

    params: Dict[str, Any] = {"KeyConditionExpression": condition}
    if index:
        params["IndexName"] = index
    if limit:
        params["Limit"] = limit

    items: List[Dict[str, Any]] = []
    table = get_table()
    while True:
        response = table.query(**params)
        items.extend(from_dynamo(item) for item in response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key or (limit and len(items) >= limit):
            break
        params["ExclusiveStartKey"] = last_key
    return items[:limit] if limit else items


def scan(filter_expression, projection: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
    """Full-table scan with a filter. Only used by the scheduled jobs."""
    params: Dict[str, Any] = {"FilterExpression": filter_expression}
    if projection:
        params["ProjectionExpression"] = ", ".join(projection)
    items: List[Dict[str, Any]] = []
    table = get_table()
    while True:
        response = table.scan(**params)
        items.extend(from_dynamo(item) for item in response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            break
        params["ExclusiveStartKey"] = last_key
    return items


def is_conditional_check_failure(error) -> bool:
    """True when a botocore ClientError is a failed ConditionExpression."""
    response = getattr(error, "response", None) or {}
    return response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


TABLE_DEFINITION = {
    "KeySchema": [
        {"AttributeName": "PK", "KeyType": "HASH"},
        {"AttributeName": "SK", "KeyType": "RANGE"},
    ],
    "AttributeDefinitions": [
        {"AttributeName": name, "AttributeType": "S"}
        for name in ("PK", "SK", "GSI1PK", "GSI1SK", "GSI2PK", "GSI2SK")
    ],
    "GlobalSecondaryIndexes": [
        {
            "IndexName": index,
            "KeySchema": [
                {"AttributeName": f"{index}PK", "KeyType": "HASH"},
                {"AttributeName": f"{index}SK", "KeyType": "RANGE"},
            ],
            "Projection": {"ProjectionType": "ALL"},
        }
        for index in (GSI1, GSI2)
    ],
    "BillingMode": "PAY_PER_REQUEST",
}


def create_table(table_name: Optional[str] = None):
    """Create the application table. Used by local setup and tests."""
    name = table_name or settings.DYNAMODB_TABLE_NAME
    table = get_dynamodb_resource().create_table(TableName=name, **TABLE_DEFINITION)
    table.wait_until_exists()
    logger.info("Created DynamoDB table", extra={"table": name})
    return table


def attribute_name(field_name: str) -> str:
    """Table attribute for a snake_case field, e.g. ``stripe_customer_id`` -> ``stripeCustomerId``."""
    head, *rest = field_name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camelize(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {attribute_name(name): value for name, value in fields.items()}
