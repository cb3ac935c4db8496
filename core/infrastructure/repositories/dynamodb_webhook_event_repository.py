"""
DynamoDB implementation of WebhookEventRepository.

Claims are conditional puts on ``WEBHOOK#{source}#{event_id}`` so that two
concurrent deliveries of the same event cannot both be processed.
"""

from datetime import datetime, timedelta, timezone

from asgiref.sync import sync_to_async
from botocore.exceptions import ClientError

from core.infrastructure.dynamodb import get_table, is_conditional_check_failure, now_iso
from core.ports.webhook_event_repository import WebhookEventRepository

CLAIM_TTL_DAYS = 90


def _key(source: str, event_id: str) -> dict:
    return {"PK": f"WEBHOOK#{source}#{event_id}", "SK": "EVENT"}


class DynamoDBWebhookEventRepository(WebhookEventRepository):
    """DynamoDB adapter for webhook idempotency claims."""

    def _claim_sync(self, source: str, event_id: str, event_type: str) -> bool:
        expires = datetime.now(timezone.utc) + timedelta(days=CLAIM_TTL_DAYS)
        try:
            get_table().put_item(
                Item={
                    **_key(source, event_id),
                    "source": source,
                    "eventId": event_id,
                    "eventType": event_type,
                    "status": "processing",
                    "claimedAt": now_iso(),
                    "ttl": int(expires.timestamp()),
                },
                ConditionExpression="attribute_not_exists(PK)",
            )
            return True
        except ClientError as e:
            if is_conditional_check_failure(e):
                return False
            raise

    async def claim(self, source: str, event_id: str, event_type: str) -> bool:
        return await sync_to_async(self._claim_sync)(source, event_id, event_type)

    async def release(self, source: str, event_id: str) -> None:
        await sync_to_async(get_table().delete_item)(Key=_key(source, event_id))

    async def mark_processed(self, source: str, event_id: str) -> None:
        await sync_to_async(get_table().update_item)(
            Key=_key(source, event_id),
            UpdateExpression="SET #s = :s, processedAt = :t",
            ExpressionAttributeNames={"#s": "status"},
            ExpressionAttributeValues={":s": "processed", ":t": now_iso()},
        )
