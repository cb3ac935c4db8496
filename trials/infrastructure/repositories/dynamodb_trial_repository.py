"""
DynamoDB implementation of TrialRepository port.

Trials live at ``TRIAL#{fingerprint}`` / ``TRIAL#METADATA``.
"""
from typing import Any, Dict, Optional

from asgiref.sync import sync_to_async
from botocore.exceptions import ClientError

from core.infrastructure.dynamodb import get_item, get_table, is_conditional_check_failure
from trials.domain.trial import Trial
from trials.ports.trial_repository import DuplicateTrialError, TrialRepository

TRIAL_SK = "TRIAL#METADATA"


def _pk(fingerprint: str) -> str:
    return f"TRIAL#{fingerprint}"


class DynamoDBTrialRepository(TrialRepository):
    """DynamoDB adapter for trials."""

    def _to_domain(self, item: Dict[str, Any]) -> Trial:
        """
        Convert a table item to a domain entity.

        Args:
            item: DynamoDB item

        Returns:
            Trial domain entity
        """
        return Trial(
            fingerprint=item["fingerprint"],
            trial_token=item.get("trialToken", ""),
            issued_at=int(item.get("issuedAt") or item.get("createdAt")),
            expires_at=int(item["expiresAt"]),
            created_at=int(item.get("createdAt") or item.get("issuedAt")),
            last_heartbeat_at=item.get("lastHeartbeatAt"),
            machine_id=item.get("machineId"),
            session_id=item.get("sessionId"),
        )

    def _to_item(self, trial: Trial) -> Dict[str, Any]:
        return {
            "PK": _pk(trial.fingerprint),
            "SK": TRIAL_SK,
            "fingerprint": trial.fingerprint,
            "trialToken": trial.trial_token,
            "issuedAt": trial.issued_at,
            "expiresAt": trial.expires_at,
            "createdAt": trial.created_at,
        }

    @sync_to_async
    def find_by_fingerprint(self, fingerprint: str) -> Optional[Trial]:
        item = get_item(_pk(fingerprint), TRIAL_SK)
        return self._to_domain(item) if item else None

    @sync_to_async
    def create(self, trial: Trial) -> Trial:
        try:
            get_table().put_item(
                Item=self._to_item(trial),
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                raise DuplicateTrialError(trial.fingerprint) from e
            raise
        return trial

    @sync_to_async
    def record_heartbeat(
        self,
        fingerprint: str,
        at: int,
        machine_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        expression = "SET lastHeartbeatAt = :at"
        values: Dict[str, Any] = {":at": at}
        if machine_id:
            expression += ", machineId = :machine"
            values[":machine"] = machine_id
        if session_id:
            expression += ", sessionId = :session"
            values[":session"] = session_id
        get_table().update_item(
            Key={"PK": _pk(fingerprint), "SK": TRIAL_SK},
            UpdateExpression=expression,
            ExpressionAttributeValues=values,
            ConditionExpression="attribute_exists(PK)",
        )
