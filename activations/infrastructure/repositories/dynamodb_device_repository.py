"""
DynamoDB implementation of DeviceRepository port.

Devices live under their license partition (``LICENSE#{id}`` /
``DEVICE#{machineId}``). The license record's ``activatedDevices`` counter
moves with every add and remove and is never taken below zero.
"""
from typing import Any, Dict, List, Optional

from asgiref.sync import sync_to_async
from botocore.exceptions import ClientError

from activations.domain.device import Device
from activations.ports.device_repository import DeviceRepository
from core.infrastructure.dynamodb import (
    get_table,
    is_conditional_check_failure,
    now_iso,
    query,
    to_dynamo,
)


def _license_pk(license_id: str) -> str:
    return f"LICENSE#{license_id}"


def _device_key(license_id: str, machine_id: str) -> Dict[str, str]:
    return {"PK": _license_pk(license_id), "SK": f"DEVICE#{machine_id}"}


class DynamoDBDeviceRepository(DeviceRepository):
    """DynamoDB adapter for devices."""

    def _to_domain(self, item: Dict[str, Any]) -> Device:
        return Device(
            license_id=item["PK"][len("LICENSE#"):],
            keygen_machine_id=item.get("keygenMachineId") or item["SK"][len("DEVICE#"):],
            fingerprint=item.get("fingerprint"),
            name=item.get("name"),
            platform=item.get("platform"),
            last_seen_at=item.get("lastSeenAt"),
            user_id=item.get("userId"),
            user_email=item.get("userEmail"),
            created_at=item.get("createdAt"),
        )

    def _to_item(self, device: Device) -> Dict[str, Any]:
        return to_dynamo(
            {
                **_device_key(device.license_id, device.keygen_machine_id),
                "keygenLicenseId": device.license_id,
                "keygenMachineId": device.keygen_machine_id,
                "fingerprint": device.fingerprint,
                "name": device.name,
                "platform": device.platform,
                "lastSeenAt": device.last_seen_at,
                "userId": device.user_id,
                "userEmail": device.user_email,
                "createdAt": device.created_at,
            }
        )

    def _adjust_counter(self, license_id: str, delta: int) -> None:
        """Move the license's activatedDevices counter, skipping unknown licenses."""
        params: Dict[str, Any] = {
            "Key": {"PK": _license_pk(license_id), "SK": "DETAILS"},
            "ExpressionAttributeValues": {":delta": delta, ":zero": 0, ":now": now_iso()},
        }
        if delta > 0:
            params["UpdateExpression"] = (
                "SET activatedDevices = if_not_exists(activatedDevices, :zero) + :delta, "
                "updatedAt = :now"
            )
            params["ConditionExpression"] = "attribute_exists(PK)"
        else:
            params["UpdateExpression"] = (
                "SET activatedDevices = activatedDevices + :delta, updatedAt = :now"
            )
            params["ConditionExpression"] = "attribute_exists(PK) AND activatedDevices > :zero"
        try:
            get_table().update_item(**params)
        except ClientError as e:
            if not is_conditional_check_failure(e):
                raise

    @sync_to_async
    def list_for_license(self, license_id: str) -> List[Device]:
        items = query(_license_pk(license_id), sk_prefix="DEVICE#")
        return [self._to_domain(item) for item in items]

    @sync_to_async
    def find_by_fingerprint(self, license_id: str, fingerprint: str) -> Optional[Device]:
        for item in query(_license_pk(license_id), sk_prefix="DEVICE#"):
            if item.get("fingerprint") == fingerprint:
                return self._to_domain(item)
        return None

    @sync_to_async
    def add(self, device: Device) -> Device:
        table = get_table()
        try:
            table.put_item(
                Item=self._to_item(device),
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as e:
            if not is_conditional_check_failure(e):
                raise
            # Same machine recorded again: refresh it, do not count it twice
            table.update_item(
                Key=_device_key(device.license_id, device.keygen_machine_id),
                UpdateExpression="SET lastSeenAt = :seen",
                ExpressionAttributeValues={":seen": device.last_seen_at or now_iso()},
            )
            return device
        self._adjust_counter(device.license_id, 1)
        return device

    @sync_to_async
    def remove(self, license_id: str, machine_id: str) -> bool:
        response = get_table().delete_item(
            Key=_device_key(license_id, machine_id), ReturnValues="ALL_OLD"
        )
        if not response.get("Attributes"):
            return False
        self._adjust_counter(license_id, -1)
        return True

    @sync_to_async
    def update_last_seen(
        self, license_id: str, machine_id: str, user_id: Optional[str] = None
    ) -> bool:
        expression = "SET lastSeenAt = :seen"
        values: Dict[str, Any] = {":seen": now_iso()}
        if user_id:
            expression += ", userId = :user"
            values[":user"] = user_id
        try:
            get_table().update_item(
                Key=_device_key(license_id, machine_id),
                UpdateExpression=expression,
                ExpressionAttributeValues=values,
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                return False
            raise
        return True
