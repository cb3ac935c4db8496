"""
DynamoDB implementation of LicenseRepository port.

A license is stored twice: the ``LICENSE#{id}`` / ``DETAILS`` record, and
a ``USER#{userId}`` / ``LICENSE#{id}`` link used for ownership checks.
"""
from dataclasses import fields
from typing import Any, Dict, List, Optional

from asgiref.sync import sync_to_async
from botocore.exceptions import ClientError

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
    to_dynamo,
    update_item,
)
from licenses.domain.license_record import LicenseRecord
from licenses.ports.license_repository import LicenseRepository

DETAILS_SK = "DETAILS"
LICENSE_FIELDS = tuple(f.name for f in fields(LicenseRecord))


def _pk(license_id: str) -> str:
    return f"LICENSE#{license_id}"


class DynamoDBLicenseRepository(LicenseRepository):
    """DynamoDB adapter for license records."""

    def _to_domain(self, item: Dict[str, Any]) -> LicenseRecord:
        """
        Convert a table item to a domain entity.

        Args:
            item: DynamoDB item

        Returns:
            LicenseRecord domain entity
        """
        values = {name: item.get(attribute_name(name)) for name in LICENSE_FIELDS}
        values["keygen_license_id"] = item.get("keygenLicenseId") or item["PK"][len("LICENSE#"):]
        values["user_id"] = values["user_id"] or ""
        values["status"] = values["status"] or "active"
        values["activated_devices"] = max(0, int(item.get("activatedDevices") or 0))
        return LicenseRecord(**values)

    @sync_to_async
    def get(self, license_id: str) -> Optional[LicenseRecord]:
        item = get_item(_pk(license_id), DETAILS_SK)
        return self._to_domain(item) if item else None

    @sync_to_async
    def find_by_key(self, license_key: str) -> Optional[LicenseRecord]:
        items = query(f"LICENSE_KEY#{license_key}", sk_prefix="LICENSE", index=GSI2, limit=1)
        return self._to_domain(items[0]) if items else None

    @sync_to_async
    def create(self, record: LicenseRecord) -> LicenseRecord:
        now = now_iso()
        item = {
            "PK": _pk(record.keygen_license_id),
            "SK": DETAILS_SK,
            "GSI1PK": f"USER#{record.user_id}",
            "GSI1SK": _pk(record.keygen_license_id),
            "GSI2PK": f"LICENSE_KEY#{record.license_key}",
            "GSI2SK": "LICENSE",
        }
        for name in LICENSE_FIELDS:
            item[attribute_name(name)] = getattr(record, name)
        item.update({"activatedDevices": 0, "createdAt": now, "updatedAt": now})

        table = get_table()
        table.put_item(Item=to_dynamo(item))
        table.put_item(
            Item=to_dynamo(
                {
                    "PK": f"USER#{record.user_id}",
                    "SK": _pk(record.keygen_license_id),
                    "keygenLicenseId": record.keygen_license_id,
                    "status": record.status,
                    "createdAt": now,
                }
            )
        )
        return self._to_domain(item)

    def _update_existing(
        self, license_id: str, attributes: Dict[str, Any]
    ) -> Optional[LicenseRecord]:
        try:
            item = update_item(
                {"PK": _pk(license_id), "SK": DETAILS_SK},
                attributes,
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                return None
            raise
        return self._to_domain(item)

    @sync_to_async
    def update_status(
        self, license_id: str, status: str, extra: Optional[Dict[str, Any]] = None
    ) -> Optional[LicenseRecord]:
        return self._update_existing(license_id, {"status": status, **(extra or {})})

    @sync_to_async
    def update(self, license_id: str, updates: Dict[str, Any]) -> Optional[LicenseRecord]:
        return self._update_existing(license_id, camelize(updates))

    @sync_to_async
    def find_by_user(self, user_id: str) -> List[LicenseRecord]:
        items = query(f"USER#{user_id}", sk_prefix="LICENSE#", index=GSI1)
        return [self._to_domain(item) for item in items]

    @sync_to_async
    def user_owns_license(self, user_id: str, license_id: str) -> bool:
        return get_item(f"USER#{user_id}", _pk(license_id)) is not None
