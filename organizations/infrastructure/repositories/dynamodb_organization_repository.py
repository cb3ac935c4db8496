"""
DynamoDB implementation of OrganizationRepository port.

An organization partition ``ORG#{orgId}`` holds the ``DETAILS`` item plus
one ``MEMBER#{memberId}`` and one ``INVITE#{inviteId}`` item per member and
invite. GSI1 finds an organization by Stripe customer and a member's
organization by user id; GSI2 finds an invite by token.
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
from organizations.domain.organization import Organization, OrgInvite, OrgMember
from organizations.ports.organization_repository import OrganizationRepository

DETAILS_SK = "DETAILS"
MEMBER_PREFIX = "MEMBER#"
INVITE_PREFIX = "INVITE#"


def _pk(org_id: str) -> str:
    return f"ORG#{org_id}"


def _from_item(entity_type, item: Dict[str, Any]):
    return entity_type(
        **{f.name: item.get(attribute_name(f.name)) for f in fields(entity_type)
           if item.get(attribute_name(f.name)) is not None}
    )


def _to_attributes(entity) -> Dict[str, Any]:
    return {attribute_name(f.name): getattr(entity, f.name) for f in fields(entity)}


class DynamoDBOrganizationRepository(OrganizationRepository):
    """DynamoDB adapter for organizations, members and invites."""

    @sync_to_async
    def get(self, org_id: str) -> Optional[Organization]:
        item = get_item(_pk(org_id), DETAILS_SK)
        return self._to_organization(item) if item else None

    @sync_to_async
    def find_by_stripe_customer(self, stripe_customer_id: str) -> Optional[Organization]:
        items = query(f"STRIPE#{stripe_customer_id}", sk_prefix="ORG", index=GSI1, limit=1)
        return self._to_organization(items[0]) if items else None

    def _to_organization(self, item: Dict[str, Any]) -> Organization:
        names = (f.name for f in fields(Organization))
        values = {name: item.get(attribute_name(name)) for name in names}
        values["org_id"] = values["org_id"] or item["PK"][len("ORG#"):]
        values["name"] = values["name"] or ""
        values["seat_limit"] = int(values["seat_limit"] or 0)
        values["owner_id"] = values["owner_id"] or ""
        return Organization(**values)

    @sync_to_async
    def upsert(self, organization: Organization) -> Organization:
        existing = get_item(_pk(organization.org_id), DETAILS_SK)
        now = now_iso()
        item = {
            "PK": _pk(organization.org_id),
            "SK": DETAILS_SK,
            **_to_attributes(organization),
            "createdAt": (existing or {}).get("createdAt") or organization.created_at or now,
            "updatedAt": now,
        }
        if organization.stripe_customer_id:
            item.update({"GSI1PK": f"STRIPE#{organization.stripe_customer_id}", "GSI1SK": "ORG"})
        get_table().put_item(Item=to_dynamo(item))
        return self._to_organization(item)

    @sync_to_async
    def update_seat_limit(self, org_id: str, seat_limit: int) -> None:
        update_item({"PK": _pk(org_id), "SK": DETAILS_SK}, {"seatLimit": seat_limit})

    @sync_to_async
    def list_members(self, org_id: str) -> List[OrgMember]:
        return [_from_item(OrgMember, item) for item in query(_pk(org_id), sk_prefix=MEMBER_PREFIX)]

    @sync_to_async
    def get_member(self, org_id: str, member_id: str) -> Optional[OrgMember]:
        item = get_item(_pk(org_id), f"{MEMBER_PREFIX}{member_id}")
        return _from_item(OrgMember, item) if item else None

    @sync_to_async
    def find_membership(self, user_id: str) -> Optional[OrgMember]:
        items = query(f"USER#{user_id}", sk_prefix="ORG#", index=GSI1, limit=1)
        return _from_item(OrgMember, items[0]) if items else None

    @sync_to_async
    def add_member(self, member: OrgMember) -> OrgMember:
        now = now_iso()
        item = {
            "PK": _pk(member.org_id),
            "SK": f"{MEMBER_PREFIX}{member.member_id}",
            "GSI1PK": f"USER#{member.member_id}",
            "GSI1SK": _pk(member.org_id),
            **_to_attributes(member),
            "joinedAt": member.joined_at or now,
            "updatedAt": now,
        }
        item["email"] = member.email.lower()
        get_table().put_item(Item=to_dynamo(item))
        return _from_item(OrgMember, item)

    @sync_to_async
    def update_member(self, org_id: str, member_id: str, **changes) -> Optional[OrgMember]:
        try:
            item = update_item(
                {"PK": _pk(org_id), "SK": f"{MEMBER_PREFIX}{member_id}"},
                camelize(changes),
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if is_conditional_check_failure(e):
                return None
            raise
        return _from_item(OrgMember, item)

    @sync_to_async
    def remove_member(self, org_id: str, member_id: str) -> bool:
        response = get_table().delete_item(
            Key={"PK": _pk(org_id), "SK": f"{MEMBER_PREFIX}{member_id}"},
            ReturnValues="ALL_OLD",
        )
        return bool(response.get("Attributes"))

    @sync_to_async
    def list_pending_invites(self, org_id: str) -> List[OrgInvite]:
        invites = [
            _from_item(OrgInvite, item) for item in query(_pk(org_id), sk_prefix=INVITE_PREFIX)
        ]
        return [invite for invite in invites if invite.is_pending]

    def _put_invite(self, invite: OrgInvite) -> OrgInvite:
        item = {
            "PK": _pk(invite.org_id),
            "SK": f"{INVITE_PREFIX}{invite.invite_id}",
            "GSI2PK": f"INVITE_TOKEN#{invite.token}",
            "GSI2SK": "INVITE",
            **_to_attributes(invite),
            "updatedAt": now_iso(),
        }
        get_table().put_item(Item=to_dynamo(item))
        return invite

    @sync_to_async
    def create_invite(self, invite: OrgInvite) -> OrgInvite:
        return self._put_invite(invite)

    @sync_to_async
    def save_invite(self, invite: OrgInvite) -> OrgInvite:
        return self._put_invite(invite)

    @sync_to_async
    def find_invite_by_token(self, token: str) -> Optional[OrgInvite]:
        items = query(f"INVITE_TOKEN#{token}", sk_prefix="INVITE", index=GSI2, limit=1)
        return _from_item(OrgInvite, items[0]) if items else None

    @sync_to_async
    def delete_invite(self, org_id: str, invite_id: str) -> None:
        get_table().delete_item(Key={"PK": _pk(org_id), "SK": f"{INVITE_PREFIX}{invite_id}"})
