"""
In-memory fakes of the Keygen, Stripe and identity ports.

Each fake records the calls handlers make so tests can assert on them,
and exposes plain dicts/lists tests can seed directly.
"""

import itertools
import json
from typing import Any, Dict, List, Mapping, Optional

from core.domain.events import DomainEvent, EventHandler
from core.ports.identity_admin import IdentityAdmin
from core.ports.keygen_gateway import (
    HeartbeatResult,
    KeygenError,
    KeygenGateway,
    KeygenLicense,
    KeygenMachine,
    KeygenValidation,
)
from core.ports.stripe_gateway import (
    StripeGateway,
    StripeInvalidRequestError,
    StripeSignatureError,
)

VALID_STRIPE_SIGNATURE = "t=1,v1=valid"

POLICIES = {"individual": "policy-individual", "business": "policy-business"}


class FakeKeygen(KeygenGateway):
    """Keygen stand-in backed by dicts of licenses and machines."""

    def __init__(self):
        self.licenses: Dict[str, KeygenLicense] = {}
        self.machines: Dict[str, Dict[str, Any]] = {}
        self.validations: Dict[str, KeygenValidation] = {}
        self.heartbeat_failures: Dict[str, str] = {}
        self.activation_error: Optional[KeygenError] = None
        self.calls: List[tuple] = []
        self._ids = itertools.count(1)

    def add_license(self, license_id: str, key: str, **fields) -> KeygenLicense:
        lic = KeygenLicense(id=license_id, key=key, **fields)
        self.licenses[license_id] = lic
        self.validations.setdefault(
            key, KeygenValidation(valid=True, code="VALID", detail="is valid", license=lic)
        )
        return lic

    def add_machine(
        self, license_id: str, machine_id: str, fingerprint: str, **fields
    ) -> None:
        self.machines[machine_id] = {
            "license_id": license_id,
            "machine": KeygenMachine(id=machine_id, fingerprint=fingerprint, **fields),
        }

    async def create_license(
        self, policy_id: str, name: str, metadata: Dict[str, Any]
    ) -> KeygenLicense:
        self.calls.append(("create_license", policy_id, name, metadata))
        license_id = f"lic_{next(self._ids)}"
        lic = KeygenLicense(
            id=license_id,
            key=f"KEY-{license_id.upper()}",
            status="ACTIVE",
            policy_id=policy_id,
            metadata=dict(metadata),
        )
        self.licenses[license_id] = lic
        return lic

    async def get_license(self, license_id: str) -> KeygenLicense:
        self.calls.append(("get_license", license_id))
        if license_id not in self.licenses:
            raise KeygenError(404, "Not found")
        return self.licenses[license_id]

    async def get_licenses_by_email(self, email: str) -> List[KeygenLicense]:
        self.calls.append(("get_licenses_by_email", email))
        return [lic for lic in self.licenses.values() if lic.metadata.get("email") == email]

    async def validate_license(
        self, key: str, fingerprint: Optional[str] = None
    ) -> KeygenValidation:
        self.calls.append(("validate_license", key, fingerprint))
        return self.validations.get(
            key, KeygenValidation(valid=False, code="NOT_FOUND", detail="does not exist")
        )

    async def suspend_license(self, license_id: str) -> None:
        self.calls.append(("suspend_license", license_id))

    async def reinstate_license(self, license_id: str) -> None:
        self.calls.append(("reinstate_license", license_id))

    async def revoke_license(self, license_id: str) -> None:
        self.calls.append(("revoke_license", license_id))

    async def update_license_metadata(
        self, license_id: str, metadata: Dict[str, Any]
    ) -> KeygenLicense:
        self.calls.append(("update_license_metadata", license_id, metadata))
        lic = self.licenses[license_id]
        lic.metadata.update(metadata)
        return lic

    async def activate_device(
        self,
        license_id: str,
        fingerprint: str,
        name: str,
        platform: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> KeygenMachine:
        self.calls.append(("activate_device", license_id, fingerprint, name, platform))
        if self.activation_error:
            raise self.activation_error
        machine_id = f"mach_{next(self._ids)}"
        self.add_machine(license_id, machine_id, fingerprint, name=name, platform=platform)
        return self.machines[machine_id]["machine"]

    async def deactivate_device(self, machine_id: str) -> None:
        self.calls.append(("deactivate_device", machine_id))
        if machine_id not in self.machines:
            raise KeygenError(404, "Machine not found")
        del self.machines[machine_id]

    async def get_license_machines(self, license_id: str) -> List[KeygenMachine]:
        self.calls.append(("get_license_machines", license_id))
        return [m["machine"] for m in self.machines.values() if m["license_id"] == license_id]

    async def machine_heartbeat(self, machine_id: str) -> HeartbeatResult:
        self.calls.append(("machine_heartbeat", machine_id))
        if machine_id in self.heartbeat_failures:
            return HeartbeatResult(success=False, error=self.heartbeat_failures[machine_id])
        return HeartbeatResult(success=True)

    async def checkout_license(self, license_id: str, ttl: int = 86400) -> Dict[str, Any]:
        self.calls.append(("checkout_license", license_id, ttl))
        return {"certificate": f"CERT-{license_id}", "ttl": ttl}

    def get_policy_id(self, plan_type: str) -> str:
        if plan_type not in POLICIES:
            raise ValueError(f"Unknown plan type: {plan_type}")
        return POLICIES[plan_type]

    def called(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeStripe(StripeGateway):
    """Stripe stand-in; objects are plain dicts shaped like the Stripe API."""

    def __init__(self):
        self.checkout_sessions: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.invoices: Dict[str, List[Dict[str, Any]]] = {}
        self.payment_methods: Dict[str, Dict[str, Any]] = {}
        self.promotion_codes: Dict[str, Dict[str, Any]] = {}
        self.created_sessions: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []

    def construct_event(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        if signature != VALID_STRIPE_SIGNATURE:
            raise StripeSignatureError("No signatures found matching the expected signature")
        return json.loads(payload)

    async def create_checkout_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        self.created_sessions.append(params)
        session_id = f"cs_test_{len(self.created_sessions)}"
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    async def retrieve_checkout_session(
        self, session_id: str, expand: Optional[List[str]] = None
    ) -> Mapping[str, Any]:
        if session_id not in self.checkout_sessions:
            raise StripeInvalidRequestError(f"No such checkout.session: {session_id}")
        return self.checkout_sessions[session_id]

    async def find_promotion_code(self, code: str) -> Optional[Mapping[str, Any]]:
        return self.promotion_codes.get(code)

    async def retrieve_customer(self, customer_id: str) -> Mapping[str, Any]:
        if customer_id not in self.customers:
            raise StripeInvalidRequestError(f"No such customer: {customer_id}")
        return self.customers[customer_id]

    async def list_subscriptions(
        self, customer_id: str, status: str = "all", limit: int = 10
    ) -> List[Mapping[str, Any]]:
        found = [
            sub
            for sub in self.subscriptions.values()
            if sub.get("customer") == customer_id and status in ("all", sub.get("status"))
        ]
        return found[:limit]

    async def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        if subscription_id not in self.subscriptions:
            raise StripeInvalidRequestError(f"No such subscription: {subscription_id}")
        return self.subscriptions[subscription_id]

    async def update_subscription(self, subscription_id: str, **params) -> Mapping[str, Any]:
        self.calls.append(("update_subscription", subscription_id, params))
        self.subscriptions[subscription_id].update(params)
        return self.subscriptions[subscription_id]

    async def update_subscription_quantity(
        self, subscription_id: str, item_id: str, quantity: int
    ) -> Mapping[str, Any]:
        self.calls.append(("update_subscription_quantity", subscription_id, item_id, quantity))
        subscription = self.subscriptions[subscription_id]
        for item in subscription["items"]["data"]:
            if item["id"] == item_id:
                item["quantity"] = quantity
        return subscription

    async def list_invoices(self, customer_id: str, limit: int = 10) -> Mapping[str, Any]:
        invoices = self.invoices.get(customer_id, [])
        return {"data": invoices[:limit], "has_more": len(invoices) > limit}

    async def retrieve_payment_method(self, payment_method_id: str) -> Mapping[str, Any]:
        return self.payment_methods[payment_method_id]

    async def create_billing_portal_session(
        self, customer_id: str, return_url: str
    ) -> Mapping[str, Any]:
        self.calls.append(("create_billing_portal_session", customer_id, return_url))
        return {"id": "bps_test", "url": f"https://billing.stripe.test/session/{customer_id}"}


class FakeIdentityAdmin(IdentityAdmin):
    """Records Cognito group changes."""

    def __init__(self):
        self.assigned: List[tuple] = []
        self.removed: List[tuple] = []

    async def assign_role(self, username: str, role: str) -> bool:
        self.assigned.append((username, role))
        return True

    async def remove_role(self, username: str, role: str) -> bool:
        self.removed.append((username, role))
        return True


class RecordingHandler(EventHandler):
    """Event handler that keeps every event it is given."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    async def handle(self, event: DomainEvent) -> None:
        self.events.append(event)
