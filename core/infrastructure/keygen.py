"""
Keygen API adapter.

Implements KeygenGateway over the Keygen JSON:API using ``requests``.
Every call is synchronous under the hood and exposed as a coroutine via
``sync_to_async``, matching the repository adapters.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests
from asgiref.sync import sync_to_async
from django.conf import settings

from core.metrics import upstream_errors_total, upstream_request_duration_seconds
from core.ports.keygen_gateway import (
    HeartbeatResult,
    KeygenError,
    KeygenGateway,
    KeygenLicense,
    KeygenMachine,
    KeygenValidation,
)

logger = logging.getLogger(__name__)

KEYGEN_API_BASE = "https://api.keygen.sh/v1/accounts"
JSON_API = "application/vnd.api+json"


def _to_license(data: Dict[str, Any]) -> KeygenLicense:
    attributes = data.get("attributes", {}) or {}
    policy = (data.get("relationships", {}) or {}).get("policy", {}) or {}
    return KeygenLicense(
        id=data["id"],
        key=attributes.get("key"),
        status=attributes.get("status"),
        expires_at=attributes.get("expiry"),
        max_machines=attributes.get("maxMachines"),
        policy_id=(policy.get("data") or {}).get("id"),
        uses=attributes.get("uses"),
        metadata=attributes.get("metadata") or {},
    )


def _to_machine(data: Dict[str, Any]) -> KeygenMachine:
    attributes = data.get("attributes", {}) or {}
    return KeygenMachine(
        id=data["id"],
        fingerprint=attributes.get("fingerprint"),
        name=attributes.get("name"),
        platform=attributes.get("platform"),
        created_at=attributes.get("created"),
        last_heartbeat=attributes.get("lastHeartbeat"),
    )


class KeygenClient(KeygenGateway):
    """HTTP adapter for the Keygen API."""

    def __init__(
        self,
        account_id: Optional[str] = None,
        product_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.account_id = account_id or settings.KEYGEN_ACCOUNT_ID
        self._product_token = product_token
        self.session = session or requests.Session()
        self.timeout = timeout or getattr(settings, "KEYGEN_TIMEOUT", 10)

    @property
    def base_url(self) -> str:
        return f"{KEYGEN_API_BASE}/{self.account_id}"

    @property
    def product_token(self) -> str:
        if self._product_token:
            return self._product_token
        from core.infrastructure.secrets import get_secret

        return get_secret("KEYGEN_PRODUCT_TOKEN")

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Perform a Keygen request.

        Returns:
            Parsed JSON body, or None for empty (204) responses

        Raises:
            KeygenError: For any non-2xx response
        """
        headers = {
            "Authorization": f"Bearer {self.product_token}",
            "Content-Type": JSON_API,
            "Accept": JSON_API,
        }
        start = time.time()
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            upstream_errors_total.labels(service="keygen", operation=operation).inc()
            raise KeygenError(status=503, detail=f"Keygen unreachable: {e}") from e
        finally:
            upstream_request_duration_seconds.labels(
                service="keygen", operation=operation
            ).observe(time.time() - start)

        body = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None

        if not response.ok:
            upstream_errors_total.labels(service="keygen", operation=operation).inc()
            errors = (body or {}).get("errors", []) if isinstance(body, dict) else []
            detail = (errors[0].get("detail") if errors else None) or "Keygen API error"
            logger.warning(
                "Keygen request failed",
                extra={
                    "operation": operation,
                    "status_code": response.status_code,
                    "keygen_error_code": errors[0].get("code") if errors else None,
                },
            )
            raise KeygenError(status=response.status_code, detail=detail, errors=errors)
        return body

    # Licenses

    def _create_license(self, policy_id: str, name: str, metadata: Dict[str, Any]) -> KeygenLicense:
        body = self._request(
            "POST",
            "/licenses",
            "create_license",
            json={
                "data": {
                    "type": "licenses",
                    "attributes": {"name": name, "metadata": metadata},
                    "relationships": {
                        "policy": {"data": {"type": "policies", "id": policy_id}}
                    },
                }
            },
        )
        return _to_license(body["data"])

    async def create_license(
        self, policy_id: str, name: str, metadata: Dict[str, Any]
    ) -> KeygenLicense:
        return await sync_to_async(self._create_license)(policy_id, name, metadata)

    def _get_license(self, license_id: str) -> KeygenLicense:
        body = self._request("GET", f"/licenses/{license_id}", "get_license")
        return _to_license(body["data"])

    async def get_license(self, license_id: str) -> KeygenLicense:
        return await sync_to_async(self._get_license)(license_id)

    def _get_licenses_by_email(self, email: str) -> List[KeygenLicense]:
        try:
            body = self._request(
                "GET",
                "/licenses",
                "get_licenses_by_email",
                params={"metadata[email]": email.lower()},
            )
        except KeygenError:
            return []
        return [_to_license(item) for item in (body or {}).get("data", [])]

    async def get_licenses_by_email(self, email: str) -> List[KeygenLicense]:
        return await sync_to_async(self._get_licenses_by_email)(email)

    def _validate_license(self, key: str, fingerprint: Optional[str]) -> KeygenValidation:
        meta: Dict[str, Any] = {"key": key}
        if fingerprint:
            meta["scope"] = {"fingerprint": fingerprint}
        try:
            body = self._request(
                "POST", "/licenses/actions/validate-key", "validate_license", json={"meta": meta}
            )
        except KeygenError as e:
            return KeygenValidation(
                valid=False,
                code=e.code or "UNKNOWN_ERROR",
                detail=e.detail,
                license=None,
            )
        result = body.get("meta", {}) or {}
        data = body.get("data")
        return KeygenValidation(
            valid=bool(result.get("valid")),
            code=result.get("code"),
            detail=result.get("detail"),
            license=_to_license(data) if data else None,
        )

    async def validate_license(self, key: str, fingerprint: Optional[str] = None) -> KeygenValidation:
        return await sync_to_async(self._validate_license)(key, fingerprint)

    async def suspend_license(self, license_id: str) -> None:
        await sync_to_async(self._request)(
            "POST", f"/licenses/{license_id}/actions/suspend", "suspend_license"
        )

    async def reinstate_license(self, license_id: str) -> None:
        await sync_to_async(self._request)(
            "POST", f"/licenses/{license_id}/actions/reinstate", "reinstate_license"
        )

    async def revoke_license(self, license_id: str) -> None:
        await sync_to_async(self._request)("DELETE", f"/licenses/{license_id}", "revoke_license")

    def _update_license_metadata(self, license_id: str, metadata: Dict[str, Any]) -> KeygenLicense:
        body = self._request(
            "PATCH",
            f"/licenses/{license_id}",
            "update_license_metadata",
            json={"data": {"type": "licenses", "attributes": {"metadata": metadata}}},
        )
        return _to_license(body["data"])

    async def update_license_metadata(
        self, license_id: str, metadata: Dict[str, Any]
    ) -> KeygenLicense:
        return await sync_to_async(self._update_license_metadata)(license_id, metadata)

    # Machines

    def _activate_device(
        self,
        license_id: str,
        fingerprint: str,
        name: str,
        platform: str,
        metadata: Optional[Dict[str, Any]],
    ) -> KeygenMachine:
        body = self._request(
            "POST",
            "/machines",
            "activate_device",
            json={
                "data": {
                    "type": "machines",
                    "attributes": {
                        "fingerprint": fingerprint,
                        "name": name,
                        "platform": platform,
                        "metadata": metadata or {},
                    },
                    "relationships": {
                        "license": {"data": {"type": "licenses", "id": license_id}}
                    },
                }
            },
        )
        return _to_machine(body["data"])

    async def activate_device(
        self,
        license_id: str,
        fingerprint: str,
        name: str,
        platform: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> KeygenMachine:
        return await sync_to_async(self._activate_device)(
            license_id, fingerprint, name, platform, metadata
        )

    async def deactivate_device(self, machine_id: str) -> None:
        await sync_to_async(self._request)("DELETE", f"/machines/{machine_id}", "deactivate_device")

    def _get_license_machines(self, license_id: str) -> List[KeygenMachine]:
        body = self._request(
            "GET", "/machines", "get_license_machines", params={"license": license_id}
        )
        return [_to_machine(item) for item in (body or {}).get("data", [])]

    async def get_license_machines(self, license_id: str) -> List[KeygenMachine]:
        return await sync_to_async(self._get_license_machines)(license_id)

    def _machine_heartbeat(self, machine_id: str) -> HeartbeatResult:
        try:
            self._request("POST", f"/machines/{machine_id}/actions/ping", "machine_heartbeat")
        except KeygenError as e:
            return HeartbeatResult(success=False, error=e.detail)
        return HeartbeatResult(success=True)

    async def machine_heartbeat(self, machine_id: str) -> HeartbeatResult:
        return await sync_to_async(self._machine_heartbeat)(machine_id)

    def _checkout_license(self, license_id: str, ttl: int) -> Dict[str, Any]:
        body = self._request(
            "POST",
            f"/licenses/{license_id}/actions/check-out",
            "checkout_license",
            json={"meta": {"ttl": ttl, "include": ["license", "entitlements"]}},
        )
        return body.get("data", {})

    async def checkout_license(self, license_id: str, ttl: int = 86400) -> Dict[str, Any]:
        return await sync_to_async(self._checkout_license)(license_id, ttl)

    def get_policy_id(self, plan_type: str) -> str:
        policies = {
            "individual": settings.KEYGEN_POLICY_INDIVIDUAL,
            "business": settings.KEYGEN_POLICY_BUSINESS,
        }
        if plan_type not in policies:
            raise ValueError(f"Unknown plan type: {plan_type}")
        return policies[plan_type]
