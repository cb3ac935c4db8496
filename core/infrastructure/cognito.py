"""
AWS Cognito integration.

``CognitoTokenVerifier`` verifies Cognito ID tokens against the user pool's
JWKS with PyJWT. ``CognitoAdmin`` manages the pool groups that mirror
organization roles.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

import boto3
import jwt
import requests
from asgiref.sync import sync_to_async
from botocore.exceptions import ClientError
from django.conf import settings

from core.ports.identity_admin import IdentityAdmin

logger = logging.getLogger(__name__)


def get_bearer_token(request) -> Optional[str]:
    """Extract the Bearer token from the Authorization header."""
    auth = request.META.get("HTTP_AUTHORIZATION", "")
    if auth.startswith("Bearer "):
        token = auth[7:].strip()
        return token or None
    return None


class CognitoTokenVerifier:
    """Verifies Cognito ID tokens (RS256, issuer, audience, token_use)."""

    def __init__(
        self,
        user_pool_id: Optional[str] = None,
        client_id: Optional[str] = None,
        region: Optional[str] = None,
        jwks: Optional[Dict[str, Any]] = None,
        jwks_ttl: Optional[int] = None,
    ):
        self.user_pool_id = user_pool_id or settings.COGNITO_USER_POOL_ID
        self.client_id = client_id or settings.COGNITO_CLIENT_ID
        self.region = region or settings.COGNITO_REGION
        self.jwks_ttl = jwks_ttl or getattr(settings, "COGNITO_JWKS_CACHE_TTL", 3600)
        self._jwks = jwks
        self._jwks_fetched_at = time.monotonic() if jwks else 0.0
        self._pinned = jwks is not None
        self._lock = threading.Lock()

    @property
    def issuer(self) -> str:
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    def _get_jwks(self) -> Dict[str, Any]:
        """Fetch and cache the pool's JWKS."""
        if self._pinned:
            return self._jwks
        now = time.monotonic()
        if self._jwks and (now - self._jwks_fetched_at) < self.jwks_ttl:
            return self._jwks
        with self._lock:
            response = requests.get(f"{self.issuer}/.well-known/jwks.json", timeout=5)
            response.raise_for_status()
            self._jwks = response.json()
            self._jwks_fetched_at = now
        return self._jwks

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify an ID token and return its claims.

        Args:
            token: Raw JWT

        Returns:
            Claims dict, or None if the token is not a valid ID token for this pool
        """
        if not token or not self.user_pool_id or not self.client_id:
            return None
        try:
            jwk_set = jwt.PyJWKSet.from_dict(self._get_jwks())
            kid = jwt.get_unverified_header(token).get("kid")

            signing_key = None
            for key in jwk_set.keys:
                if key.key_id == kid:
                    signing_key = key
                    break
            if not signing_key:
                logger.warning("No matching JWK for token", extra={"kid": kid})
                return None

            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                audience=self.client_id,
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("Invalid token: %s", e)
            return None
        except requests.RequestException as e:
            logger.error("Failed to fetch Cognito JWKS", extra={"error": str(e)})
            return None
        except (jwt.PyJWKSetError, jwt.PyJWKError, ValueError) as e:
            logger.error("Unusable Cognito JWKS", extra={"error": str(e)})
            return None

        if claims.get("token_use") != "id":
            logger.debug("Rejected non-ID token", extra={"token_use": claims.get("token_use")})
            return None
        return claims


class CognitoAdmin(IdentityAdmin):
    """User pool group management."""

    def __init__(self, user_pool_id: Optional[str] = None, client=None):
        self.user_pool_id = user_pool_id or settings.COGNITO_USER_POOL_ID
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("cognito-idp", region_name=settings.COGNITO_REGION)
        return self._client

    @staticmethod
    def group_for_role(role: str) -> str:
        return f"mouse-{role}"

    def _assign_role(self, username: str, role: str) -> bool:
        try:
            self.client.admin_add_user_to_group(
                UserPoolId=self.user_pool_id,
                Username=username,
                GroupName=self.group_for_role(role),
            )
            return True
        except ClientError as e:
            logger.error(
                "Failed to add user to Cognito group",
                extra={"role": role, "error": str(e)},
            )
            return False

    def _remove_role(self, username: str, role: str) -> bool:
        try:
            self.client.admin_remove_user_from_group(
                UserPoolId=self.user_pool_id,
                Username=username,
                GroupName=self.group_for_role(role),
            )
            return True
        except ClientError as e:
            logger.error(
                "Failed to remove user from Cognito group",
                extra={"role": role, "error": str(e)},
            )
            return False

    async def assign_role(self, username: str, role: str) -> bool:
        return await sync_to_async(self._assign_role)(username, role)

    async def remove_role(self, username: str, role: str) -> bool:
        return await sync_to_async(self._remove_role)(username, role)
