"""
Cognito authentication middleware.

Resolves the caller's Cognito identity once per request. It never rejects
a request itself: routes differ on whether identity is required, optional
or forbidden to be invalid, so views decide using the attributes set here.
"""

import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse
from django.utils.deprecation import MiddlewareMixin

from core.infrastructure.cognito import CognitoTokenVerifier, get_bearer_token

logger = logging.getLogger(__name__)

_verifier: Optional[CognitoTokenVerifier] = None


def get_verifier() -> CognitoTokenVerifier:
    global _verifier
    if _verifier is None:
        _verifier = CognitoTokenVerifier()
    return _verifier


def set_verifier(verifier: Optional[CognitoTokenVerifier]) -> None:
    """Replace the process-wide verifier (tests inject one with a fixed JWKS)."""
    global _verifier
    _verifier = verifier


class CognitoAuthenticationMiddleware(MiddlewareMixin):
    """
    Middleware for Cognito ID token authentication.

    Sets on every request:
    - ``auth_header_present``: an Authorization header was sent
    - ``cognito_claims``: verified claims, or None
    - ``auth_token_invalid``: a bearer token was sent and failed verification
    """

    def process_request(self, request: HttpRequest) -> Optional[HttpResponse]:
        """
        Verify the bearer token, if any.

        Args:
            request: HTTP request

        Returns:
            None; the request always continues
        """
        request.auth_header_present = bool(request.META.get("HTTP_AUTHORIZATION"))
        request.cognito_claims = None
        request.auth_token_invalid = False

        if self._should_skip_auth(request.path):
            return None

        token = get_bearer_token(request)
        if not token:
            request.auth_token_invalid = request.auth_header_present
            return None

        claims = get_verifier().verify(token)
        if claims is None:
            request.auth_token_invalid = True
            logger.debug("Bearer token rejected", extra={"path": request.path})
        else:
            request.cognito_claims = claims
        return None

    def _should_skip_auth(self, path: str) -> bool:
        """
        Check if authentication should be skipped for this path.

        Args:
            path: Request path

        Returns:
            True if auth should be skipped
        """
        skip_paths = [
            "/health/",
            "/ready/",
            "/api/docs/",
            "/api/schema/",
            "/api/redoc/",
            "/api/webhooks/",
            "/static/",
        ]
        return any(path.startswith(skip) for skip in skip_paths)
