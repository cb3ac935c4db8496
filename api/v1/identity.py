"""
Caller identity for API views.

``CognitoAuthenticationMiddleware`` verifies the bearer token once per
request; these helpers turn its result into a ``CognitoUser`` or the
right authentication error for the route.
"""

from typing import Optional

from core.domain.exceptions import AuthenticationRequiredError, InvalidTokenError
from core.domain.identity import CognitoUser


def optional_user(request, reject_invalid: bool = False) -> Optional[CognitoUser]:
    """
    The signed-in caller, if any.

    Args:
        request: DRF or Django request
        reject_invalid: Raise when a token was sent but failed verification

    Raises:
        InvalidTokenError: ``reject_invalid`` and the token is bad
    """
    claims = getattr(request, "cognito_claims", None)
    if claims:
        return CognitoUser.from_claims(claims)
    if reject_invalid and getattr(request, "auth_token_invalid", False):
        raise InvalidTokenError()
    return None


def current_user(request) -> CognitoUser:
    """
    The signed-in caller.

    Raises:
        AuthenticationRequiredError: No valid ID token on the request
    """
    user = optional_user(request)
    if user is None:
        raise AuthenticationRequiredError()
    return user
