"""
Authenticated caller identity.

Built from verified Cognito ID token claims. Custom attributes carry the
account type, organization and role that portal routes authorize against.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CognitoUser:
    """Identity of the caller behind a verified ID token."""

    user_id: str
    email: Optional[str]
    name: Optional[str] = None
    email_verified: bool = False
    account_type: Optional[str] = None
    org_id: Optional[str] = None
    role: Optional[str] = None
    stripe_customer_id: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "CognitoUser":
        email = claims.get("email")
        return cls(
            user_id=claims["sub"],
            email=email.lower() if isinstance(email, str) else None,
            name=claims.get("name") or claims.get("given_name"),
            email_verified=bool(claims.get("email_verified")),
            account_type=claims.get("custom:account_type"),
            org_id=claims.get("custom:org_id"),
            role=claims.get("custom:role"),
            stripe_customer_id=claims.get("custom:stripe_customer_id"),
        )

    @property
    def is_business(self) -> bool:
        return self.account_type == "business"

    @property
    def is_org_admin(self) -> bool:
        return self.role in ("owner", "admin")
