"""
Domain exceptions.

Domain exceptions represent business rule violations
and domain-specific error conditions. Each carries the JSON body the
API returns for it, so handlers can raise instead of building responses.
"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    def __init__(self, message: str, code: str = None, details: Optional[Dict[str, Any]] = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Extra fields merged into the response body
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        """Render the exception as a response body."""
        return {"error": self.message, **self.details}


class InvalidRequestError(DomainException):
    """Raised when a request is missing fields or carries malformed values."""

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_REQUEST", details=details)


class InvalidFingerprintError(InvalidRequestError):
    """Raised when a device fingerprint fails validation."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.code = "INVALID_FINGERPRINT"
        self.reason = reason

    def to_payload(self) -> Dict[str, Any]:
        return {"error": "invalid_fingerprint", "reason": self.reason}


class InvalidLicenseKeyFormatError(InvalidRequestError):
    """Raised when a license key fails the format or checksum check."""

    def __init__(self, reason: str = "Invalid license key format"):
        super().__init__(reason)
        self.code = "INVALID_LICENSE_KEY"
        self.reason = reason

    def to_payload(self) -> Dict[str, Any]:
        return {"valid": False, "status": "invalid", "reason": self.reason}


class LicenseException(DomainException):
    """Base exception for license-related errors."""

    pass


class LicenseValidationFailedError(LicenseException):
    """Raised when Keygen refuses a license for activation."""

    def __init__(self, code: str, detail: Optional[str] = None):
        super().__init__(
            "License validation failed",
            code=code,
            details={"code": code, "detail": detail},
        )


class LicenseDataMissingError(LicenseException):
    """Raised when Keygen returns no license record to activate against."""

    def __init__(self):
        super().__init__(
            "License data unavailable",
            code="LICENSE_DATA_MISSING",
            details={
                "code": "LICENSE_DATA_MISSING",
                "detail": "Unable to retrieve license details for activation",
            },
        )


class ActivationRejectedError(LicenseException):
    """Raised when Keygen rejects a machine activation as unprocessable."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            "Activation failed",
            code="ACTIVATION_ERROR",
            details={"code": "ACTIVATION_ERROR", "detail": detail},
        )


class TrialException(DomainException):
    """Base exception for trial-related errors."""

    pass


class TrialExistsError(TrialException):
    """Raised when a device already holds a running trial."""

    def __init__(self, expires_at: str, remaining_days: int):
        super().__init__(
            "A trial has already been issued for this device",
            code="TRIAL_EXISTS",
            details={"expiresAt": expires_at, "remainingDays": remaining_days},
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"error": "trial_exists", "message": self.message, **self.details}


class TrialExpiredError(TrialException):
    """Raised when a device's trial has run out."""

    def __init__(self, expired_at: str):
        super().__init__(
            "Your trial period has ended",
            code="TRIAL_EXPIRED",
            details={"expiredAt": expired_at, "action": "purchase_required"},
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"error": "trial_expired", "message": self.message, **self.details}


class AuthenticationRequiredError(DomainException):
    """Raised when a route needs a Cognito identity and none was supplied."""

    def __init__(self, detail: Optional[str] = None, message: str = "Unauthorized"):
        details = {"detail": detail} if detail else {}
        super().__init__(message, code="UNAUTHORIZED", details=details)


class InvalidTokenError(AuthenticationRequiredError):
    """Raised when a bearer token is present but fails verification."""

    def __init__(self, detail: str = "Invalid or expired authentication token"):
        super().__init__(detail)
        self.code = "INVALID_TOKEN"


class InvalidWebhookSignatureError(DomainException):
    """Raised when a Keygen webhook signature does not match."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, code="INVALID_SIGNATURE")


class PermissionDeniedError(DomainException):
    """Raised when the caller is authenticated but not allowed."""

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="FORBIDDEN", details=details)


class LicenseOwnershipError(PermissionDeniedError):
    """Raised when a user acts on a license they do not own."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.code = "LICENSE_NOT_OWNED"


class NotFoundError(DomainException):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class CustomerNotFoundError(NotFoundError):
    """Raised when no customer record matches the caller."""

    def __init__(self, message: str = "Customer not found"):
        super().__init__(message)
        self.code = "CUSTOMER_NOT_FOUND"


class InviteNotFoundError(NotFoundError):
    """Raised when an invite token matches nothing."""

    def __init__(self, message: str = "Invite not found"):
        super().__init__(message)
        self.code = "INVITE_NOT_FOUND"


class MemberNotFoundError(NotFoundError):
    """Raised when an organization member is not found."""

    def __init__(self, message: str = "Member not found"):
        super().__init__(message)
        self.code = "MEMBER_NOT_FOUND"


class RateLimitExceededError(DomainException):
    """Raised when a caller exceeds a rate-limit preset."""

    def __init__(self, result: Dict[str, Any], body: Optional[Dict[str, Any]] = None):
        super().__init__("Rate limit exceeded", code="RATE_LIMIT_EXCEEDED")
        self.result = result
        self.body = body

    @property
    def retry_after(self) -> int:
        return self.result["retry_after"]

    def to_payload(self) -> Dict[str, Any]:
        if self.body is not None:
            return self.body
        return {
            "error": self.message,
            "retryAfter": self.result["retry_after"],
            "limit": self.result["limit"],
            "remaining": 0,
            "resetAt": self.result["reset_at_iso"],
        }


class UpstreamServiceError(DomainException):
    """Raised when Keygen or Stripe fails in a way the caller cannot fix."""

    def __init__(self, service: str, message: str, status: Optional[int] = None):
        super().__init__(message, code=f"{service.upper()}_ERROR")
        self.service = service
        self.status = status
