"""
API exception handlers.

This module provides custom exception handling for REST API responses.
Domain exceptions carry their own response body; this module only picks the
status code and headers. Anything unexpected becomes a 500 whose body the
view can customise with a ``server_error_body`` attribute, either a dict or
a callable taking the exception, and per HTTP method with a
``server_error_bodies`` mapping.
"""

import logging
from typing import Any, Dict, Optional

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ParseError, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.domain.exceptions import (
    ActivationRejectedError,
    AuthenticationRequiredError,
    DomainException,
    InvalidRequestError,
    InvalidWebhookSignatureError,
    LicenseDataMissingError,
    LicenseValidationFailedError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    TrialExistsError,
    TrialExpiredError,
    UpstreamServiceError,
)
from core.infrastructure.rate_limit import rate_limit_headers

logger = logging.getLogger(__name__)

DEFAULT_SERVER_ERROR_BODY = {"error": "Internal server error"}

STATUS_BY_EXCEPTION = (
    (RateLimitExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (AuthenticationRequiredError, status.HTTP_401_UNAUTHORIZED),
    (InvalidWebhookSignatureError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TrialExistsError, status.HTTP_409_CONFLICT),
    (TrialExpiredError, status.HTTP_410_GONE),
    (ActivationRejectedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UpstreamServiceError, status.HTTP_502_BAD_GATEWAY),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
    (LicenseValidationFailedError, status.HTTP_400_BAD_REQUEST),
    (LicenseDataMissingError, status.HTTP_400_BAD_REQUEST),
)


def custom_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """Custom exception handler for REST API."""
    trace_id = _get_trace_id(context)

    if isinstance(exc, DomainException):
        response = _handle_domain_exception(exc, trace_id)
    elif isinstance(exc, ValidationError):
        response = Response(
            {"error": _first_validation_message(exc.detail)},
            status=status.HTTP_400_BAD_REQUEST,
        )
    elif isinstance(exc, ParseError):
        response = Response(
            {"error": "Invalid JSON", "detail": str(exc.detail)},
            status=status.HTTP_400_BAD_REQUEST,
        )
    elif isinstance(exc, APIException):
        response = exception_handler(exc, context)
        detail = response.data.get("detail", exc.default_detail) if response else exc.default_detail
        response = response or Response(status=exc.status_code)
        response.data = {"error": str(detail)}
    elif isinstance(exc, Http404):
        response = Response({"error": "Not found"}, status=status.HTTP_404_NOT_FOUND)
    else:
        return _handle_unexpected_exception(exc, context, trace_id)

    if trace_id:
        response["X-Trace-ID"] = trace_id
    return response


def _get_trace_id(context: Dict[str, Any]) -> Optional[str]:
    """Extract trace ID from request context."""
    request = context.get("request")
    if not request:
        return None
    return getattr(request, "trace_id", getattr(request, "correlation_id", None))


def _first_validation_message(detail: Any) -> str:
    """Flatten DRF validation detail to its first message."""
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_validation_message(value)
    if isinstance(detail, list) and detail:
        return _first_validation_message(detail[0])
    return str(detail) if detail else "Invalid request"


def _status_for(exc: DomainException) -> int:
    for exception_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exception_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _handle_domain_exception(exc: DomainException, trace_id: Optional[str]) -> Response:
    """Handle domain-specific exceptions."""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("Domain exception: %s - %s", exc.code, exc.message, extra={"trace_id": trace_id})
    else:
        logger.warning(
            "Domain exception: %s - %s", exc.code, exc.message, extra={"trace_id": trace_id}
        )

    response = Response(exc.to_payload(), status=status_code)
    if isinstance(exc, RateLimitExceededError):
        for header, value in rate_limit_headers(exc.result).items():
            response[header] = value
        response["Retry-After"] = str(exc.retry_after)
    return response


def _handle_unexpected_exception(
    exc: Exception, context: Dict[str, Any], trace_id: Optional[str]
) -> Response:
    """Handle unexpected or untracked exceptions."""
    logger.error("Unexpected error: %s", exc, extra={"trace_id": trace_id}, exc_info=True)
    view = context.get("view")
    request = context.get("request")
    by_method = getattr(view, "server_error_bodies", None) or {}
    body = (
        by_method.get(getattr(request, "method", None))
        or getattr(view, "server_error_body", None)
        or DEFAULT_SERVER_ERROR_BODY
    )
    if callable(body):
        body = body(exc)
    response = Response(dict(body), status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if trace_id:
        response["X-Trace-ID"] = trace_id
    return response
