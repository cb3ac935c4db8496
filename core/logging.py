"""
Structured request logging for API views.

``ApiLogger`` binds a service name, operation and correlation id to every
record so a single request can be followed across log lines, and runs all
metadata through ``sanitize_metadata`` before it reaches a handler.
"""

import logging
import re
import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

SENSITIVE_KEY_PATTERN = re.compile(
    r"(authorization|bearer|password|secret|api[_-]?key|cookie|token|session|license[_-]?key)",
    re.IGNORECASE,
)
MAX_VALUE_LENGTH = 500
MAX_DEPTH = 4
MAX_LIST_ITEMS = 20

CORRELATION_HEADERS = ("HTTP_X_CORRELATION_ID", "HTTP_X_REQUEST_ID", "HTTP_X_HIC_PROBE_ID")
RESERVED_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys() | {"message", "asctime"}
)


def _sanitize_value(key: str, value: Any, depth: int) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if depth <= 0:
        return "..."
    if isinstance(value, dict):
        return sanitize_metadata(value, depth - 1)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(key, item, depth - 1) for item in list(value)[:MAX_LIST_ITEMS]]
    if SENSITIVE_KEY_PATTERN.search(key):
        return "[REDACTED]"
    # Strip newlines so a value cannot forge extra log lines
    return str(value).replace("\r", " ").replace("\n", " ")[:MAX_VALUE_LENGTH]


def sanitize_metadata(metadata: Optional[Dict[str, Any]], depth: int = MAX_DEPTH) -> Dict[str, Any]:
    """
    Redact and truncate log metadata.

    Args:
        metadata: Arbitrary key/value pairs
        depth: Remaining nesting depth

    Returns:
        A new dict safe to attach to a log record
    """
    if not isinstance(metadata, dict):
        return {}
    return {
        str(key): _sanitize_value(str(key), value, depth)
        for key, value in metadata.items()
        if value is not None
    }


def get_correlation_id(request) -> str:
    """Correlation id from the request headers, or a fresh one."""
    existing = getattr(request, "correlation_id", None)
    if existing:
        return existing
    meta = getattr(request, "META", {}) or {}
    for header in CORRELATION_HEADERS:
        value = meta.get(header)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return str(uuid.uuid4())


class ApiLogger:
    """Per-request structured logger."""

    def __init__(self, service: str, request=None, operation: Optional[str] = None):
        if not service:
            raise ValueError("ApiLogger requires a service name")
        self.service = service
        self.operation = operation
        self.correlation_id = get_correlation_id(request) if request is not None else str(uuid.uuid4())
        self._logger = logging.getLogger(f"api.{service}")
        self._base = {
            "service": service,
            "operation": operation,
            "correlation_id": self.correlation_id,
        }
        if request is not None:
            meta = getattr(request, "META", {}) or {}
            self._base.update(
                {
                    "method": getattr(request, "method", None),
                    "path": getattr(request, "path", None),
                    "has_authorization_header": bool(meta.get("HTTP_AUTHORIZATION")),
                }
            )

    def _extra(self, event: str, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        fields = {**self._base, "event": event}
        for key, value in sanitize_metadata(extra or {}).items():
            # LogRecord refuses extras that shadow its own attributes
            fields[f"ctx_{key}" if key in RESERVED_RECORD_KEYS else key] = value
        return fields

    def request_received(self, **extra):
        self._logger.info("API request received", extra=self._extra("request_received", extra))

    def decision(self, event: str, message: str, **extra):
        """Log a business rejection or branch taken, with its reason."""
        self._logger.info(message, extra=self._extra(event, extra))

    def response(self, status_code: int, message: str, **extra):
        extra["status_code"] = status_code
        level = logging.ERROR if status_code >= 500 else logging.INFO
        self._logger.log(level, message, extra=self._extra("response", extra))

    def info(self, event: str, message: str, **extra):
        self._logger.info(message, extra=self._extra(event, extra))

    def warn(self, event: str, message: str, **extra):
        self._logger.warning(message, extra=self._extra(event, extra))

    def exception(self, event: str, message: str, error: BaseException, **extra):
        extra["error_type"] = type(error).__name__
        extra["error_message"] = str(error)
        self._logger.error(message, extra=self._extra(event, extra), exc_info=error)
