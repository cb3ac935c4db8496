"""
Secret lookup.

When ``APP_SECRETS_ARN`` is configured, secrets come from a JSON document in
AWS Secrets Manager, cached for ``SECRETS_CACHE_TTL`` seconds. Otherwise, or
when a key is missing from the document, the Django setting of the same
name is used.
"""

import json
import logging
import threading
import time
from typing import Dict, Optional

import boto3
from botocore.exceptions import ClientError
from django.conf import settings

logger = logging.getLogger(__name__)

_cache: Dict[str, str] = {}
_cache_time = 0.0
_lock = threading.Lock()


def _load_secret_document() -> Dict[str, str]:
    global _cache, _cache_time

    ttl = getattr(settings, "SECRETS_CACHE_TTL", 300)
    if _cache and (time.time() - _cache_time) < ttl:
        return _cache

    with _lock:
        client = boto3.client("secretsmanager", region_name=settings.AWS_REGION)
        try:
            response = client.get_secret_value(SecretId=settings.APP_SECRETS_ARN)
        except ClientError as e:
            logger.error("Failed to retrieve application secrets", extra={"error": str(e)})
            return _cache
        try:
            document = json.loads(response.get("SecretString") or "{}")
        except json.JSONDecodeError:
            logger.error("Application secret is not a JSON document")
            document = {}
        _cache = {k: v for k, v in document.items() if isinstance(v, str)}
        _cache_time = time.time()
        return _cache


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Resolve a secret by name.

    Args:
        name: Secret name, e.g. STRIPE_SECRET_KEY
        default: Returned when neither source has a value

    Returns:
        Secret value
    """
    if getattr(settings, "APP_SECRETS_ARN", None):
        value = _load_secret_document().get(name)
        if value:
            return value
    return getattr(settings, name, None) or default
