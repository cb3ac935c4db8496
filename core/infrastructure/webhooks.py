"""
Webhook signature helpers.

Keygen signs deliveries with an HMAC-SHA256 hex digest of the raw body.
Stripe signatures are verified by the Stripe SDK in the Stripe adapter.
"""
import hashlib
import hmac
from typing import Union


class WebhookSignatureService:
    """HMAC-SHA256 signing and verification."""

    @staticmethod
    def generate_signature(payload: Union[str, bytes], secret: str) -> str:
        """
        Generate HMAC signature for webhook payload.

        Args:
            payload: Raw request body
            secret: Webhook secret

        Returns:
            HMAC SHA-256 signature (hex)
        """
        if isinstance(payload, str):
            payload = payload.encode()
        return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()

    @staticmethod
    def verify_signature(payload: Union[str, bytes], signature: str, secret: str) -> bool:
        """
        Verify webhook signature.

        Args:
            payload: Raw request body
            signature: Signature from the request header
            secret: Webhook secret

        Returns:
            True if signature is valid
        """
        if not signature:
            return False
        expected_signature = WebhookSignatureService.generate_signature(payload, secret)
        return hmac.compare_digest(expected_signature, signature.strip())
