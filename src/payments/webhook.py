from typing import Any, Dict, Optional
import base64
import hashlib
import hmac
import logging

from src.config import settings

logger = logging.getLogger(__name__)

# Fields covered by the provider signature, in signing order
SIGNED_FIELDS = (
    ("Invoice.Id", ("Invoice", "Id")),
    ("Invoice.Status", ("Invoice", "Status")),
    ("Transaction.Status", ("Transaction", "Status")),
    ("Transaction.PaymentId", ("Transaction", "PaymentId")),
    ("Invoice.ExternalIdentifier", ("Invoice", "ExternalIdentifier")),
)


class WebhookSignatureVerifier:
    """Checks the HMAC-SHA256 signature the payment provider puts on callbacks.

    Fails closed: a missing secret, missing signature or malformed payload is
    treated as a bad signature.
    """

    def __init__(self, secret: Optional[str] = None):
        self.secret = secret if secret is not None else settings.WEBHOOK_SECRET

    @staticmethod
    def signature_string(payload: Dict[str, Any]) -> str:
        data = payload["Data"]
        parts = []
        for label, (section, field) in SIGNED_FIELDS:
            value = data[section].get(field)
            parts.append(f"{label}={'' if value is None else value}")
        return ",".join(parts)

    def sign(self, payload: Dict[str, Any]) -> str:
        digest = hmac.new(
            self.secret.encode("utf-8"),
            self.signature_string(payload).encode("utf-8"),
            hashlib.sha256
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def verify(self, payload: Dict[str, Any], signature: Optional[str]) -> bool:
        if not signature:
            return False
        if not self.secret:
            logger.error("Webhook secret is not configured; rejecting callback")
            return False

        try:
            expected = self.sign(payload)
        except (KeyError, TypeError, AttributeError):
            logger.info("Webhook payload is missing signed fields")
            return False

        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
