"""
Payments Module

Balance top-ups delivered by the payment provider's status-change webhook.

Key Components:
- webhook.py: HMAC signature verification for provider callbacks
- recharge_service.py: Idempotent credit of verified, successful payments
- router.py: FastAPI webhook endpoint
- schemas.py: Pydantic models for the provider payload
"""

from .router import router
from .recharge_service import RechargeService
from .webhook import WebhookSignatureVerifier
from .schemas import PaymentWebhook, WebhookAck

__all__ = [
    "router",
    "RechargeService",
    "WebhookSignatureVerifier",
    "PaymentWebhook",
    "WebhookAck"
]
