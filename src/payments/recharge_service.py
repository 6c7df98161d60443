from typing import Any, Dict, Optional
from decimal import Decimal
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from src.exceptions import FareSettlementError, NotFound
from src.payments.schemas import PaymentWebhook
from src.payments.webhook import WebhookSignatureVerifier
from src.trips.stores import LedgerStores

logger = logging.getLogger(__name__)


class RechargeService:
    """Credits rider balances from payment provider callbacks.

    Callbacks that are unsigned, of another event type, not a successful
    payment, malformed, for an unknown rider or already recorded are dropped
    without error, so provider retries are harmless. The payment id is the
    idempotency key: it is stored as the credit transaction's reference_id,
    which is unique.
    """

    def __init__(self, db: Session, verifier: Optional[WebhookSignatureVerifier] = None):
        self.db = db
        self.stores = LedgerStores(db)
        self.verifier = verifier or WebhookSignatureVerifier()

    def process(self, payload: Dict[str, Any], signature: Optional[str]) -> Optional[int]:
        """Apply a callback; returns the credit transaction id, or None when dropped"""
        if not self.verifier.verify(payload, signature):
            logger.info("Recharge dropped: invalid webhook signature")
            return None

        try:
            webhook = PaymentWebhook.model_validate(payload)
        except ValidationError as e:
            logger.info("Recharge dropped: malformed payload (%d errors)", e.error_count())
            return None

        if not webhook.is_payment_status_change:
            logger.info("Recharge dropped: event %s is not a payment status change", webhook.event.name)
            return None

        if not webhook.is_successful_payment:
            logger.info(
                "Recharge dropped: payment %s not successful (transaction %s, invoice %s)",
                webhook.data.transaction.payment_id,
                webhook.data.transaction.status,
                webhook.data.invoice.status
            )
            return None

        try:
            rider_id = int(webhook.data.invoice.external_identifier)
        except ValueError:
            logger.info("Recharge dropped: invoice identifier %r is not a user id",
                        webhook.data.invoice.external_identifier)
            return None

        return self.credit(
            rider_id=rider_id,
            amount=webhook.data.amount.value_in_base_currency,
            payment_id=webhook.data.transaction.payment_id,
            payment_method=webhook.data.transaction.payment_method
        )

    def credit(
        self,
        rider_id: int,
        amount: Decimal,
        payment_id: str,
        payment_method: Optional[str] = None
    ) -> Optional[int]:
        """Record a credit once per payment id and add it to the available balance"""
        if self.stores.transactions.find_by_reference_id(payment_id) is not None:
            logger.info("Recharge dropped: payment %s already recorded", payment_id)
            return None

        try:
            self.stores.accounts.get_balance(rider_id)
        except NotFound:
            logger.info("Recharge dropped: user %s not found for payment %s", rider_id, payment_id)
            return None

        try:
            with self.stores.atomic("recharge"):
                transaction = self.stores.transactions.insert(
                    rider_id=rider_id,
                    amount=amount,
                    is_debit=False,
                    is_hold=False,
                    reference_id=payment_id,
                    payment_method=payment_method
                )
                transaction_id = transaction.id
                self.stores.accounts.adjust_balance(
                    rider_id,
                    available_delta=amount,
                    holding_delta=Decimal("0")
                )
        except FareSettlementError as e:
            # A concurrent delivery of the same payment loses on reference_id
            logger.warning("Recharge dropped: payment %s not applied: %s", payment_id, e.message)
            return None

        logger.info("Credited %s to user %s for payment %s", amount, rider_id, payment_id)
        return transaction_id
