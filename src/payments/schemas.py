from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal

PAYMENT_STATUS_CHANGED_CODE = 1
PAYMENT_STATUS_CHANGED_NAME = "PAYMENT_STATUS_CHANGED"

class WebhookEvent(BaseModel):
    code: int = Field(alias="Code")
    name: str = Field(alias="Name")

    class Config:
        populate_by_name = True

class WebhookInvoice(BaseModel):
    id: str = Field(alias="Id")
    status: str = Field(alias="Status")
    external_identifier: str = Field(alias="ExternalIdentifier")

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True

class WebhookTransaction(BaseModel):
    id: Optional[str] = Field(None, alias="Id")
    status: str = Field(alias="Status")
    payment_id: str = Field(alias="PaymentId")
    payment_method: Optional[str] = Field(None, alias="PaymentMethod")

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True

class WebhookAmount(BaseModel):
    value_in_base_currency: Decimal = Field(alias="ValueInBaseCurrency", gt=0)

    class Config:
        populate_by_name = True

class WebhookData(BaseModel):
    invoice: WebhookInvoice = Field(alias="Invoice")
    transaction: WebhookTransaction = Field(alias="Transaction")
    amount: WebhookAmount = Field(alias="Amount")

    class Config:
        populate_by_name = True

class PaymentWebhook(BaseModel):
    """Payment provider status-change callback"""
    event: WebhookEvent = Field(alias="Event")
    data: WebhookData = Field(alias="Data")

    class Config:
        populate_by_name = True

    @property
    def is_payment_status_change(self) -> bool:
        return (
            self.event.code == PAYMENT_STATUS_CHANGED_CODE
            and self.event.name == PAYMENT_STATUS_CHANGED_NAME
        )

    @property
    def is_successful_payment(self) -> bool:
        return self.data.transaction.status == "SUCCESS" and self.data.invoice.status == "PAID"

class WebhookAck(BaseModel):
    success: bool = True
