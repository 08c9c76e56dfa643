# brokerdesk/schemas/payment.py

from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional


class InvoiceRequest(BaseModel):
    account_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=10, description="Defaults to the trading account currency")


class InvoiceResponse(BaseModel):
    deposit_id: int
    invoice_id: str
    payment_url: str


class PaymentWebhook(BaseModel):
    """Callback body posted by the payment gateway."""
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: str = Field(..., alias="invoiceId")
    invoice_status: str = Field(..., alias="invoiceStatus")
    invoice_value: Decimal = Field(..., gt=0, max_digits=14, alias="invoiceValue")
    customer_reference: str = Field(..., alias="customerReference")


class WebhookAck(BaseModel):
    received: bool = True
    deposit_id: Optional[int] = None
    status: Optional[str] = None
    duplicate: bool = False
