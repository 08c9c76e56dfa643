# brokerdesk/dependencies/payment_gateway.py

"""
Client for the external payment gateway (MyFatoorah-style invoice API) and
verification of its signed callbacks.
"""

from dataclasses import dataclass
from decimal import Decimal
import hashlib
import hmac
import logging

import httpx

from brokerdesk.core.config import get_settings
from brokerdesk.core.logging_config import payments_logger

logger = logging.getLogger(__name__)

settings = get_settings()


class PaymentGatewayError(Exception):
    pass


@dataclass
class Invoice:
    invoice_id: str
    payment_url: str


class PaymentGatewayClient:
    def __init__(self, base_url: str, api_key: str, timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def create_invoice(
        self,
        *,
        amount: Decimal,
        currency: str,
        customer_reference: str,
        customer_name: str,
        customer_email: str,
        callback_url: str,
    ) -> Invoice:
        request_body = {
            "InvoiceValue": str(amount),
            "DisplayCurrencyIso": currency,
            "CustomerReference": customer_reference,
            "CustomerName": customer_name,
            "CustomerEmail": customer_email,
            "CallBackUrl": callback_url,
            "ErrorUrl": callback_url,
            "NotificationOption": "LNK",
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payments_logger.info(f"Creating invoice for reference {customer_reference}: {amount} {currency}")

        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            try:
                res = await client.post("/v2/SendPayment", headers=headers, json=request_body)
                res.raise_for_status()
            except httpx.HTTPStatusError as e:
                payments_logger.error(f"Gateway rejected invoice for reference {customer_reference}: {e.response.text}")
                raise PaymentGatewayError("Payment gateway rejected the invoice request") from e
            except httpx.HTTPError as e:
                payments_logger.error(f"Gateway unreachable for reference {customer_reference}: {e}")
                raise PaymentGatewayError("Payment gateway unavailable") from e

        data = res.json().get("Data") or {}
        invoice_id = data.get("InvoiceId")
        payment_url = data.get("InvoiceURL")
        if invoice_id is None or not payment_url:
            payments_logger.error(f"Unexpected gateway response for reference {customer_reference}: {res.text[:500]}")
            raise PaymentGatewayError("Payment gateway returned an incomplete invoice")
        return Invoice(invoice_id=str(invoice_id), payment_url=payment_url)


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(bytes(secret, "utf-8"), msg=raw_body, digestmod=hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str | None, secret: str | None = None) -> bool:
    secret = secret if secret is not None else settings.PAYMENT_WEBHOOK_SECRET
    if not secret:
        logger.error("PAYMENT_WEBHOOK_SECRET is not configured; every webhook is rejected")
        return False
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(raw_body, secret), signature)


def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient(
        settings.PAYMENT_GATEWAY_BASE_URL,
        settings.PAYMENT_GATEWAY_API_KEY,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
    )
