# brokerdesk/api/v1/endpoints/payments.py

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import json

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.exceptions import ValidationError
from brokerdesk.core.logging_config import payments_logger
from brokerdesk.core.security import get_current_user
from brokerdesk.dependencies.payment_gateway import PaymentGatewayClient, get_payment_gateway, verify_signature
from brokerdesk.dependencies.redis_client import get_optional_redis_client
from brokerdesk.schemas.payment import InvoiceRequest, InvoiceResponse, PaymentWebhook, WebhookAck
from brokerdesk.services import payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
):
    """Opens a Pending deposit and returns the gateway page where the client pays it."""
    result = await payment_service.create_invoice(db, current_user, data, gateway)
    await db.commit()
    return result


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    x_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    """
    Gateway callback. The body must be signed with HMAC-SHA256 of the raw
    bytes in the ``X-Signature`` header.
    """
    raw_body = await request.body()
    if not verify_signature(raw_body, x_signature):
        payments_logger.warning("Rejected webhook with missing or invalid signature")
        raise ValidationError("Invalid signature")

    try:
        payload = PaymentWebhook.model_validate(json.loads(raw_body))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        payments_logger.warning(f"Malformed webhook body: {e}")
        raise ValidationError("Malformed webhook payload")

    result = await payment_service.handle_webhook(db, payload, redis_client=redis_client)
    await db.commit()
    return WebhookAck(**result)
