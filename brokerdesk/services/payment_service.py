# brokerdesk/services/payment_service.py

from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.config import get_settings
from brokerdesk.core.exceptions import BrokerDeskError, InvalidStateTransition, ValidationError
from brokerdesk.core.logging_config import payments_logger
from brokerdesk.crud import deposit as crud_deposit
from brokerdesk.database.models import DEPOSIT_COMPLETED, DEPOSIT_CREDITED_STATUSES, DEPOSIT_PENDING, User
from brokerdesk.dependencies.payment_gateway import PaymentGatewayClient, PaymentGatewayError
from brokerdesk.schemas.payment import InvoiceRequest, PaymentWebhook
from brokerdesk.services import deposit_service

settings = get_settings()

GATEWAY_MERCHANT = "Payment Gateway"
PAID_STATUSES = {"paid"}
FAILED_STATUSES = {"failed", "expired", "canceled", "cancelled"}


async def create_invoice(
    db: AsyncSession,
    user: User,
    data: InvoiceRequest,
    gateway: PaymentGatewayClient,
) -> dict:
    """Opens a Pending deposit and a gateway invoice that references it."""
    account = await deposit_service.get_owned_account(db, user, data.account_id)
    currency = deposit_service.account_currency(account, data.currency)
    deposit = await crud_deposit.create_deposit(
        db,
        user_id=user.id,
        account_id=account.id,
        merchant=GATEWAY_MERCHANT,
        amount=data.amount,
        currency=currency,
    )
    try:
        invoice = await gateway.create_invoice(
            amount=data.amount,
            currency=currency,
            customer_reference=str(deposit.id),
            customer_name=user.full_name,
            customer_email=user.email,
            callback_url=settings.PAYMENT_CALLBACK_URL,
        )
    except PaymentGatewayError as e:
        raise BrokerDeskError(str(e), status_code=502) from e

    deposit.transaction_id = invoice.invoice_id
    await db.flush()
    payments_logger.info(f"Invoice {invoice.invoice_id} opened for deposit ID {deposit.id}")
    return {"deposit_id": deposit.id, "invoice_id": invoice.invoice_id, "payment_url": invoice.payment_url}


async def handle_webhook(
    db: AsyncSession,
    payload: PaymentWebhook,
    redis_client: Optional[Redis] = None,
) -> dict:
    """
    Applies a verified gateway callback. ``Paid`` goes through the same
    completion path as admin approval; a repeat callback for a deposit that is
    already credited is acknowledged without any change.
    """
    try:
        deposit_id = int(payload.customer_reference)
    except ValueError:
        raise ValidationError("Invalid customer reference")

    deposit = await crud_deposit.get_deposit(db, deposit_id)
    if deposit is None:
        payments_logger.warning(f"Webhook for unknown deposit reference {payload.customer_reference}")
        raise ValidationError("Unknown customer reference")
    if deposit.transaction_id and deposit.transaction_id != payload.invoice_id:
        payments_logger.warning(f"Webhook invoice {payload.invoice_id} does not match deposit ID {deposit.id} invoice {deposit.transaction_id}")
        raise ValidationError("Invoice does not match deposit")

    status = payload.invoice_status.strip().lower()
    payments_logger.info(f"Webhook for deposit ID {deposit.id}: invoice {payload.invoice_id} is {payload.invoice_status} ({payload.invoice_value})")

    if status in PAID_STATUSES:
        if deposit.status in DEPOSIT_CREDITED_STATUSES:
            payments_logger.info(f"Deposit ID {deposit.id} already credited; duplicate webhook ignored")
            return {"deposit_id": deposit.id, "status": deposit.status, "duplicate": True}
        if deposit.transaction_id is None:
            deposit.transaction_id = payload.invoice_id
        try:
            deposit, _ = await deposit_service.complete_deposit(
                db,
                deposit.id,
                credited_status=DEPOSIT_COMPLETED,
                amount=payload.invoice_value,
                redis_client=redis_client,
            )
        except InvalidStateTransition as e:
            # Row was settled by a concurrent request between the read and the lock
            if e.current_status in DEPOSIT_CREDITED_STATUSES:
                return {"deposit_id": deposit.id, "status": e.current_status, "duplicate": True}
            raise
        return {"deposit_id": deposit.id, "status": deposit.status, "duplicate": False}

    if status in FAILED_STATUSES:
        if deposit.status != DEPOSIT_PENDING:
            return {"deposit_id": deposit.id, "status": deposit.status, "duplicate": True}
        try:
            deposit = await deposit_service.fail_deposit(db, deposit.id, f"Gateway reported {payload.invoice_status}")
        except InvalidStateTransition as e:
            # A concurrent callback moved the row first
            return {"deposit_id": deposit.id, "status": e.current_status, "duplicate": True}
        return {"deposit_id": deposit.id, "status": deposit.status, "duplicate": False}

    payments_logger.info(f"Webhook status {payload.invoice_status} for deposit ID {deposit.id} needs no action")
    return {"deposit_id": deposit.id, "status": deposit.status, "duplicate": False}
