"""API tests for the payment gateway webhook."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from brokerdesk.crud import ib_wallet as crud_ib_wallet
from brokerdesk.database.models import (
    Deposit,
    TradingAccount,
    DEPOSIT_COMPLETED,
    DEPOSIT_FAILED,
    DEPOSIT_PENDING,
    REFERRAL_ACCEPTED,
    WALLET_TYPE_IB,
)
from brokerdesk.dependencies.payment_gateway import Invoice, PaymentGatewayError, compute_signature, get_payment_gateway
from brokerdesk.services import commission_service

WEBHOOK_URL = "/api/v1/payments/webhook"
SECRET = "test_webhook_secret"


def signed(payload: dict, secret: str = SECRET):
    body = json.dumps(payload).encode()
    return body, {"Content-Type": "application/json", "X-Signature": compute_signature(body, secret)}


@pytest.fixture
def gateway_deposit(db, make_user, make_account, make_deposit):
    async def _build():
        referrer = await make_user(email="ib@example.com")
        client = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_ACCEPTED)
        await commission_service.ensure_ib_wallet(db, referrer.id)
        account = await make_account(client)
        deposit = await make_deposit(client, account, amount="1000.00", merchant="Payment Gateway", transaction_id="INV-1001")
        await db.commit()
        return referrer, account, deposit
    return _build


def paid(deposit, status="Paid", value="1000.00", invoice_id="INV-1001"):
    return {
        "invoiceId": invoice_id,
        "invoiceStatus": status,
        "invoiceValue": value,
        "customerReference": str(deposit.id),
    }


class TestPaymentWebhook:

    @pytest.mark.asyncio
    async def test_paid_completes_deposit_and_pays_commission(self, client, session_factory, gateway_deposit):
        referrer, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit))

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == DEPOSIT_COMPLETED
        assert response.json()["duplicate"] is False
        async with session_factory() as check:
            assert (await check.get(Deposit, deposit.id)).status == DEPOSIT_COMPLETED
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("1000.00")
            wallet = await crud_ib_wallet.get_wallet(check, referrer.id, WALLET_TYPE_IB)
            assert wallet.balance == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_replayed_paid_event_is_acknowledged_without_effect(self, client, session_factory, gateway_deposit):
        referrer, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit))

        first = await client.post(WEBHOOK_URL, content=body, headers=headers)
        second = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert first.status_code == second.status_code == 200
        assert second.json()["duplicate"] is True
        async with session_factory() as check:
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("1000.00")
            wallet = await crud_ib_wallet.get_wallet(check, referrer.id, WALLET_TYPE_IB)
            assert wallet.total_commission == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_bad_signature_is_rejected(self, client, session_factory, gateway_deposit):
        _, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit), secret="wrong-secret")

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid signature"}
        async with session_factory() as check:
            assert (await check.get(Deposit, deposit.id)).status == DEPOSIT_PENDING
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_missing_signature_is_rejected(self, client, gateway_deposit):
        _, _, deposit = await gateway_deposit()

        response = await client.post(WEBHOOK_URL, json=paid(deposit))

        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["Failed", "Expired", "Canceled"])
    async def test_failed_payment_marks_deposit_failed(self, client, session_factory, gateway_deposit, status):
        _, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit, status=status))

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 200
        async with session_factory() as check:
            assert (await check.get(Deposit, deposit.id)).status == DEPOSIT_FAILED
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_invoice_mismatch_is_rejected(self, client, gateway_deposit):
        _, _, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit, invoice_id="INV-OTHER"))

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_reference_is_rejected(self, client, gateway_deposit):
        _, _, deposit = await gateway_deposit()
        payload = paid(deposit)
        payload["customerReference"] = "999999"
        body, headers = signed(payload)

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_gateway_amount_is_credited(self, client, session_factory, gateway_deposit):
        _, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit, value="990.00"))

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 200
        async with session_factory() as check:
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("990.00")


    @pytest.mark.asyncio
    async def test_gateway_amount_is_rounded_to_cents(self, client, session_factory, gateway_deposit):
        _, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit, value="990.005"))

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 200
        async with session_factory() as check:
            assert (await check.get(Deposit, deposit.id)).amount == Decimal("990.01")
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("990.01")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["0", "-10.00", "1e20"])
    async def test_unusable_invoice_value_is_rejected(self, client, session_factory, gateway_deposit, value):
        _, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit, value=value))

        response = await client.post(WEBHOOK_URL, content=body, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Malformed webhook payload"}
        async with session_factory() as check:
            assert (await check.get(Deposit, deposit.id)).status == DEPOSIT_PENDING

    @pytest.mark.asyncio
    async def test_failure_after_payment_leaves_deposit_completed(self, client, session_factory, gateway_deposit):
        _, account, deposit = await gateway_deposit()
        body, headers = signed(paid(deposit))
        late_body, late_headers = signed(paid(deposit, status="Failed"))

        await client.post(WEBHOOK_URL, content=body, headers=headers)
        late = await client.post(WEBHOOK_URL, content=late_body, headers=late_headers)

        assert late.status_code == 200
        assert late.json()["duplicate"] is True
        assert late.json()["status"] == DEPOSIT_COMPLETED
        async with session_factory() as check:
            assert (await check.get(Deposit, deposit.id)).status == DEPOSIT_COMPLETED
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("1000.00")


class TestInvoices:
    """Invoice creation against a mocked gateway."""

    @pytest.fixture
    def gateway(self):
        mock = AsyncMock()
        mock.create_invoice = AsyncMock(return_value=Invoice(invoice_id="INV-555", payment_url="https://pay.example.com/INV-555"))
        return mock

    @pytest.mark.asyncio
    async def test_invoice_opens_pending_deposit(self, client, db, session_factory, make_user, make_account, auth_headers, gateway):
        from brokerdesk.main import app

        trader = await make_user()
        account = await make_account(trader)
        await db.commit()
        app.dependency_overrides[get_payment_gateway] = lambda: gateway

        response = await client.post(
            "/api/v1/payments/invoices",
            json={"account_id": account.id, "amount": "250.00"},
            headers=auth_headers(trader.id),
        )

        assert response.status_code == 201
        assert response.json()["payment_url"] == "https://pay.example.com/INV-555"
        assert gateway.create_invoice.await_args.kwargs["customer_reference"] == str(response.json()["deposit_id"])
        async with session_factory() as check:
            deposit = await check.get(Deposit, response.json()["deposit_id"])
            assert deposit.status == DEPOSIT_PENDING
            assert deposit.transaction_id == "INV-555"

    @pytest.mark.asyncio
    async def test_gateway_failure_is_502(self, client, db, session_factory, make_user, make_account, auth_headers, gateway):
        from brokerdesk.main import app

        trader = await make_user()
        account = await make_account(trader)
        await db.commit()
        gateway.create_invoice.side_effect = PaymentGatewayError("Payment gateway unavailable")
        app.dependency_overrides[get_payment_gateway] = lambda: gateway

        response = await client.post(
            "/api/v1/payments/invoices",
            json={"account_id": account.id, "amount": "250.00"},
            headers=auth_headers(trader.id),
        )

        assert response.status_code == 502
        assert response.json() == {"message": "Payment gateway unavailable"}
        async with session_factory() as check:
            assert (await check.execute(select(Deposit))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_invoice_in_foreign_currency_is_refused(
        self, client, db, session_factory, make_user, make_account, auth_headers, gateway,
    ):
        from brokerdesk.main import app

        trader = await make_user()
        account = await make_account(trader)
        await db.commit()
        app.dependency_overrides[get_payment_gateway] = lambda: gateway

        response = await client.post(
            "/api/v1/payments/invoices",
            json={"account_id": account.id, "amount": "250.00", "currency": "JPY"},
            headers=auth_headers(trader.id),
        )

        assert response.status_code == 400
        gateway.create_invoice.assert_not_awaited()
        async with session_factory() as check:
            assert (await check.execute(select(Deposit))).scalars().all() == []
