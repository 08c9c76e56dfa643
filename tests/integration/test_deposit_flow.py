"""Integration tests for deposit completion, the single credit path."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from brokerdesk.core.exceptions import InvalidStateTransition, NotFound, ValidationError
from brokerdesk.crud import ib_wallet as crud_ib_wallet
from brokerdesk.database.models import (
    ActivityLog,
    TradingAccount,
    DEPOSIT_APPROVED,
    DEPOSIT_FAILED,
    DEPOSIT_REJECTED,
    REFERRAL_ACCEPTED,
    WALLET_TYPE_IB,
)
from brokerdesk.schemas.user import UserSignup
from brokerdesk.services import commission_service, deposit_service, referral_service
from brokerdesk.services.admin_scope import MiddleAdmin, SuperAdmin


async def account_balance(db, account_id):
    account = await db.get(TradingAccount, account_id)
    await db.refresh(account)
    return account.balance


class TestApproveDeposit:

    @pytest.mark.asyncio
    async def test_approval_credits_account_and_commission(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        referrer = await make_user(email="ib@example.com")
        client = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_ACCEPTED)
        account = await make_account(client)
        deposit = await make_deposit(client, account, amount="1000.00")

        approved, commission = await deposit_service.approve_deposit(db, deposit.id, SuperAdmin(admin.id))

        assert approved.status == DEPOSIT_APPROVED
        assert approved.processed_by == admin.id
        assert approved.completed_at is not None
        assert commission == Decimal("50.00")
        assert await account_balance(db, account.id) == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_second_approval_is_refused(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        referrer = await make_user(email="ib@example.com")
        client = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_ACCEPTED)
        account = await make_account(client)
        deposit = await make_deposit(client, account)
        await deposit_service.approve_deposit(db, deposit.id, SuperAdmin(admin.id))

        with pytest.raises(InvalidStateTransition):
            await deposit_service.approve_deposit(db, deposit.id, SuperAdmin(admin.id))

        assert await account_balance(db, account.id) == Decimal("1000.00")
        wallet = await crud_ib_wallet.get_wallet(db, referrer.id, WALLET_TYPE_IB)
        assert wallet.total_commission == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_amount_override(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        client = await make_user()
        account = await make_account(client)
        deposit = await make_deposit(client, account, amount="100.00")

        approved, commission = await deposit_service.approve_deposit(
            db, deposit.id, SuperAdmin(admin.id), amount=Decimal("95.50"),
        )

        assert approved.amount == Decimal("95.50")
        assert commission is None
        assert await account_balance(db, account.id) == Decimal("95.50")

    @pytest.mark.asyncio
    async def test_unknown_deposit(self, db, make_admin):
        admin = await make_admin()
        with pytest.raises(NotFound):
            await deposit_service.approve_deposit(db, 404, SuperAdmin(admin.id))

    @pytest.mark.asyncio
    async def test_middle_admin_outside_countries(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin(username="kenyadesk", role="middle_admin", countries=["Kenya"])
        client = await make_user(country="Ghana")
        deposit = await make_deposit(client, await make_account(client))

        with pytest.raises(NotFound):
            await deposit_service.approve_deposit(db, deposit.id, MiddleAdmin(admin.id, frozenset({"Kenya"})))


class TestRejectDeposit:

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        client = await make_user()
        deposit = await make_deposit(client, await make_account(client))

        with pytest.raises(ValidationError):
            await deposit_service.reject_deposit(db, deposit.id, "  ", SuperAdmin(admin.id))

    @pytest.mark.asyncio
    async def test_rejected_deposit_cannot_be_approved(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        client = await make_user()
        account = await make_account(client)
        deposit = await make_deposit(client, account)

        rejected = await deposit_service.reject_deposit(db, deposit.id, "Proof unreadable", SuperAdmin(admin.id))
        assert rejected.status == DEPOSIT_REJECTED

        with pytest.raises(InvalidStateTransition):
            await deposit_service.approve_deposit(db, deposit.id, SuperAdmin(admin.id))
        assert await account_balance(db, account.id) == Decimal("0.00")


class TestFailDeposit:

    @pytest.mark.asyncio
    async def test_credited_deposit_cannot_fail(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        client = await make_user()
        account = await make_account(client)
        deposit = await make_deposit(client, account, amount="300.00")
        await deposit_service.approve_deposit(db, deposit.id, SuperAdmin(admin.id))

        with pytest.raises(InvalidStateTransition) as exc_info:
            await deposit_service.fail_deposit(db, deposit.id, "Gateway reported Failed")

        assert exc_info.value.current_status == DEPOSIT_APPROVED
        assert await account_balance(db, account.id) == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_pending_deposit_fails_with_reason(self, db, make_user, make_account, make_deposit):
        client = await make_user()
        deposit = await make_deposit(client, await make_account(client))

        failed = await deposit_service.fail_deposit(db, deposit.id, "Gateway reported Expired")

        assert failed.status == DEPOSIT_FAILED
        assert failed.rejection_reason == "Gateway reported Expired"

    @pytest.mark.asyncio
    async def test_unknown_deposit(self, db):
        with pytest.raises(NotFound):
            await deposit_service.fail_deposit(db, 424242, "Gateway reported Failed")


class TestReferralToPayoutScenario:
    """Signup with a referral link through to an IB payout."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, db, make_user, make_account, make_deposit, make_admin):
        admin = await make_admin()
        referrer = await make_user(email="broker@example.com", full_name="Broker")
        referrer.referral_id = "REFXYZ123"
        await db.flush()

        client = await referral_service.signup_user(db, UserSignup(
            email="trader@example.com",
            password="password123",
            full_name="Trader",
            country="Kenya",
            ref="https://portal.example.com/signup?ref=REFXYZ123",
        ))
        assert client.referred_by_id == referrer.id

        # Deposit before acceptance earns nothing
        account = await make_account(client)
        early = await make_deposit(client, account, amount="400.00")
        _, early_commission = await deposit_service.approve_deposit(db, early.id, SuperAdmin(admin.id))
        assert early_commission is None

        await referral_service.accept_referral(db, client.id, SuperAdmin(admin.id))

        deposit = await make_deposit(client, account, amount="1000.00")
        _, commission = await deposit_service.approve_deposit(db, deposit.id, SuperAdmin(admin.id))
        assert commission == Decimal("50.00")

        wallet = await commission_service.payout(db, referrer.id, Decimal("30.00"), None, SuperAdmin(admin.id))
        assert wallet.balance == Decimal("20.00")
        assert wallet.total_commission == Decimal("50.00")
        assert await account_balance(db, account.id) == Decimal("1400.00")

        stats = await referral_service.get_ib_stats(db, referrer)
        assert stats["referral_link"].endswith("?ref=REFXYZ123")
        assert stats["accepted_referrals"] == 1
        assert stats["referrals"][0]["commission_earned"] == Decimal("50.00")

        actions = (await db.execute(select(ActivityLog.action))).scalars().all()
        for expected in ("approve_deposit", "accept_referral", "commission_credited", "ib_payout"):
            assert expected in actions
