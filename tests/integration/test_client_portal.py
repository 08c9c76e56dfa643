"""API tests for the client portal money and KYC flows."""

from decimal import Decimal

import pytest

from sqlalchemy import select

from brokerdesk.database.models import ActivityLog, Deposit, Notification, TradingAccount, Withdrawal, REFERRAL_ACCEPTED
from brokerdesk.services import commission_service

API = "/api/v1"


class TestDepositsAndWithdrawals:

    @pytest.mark.asyncio
    async def test_deposit_approval_reports_commission(
        self, client, db, make_user, make_admin, auth_headers, admin_headers,
    ):
        admin = await make_admin()
        referrer = await make_user(email="ib@example.com")
        trader = await make_user(email="trader@example.com", referrer=referrer, referral_status=REFERRAL_ACCEPTED)
        await commission_service.ensure_ib_wallet(db, referrer.id)
        await db.commit()

        account = await client.post(f"{API}/trading-accounts", json={"leverage": 200}, headers=auth_headers(trader.id))
        assert account.status_code == 201
        account_id = account.json()["id"]

        deposit = await client.post(
            f"{API}/deposits",
            json={"account_id": account_id, "amount": "1000.00", "transaction_id": "BANK-77"},
            headers=auth_headers(trader.id),
        )
        assert deposit.status_code == 201
        assert deposit.json()["status"] == "Pending"

        approved = await client.patch(
            f"{API}/admin/deposits/{deposit.json()['id']}/approve", headers=admin_headers(admin.id),
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "Approved"
        assert Decimal(approved.json()["commission_credited"]) == Decimal("50.00")

        stats = await client.get(f"{API}/ib/stats", headers=auth_headers(referrer.id))
        assert Decimal(stats.json()["balance"]) == Decimal("50.00")
        assert stats.json()["accepted_referrals"] == 1

    @pytest.mark.asyncio
    async def test_cannot_deposit_into_someone_elses_account(self, client, db, make_user, make_account, auth_headers):
        owner = await make_user(email="owner@example.com")
        intruder = await make_user(email="intruder@example.com")
        account = await make_account(owner)
        await db.commit()

        response = await client.post(
            f"{API}/deposits", json={"account_id": account.id, "amount": "10.00"}, headers=auth_headers(intruder.id),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_withdrawal_lifecycle(
        self, client, db, session_factory, make_user, make_account, make_admin, auth_headers, admin_headers,
    ):
        admin = await make_admin()
        trader = await make_user()
        account = await make_account(trader)
        account.balance = Decimal("100.00")
        await db.commit()

        too_much = await client.post(
            f"{API}/withdrawals",
            json={"account_id": account.id, "amount": "150.00", "method": "Bank Transfer"},
            headers=auth_headers(trader.id),
        )
        assert too_much.status_code == 400

        request = await client.post(
            f"{API}/withdrawals",
            json={"account_id": account.id, "amount": "60.00", "method": "Bank Transfer", "bank_name": "KCB"},
            headers=auth_headers(trader.id),
        )
        assert request.status_code == 201

        approved = await client.patch(
            f"{API}/admin/withdrawals/{request.json()['id']}/approve", headers=admin_headers(admin.id),
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "Approved"

        again = await client.patch(
            f"{API}/admin/withdrawals/{request.json()['id']}/approve", headers=admin_headers(admin.id),
        )
        assert again.status_code == 400

        async with session_factory() as check:
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("40.00")


class TestAccountCurrency:
    """Money is only ever booked in the currency of the trading account."""

    @pytest.mark.asyncio
    async def test_deposit_in_foreign_currency_is_refused(self, client, db, session_factory, make_user, make_account, auth_headers):
        trader = await make_user()
        account = await make_account(trader)
        await db.commit()

        response = await client.post(
            f"{API}/deposits",
            json={"account_id": account.id, "amount": "100000.00", "currency": "JPY"},
            headers=auth_headers(trader.id),
        )

        assert response.status_code == 400
        assert "JPY" in response.json()["message"]
        async with session_factory() as check:
            assert (await check.execute(select(Deposit))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_deposit_defaults_to_account_currency(self, client, db, make_user, make_account, auth_headers):
        trader = await make_user()
        account = await make_account(trader, currency="EUR")
        await db.commit()

        response = await client.post(
            f"{API}/deposits", json={"account_id": account.id, "amount": "50.00"}, headers=auth_headers(trader.id),
        )
        matching = await client.post(
            f"{API}/deposits",
            json={"account_id": account.id, "amount": "50.00", "currency": "eur"},
            headers=auth_headers(trader.id),
        )

        assert response.status_code == 201
        assert response.json()["currency"] == "EUR"
        assert matching.status_code == 201
        assert matching.json()["currency"] == "EUR"

    @pytest.mark.asyncio
    async def test_withdrawal_in_foreign_currency_is_refused(self, client, db, session_factory, make_user, make_account, auth_headers):
        trader = await make_user()
        account = await make_account(trader)
        account.balance = Decimal("500.00")
        await db.commit()

        response = await client.post(
            f"{API}/withdrawals",
            json={"account_id": account.id, "amount": "100.00", "method": "Bank Transfer", "currency": "JPY"},
            headers=auth_headers(trader.id),
        )

        assert response.status_code == 400
        async with session_factory() as check:
            assert (await check.execute(select(Withdrawal))).scalars().all() == []


class TestDocuments:

    @pytest.mark.asyncio
    async def test_verification_marks_client_verified(self, client, db, make_user, make_admin, auth_headers, admin_headers):
        admin = await make_admin()
        trader = await make_user()
        await db.commit()

        document = await client.post(
            f"{API}/documents",
            json={"doc_type": "id_proof", "file_name": "passport.pdf", "file_url": "https://files.example.com/p.pdf"},
            headers=auth_headers(trader.id),
        )
        assert document.status_code == 201

        rejected = await client.patch(
            f"{API}/admin/documents/{document.json()['id']}/verify",
            json={"status": "Rejected"},
            headers=admin_headers(admin.id),
        )
        assert rejected.status_code == 400

        verified = await client.patch(
            f"{API}/admin/documents/{document.json()['id']}/verify",
            json={"status": "Verified"},
            headers=admin_headers(admin.id),
        )
        assert verified.status_code == 200

        status = await client.get(f"{API}/documents/verification-status", headers=auth_headers(trader.id))
        assert status.json() == {"verified": True, "documents": 1, "pending": 0, "rejected": 0}


class TestNotifications:

    @pytest.mark.asyncio
    async def test_mark_read_only_own(self, client, db, make_user, auth_headers):
        referrer = await make_user(email="ib@example.com")
        other = await make_user(email="other@example.com")
        await db.commit()
        signup = await client.post(f"{API}/auth/signup", json={
            "email": "new@example.com",
            "password": "password123",
            "full_name": "New Client",
            "ref": referrer.referral_id,
        })
        assert signup.json()["referral_status"] == "Pending"

        inbox = await client.get(f"{API}/notifications", headers=auth_headers(referrer.id))
        notification_id = inbox.json()[0]["id"]

        foreign = await client.patch(f"{API}/notifications/{notification_id}/read", headers=auth_headers(other.id))
        own = await client.patch(f"{API}/notifications/{notification_id}/read", headers=auth_headers(referrer.id))
        unread = await client.get(f"{API}/notifications", params={"unread_only": True}, headers=auth_headers(referrer.id))

        assert foreign.status_code == 404
        assert own.json()["read"] is True
        assert unread.json() == []


class TestProfile:

    @pytest.mark.asyncio
    async def test_profile_update_keeps_email(self, client, db, session_factory, make_user, auth_headers):
        trader = await make_user()
        await db.commit()

        response = await client.patch(
            f"{API}/profile",
            json={"city": "Nairobi", "phone": "+254700000001", "email": "someone-else@example.com"},
            headers=auth_headers(trader.id),
        )
        profile = await client.get(f"{API}/profile", headers=auth_headers(trader.id))

        assert response.status_code == 200
        assert profile.json()["city"] == "Nairobi"
        assert profile.json()["phone"] == "+254700000001"
        assert profile.json()["email"] == "client@example.com"

    @pytest.mark.asyncio
    async def test_dashboard_stats_group_balances_by_currency(
        self, client, db, make_user, make_account, make_deposit, auth_headers,
    ):
        trader = await make_user()
        usd = await make_account(trader)
        usd.balance = Decimal("150.00")
        eur = await make_account(trader, currency="EUR")
        eur.balance = Decimal("20.00")
        await make_deposit(trader, usd, amount="75.00")
        await db.commit()

        stats = await client.get(f"{API}/dashboard/stats", headers=auth_headers(trader.id))

        assert stats.status_code == 200
        body = stats.json()
        assert {currency: Decimal(value) for currency, value in body["balances"].items()} == {
            "USD": Decimal("150.00"), "EUR": Decimal("20.00"),
        }
        assert body["total_accounts"] == 2
        assert body["pending_deposits"] == 1
        assert body["credited_deposits"] == 0

    @pytest.mark.asyncio
    async def test_leverage_update_on_own_account_only(self, client, db, make_user, make_account, auth_headers):
        trader = await make_user()
        other = await make_user(email="other@example.com")
        account = await make_account(trader)
        foreign = await make_account(other)
        await db.commit()

        updated = await client.patch(
            f"{API}/trading-accounts/{account.id}", json={"leverage": 500}, headers=auth_headers(trader.id),
        )
        refused = await client.patch(
            f"{API}/trading-accounts/{foreign.id}", json={"leverage": 500}, headers=auth_headers(trader.id),
        )
        out_of_range = await client.patch(
            f"{API}/trading-accounts/{account.id}", json={"leverage": 5000}, headers=auth_headers(trader.id),
        )

        assert updated.status_code == 200
        assert updated.json()["leverage"] == 500
        assert refused.status_code == 404
        assert out_of_range.status_code == 400


class TestFundAdjustments:
    """Admin balance corrections bypass the deposit and withdrawal workflows."""

    @pytest.mark.asyncio
    async def test_add_funds_credits_without_deposit(
        self, client, db, session_factory, make_user, make_account, make_admin, admin_headers,
    ):
        admin = await make_admin()
        trader = await make_user()
        account = await make_account(trader)
        await db.commit()

        response = await client.post(
            f"{API}/admin/users/{trader.id}/add-funds",
            json={"trading_account_id": account.id, "amount": "250.00", "reason": "Bonus"},
            headers=admin_headers(admin.id),
        )

        assert response.status_code == 200
        assert Decimal(response.json()["new_balance"]) == Decimal("250.00")
        async with session_factory() as check:
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("250.00")
            assert (await check.execute(select(Deposit))).scalars().all() == []
            actions = (await check.execute(select(ActivityLog.action))).scalars().all()
            assert "add_funds" in actions
            titles = (await check.execute(select(Notification.title))).scalars().all()
            assert "Funds added" in titles

    @pytest.mark.asyncio
    async def test_remove_funds_over_balance_changes_nothing(
        self, client, db, session_factory, make_user, make_account, make_admin, admin_headers,
    ):
        admin = await make_admin()
        trader = await make_user()
        account = await make_account(trader)
        account.balance = Decimal("40.00")
        await db.commit()

        too_much = await client.post(
            f"{API}/admin/users/{trader.id}/remove-funds",
            json={"trading_account_id": account.id, "amount": "50.00"},
            headers=admin_headers(admin.id),
        )
        removed = await client.post(
            f"{API}/admin/users/{trader.id}/remove-funds",
            json={"trading_account_id": account.id, "amount": "15.00"},
            headers=admin_headers(admin.id),
        )

        assert too_much.status_code == 400
        assert too_much.json()["message"].startswith("Insufficient balance")
        assert removed.status_code == 200
        async with session_factory() as check:
            assert (await check.get(TradingAccount, account.id)).balance == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_fund_adjustment_checks_account_owner_and_role(
        self, client, db, make_user, make_account, make_admin, admin_headers,
    ):
        admin = await make_admin()
        desk = await make_admin(username="desk", role="normal_admin")
        trader = await make_user()
        other = await make_user(email="other@example.com")
        foreign = await make_account(other)
        own = await make_account(trader)
        await db.commit()

        wrong_owner = await client.post(
            f"{API}/admin/users/{trader.id}/add-funds",
            json={"trading_account_id": foreign.id, "amount": "10.00"},
            headers=admin_headers(admin.id),
        )
        not_super = await client.post(
            f"{API}/admin/users/{trader.id}/add-funds",
            json={"trading_account_id": own.id, "amount": "10.00"},
            headers=admin_headers(desk.id),
        )

        assert wrong_owner.status_code == 400
        assert wrong_owner.json()["message"] == "Trading account does not belong to user"
        assert not_super.status_code == 403
