"""Integration tests for signup attribution and the referral lifecycle."""

from decimal import Decimal

import pytest

from brokerdesk.core.exceptions import Conflict, InvalidStateTransition, NotFound, ValidationError
from brokerdesk.crud import ib_wallet as crud_ib_wallet
from brokerdesk.crud import notification as crud_notification
from brokerdesk.crud import user as crud_user
from brokerdesk.database.models import REFERRAL_ACCEPTED, REFERRAL_PENDING, REFERRAL_REJECTED, WALLET_TYPE_IB
from brokerdesk.schemas.user import UserSignup
from brokerdesk.services import referral_service
from brokerdesk.services.admin_scope import MiddleAdmin, SuperAdmin


def signup_data(email, ref=None, country="Kenya"):
    return UserSignup(
        email=email,
        password="password123",
        full_name=email.split("@")[0].title(),
        country=country,
        ref=ref,
    )


class TestSignupAttribution:
    """Referral code handling at signup."""

    @pytest.mark.asyncio
    async def test_bare_code_records_pending_referral(self, db, make_user):
        referrer = await make_user(email="ib@example.com")

        user = await referral_service.signup_user(db, signup_data("new@example.com", ref=referrer.referral_id))

        assert user.referred_by_id == referrer.id
        assert user.referral_status == REFERRAL_PENDING

    @pytest.mark.asyncio
    async def test_signup_link_is_accepted(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        link = f"https://portal.example.com/signup?ref={referrer.referral_id}"

        user = await referral_service.signup_user(db, signup_data("new@example.com", ref=link))

        assert user.referred_by_id == referrer.id

    @pytest.mark.asyncio
    async def test_garbage_token_signs_up_without_referrer(self, db, make_user):
        await make_user(email="ib@example.com")

        user = await referral_service.signup_user(db, signup_data("new@example.com", ref="%%% not a code %%%"))

        assert user.referred_by_id is None
        assert user.referral_status is None

    @pytest.mark.asyncio
    async def test_unknown_code_signs_up_without_referrer(self, db):
        user = await referral_service.signup_user(db, signup_data("new@example.com", ref="REFNOPE00"))

        assert user.referred_by_id is None
        assert user.referral_status is None

    @pytest.mark.asyncio
    async def test_new_user_cannot_refer_themselves(self, db):
        """A user's own code does not exist until after referrer resolution."""
        user = await referral_service.signup_user(db, signup_data("solo@example.com", ref="REFSELF01"))

        assert user.referred_by_id is None
        assert user.referral_status is None

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db, make_user):
        await make_user(email="taken@example.com")

        with pytest.raises(Conflict):
            await referral_service.signup_user(db, signup_data("Taken@example.com"))

    @pytest.mark.asyncio
    async def test_referrer_is_notified(self, db, make_user):
        referrer = await make_user(email="ib@example.com")

        await referral_service.signup_user(db, signup_data("new@example.com", ref=referrer.referral_id))

        notifications = await crud_notification.get_notifications_by_user(db, referrer.id)
        assert [n.title for n in notifications] == ["New referral"]

    @pytest.mark.asyncio
    async def test_referral_codes_are_unique(self, db, make_user):
        users = [await make_user(email=f"user{i}@example.com") for i in range(5)]
        codes = {user.referral_id for user in users}
        assert len(codes) == 5
        assert all(code.startswith("REF") for code in codes)


class TestReferralTransitions:
    """Admin decisions on Pending referrals."""

    @pytest.mark.asyncio
    async def test_accept_creates_wallet_at_default_rate(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        referred = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_PENDING)

        user = await referral_service.accept_referral(db, referred.id, SuperAdmin(1))

        assert user.referral_status == REFERRAL_ACCEPTED
        wallet = await crud_ib_wallet.get_wallet(db, referrer.id, WALLET_TYPE_IB)
        assert wallet is not None
        assert wallet.enabled is True
        assert wallet.commission_rate == Decimal("5.00")
        assert wallet.balance == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_accept_reenables_disabled_wallet(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        first = await make_user(email="one@example.com", referrer=referrer, referral_status=REFERRAL_PENDING)
        second = await make_user(email="two@example.com", referrer=referrer, referral_status=REFERRAL_PENDING)
        await referral_service.accept_referral(db, first.id, SuperAdmin(1))
        wallet = await crud_ib_wallet.get_wallet(db, referrer.id, WALLET_TYPE_IB)
        wallet.enabled = False
        await db.flush()

        await referral_service.accept_referral(db, second.id, SuperAdmin(1))

        await db.refresh(wallet)
        assert wallet.enabled is True

    @pytest.mark.asyncio
    async def test_accept_is_terminal(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        referred = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_PENDING)
        await referral_service.accept_referral(db, referred.id, SuperAdmin(1))

        with pytest.raises(InvalidStateTransition) as exc_info:
            await referral_service.accept_referral(db, referred.id, SuperAdmin(1))
        assert exc_info.value.current_status == REFERRAL_ACCEPTED

        with pytest.raises(InvalidStateTransition):
            await referral_service.reject_referral(db, referred.id, "changed my mind", SuperAdmin(1))

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        referred = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_PENDING)

        for reason in (None, "", "   "):
            with pytest.raises(ValidationError):
                await referral_service.reject_referral(db, referred.id, reason, SuperAdmin(1))

        await db.refresh(referred)
        assert referred.referral_status == REFERRAL_PENDING

    @pytest.mark.asyncio
    async def test_reject_stores_reason(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        referred = await make_user(email="client@example.com", referrer=referrer, referral_status=REFERRAL_PENDING)

        user = await referral_service.reject_referral(db, referred.id, "  Duplicate account  ", SuperAdmin(1))

        assert user.referral_status == REFERRAL_REJECTED
        assert user.referral_rejection_reason == "Duplicate account"
        with pytest.raises(InvalidStateTransition):
            await referral_service.accept_referral(db, referred.id, SuperAdmin(1))

    @pytest.mark.asyncio
    async def test_user_without_referral_cannot_be_accepted(self, db, make_user):
        user = await make_user(email="organic@example.com")

        with pytest.raises(InvalidStateTransition) as exc_info:
            await referral_service.accept_referral(db, user.id, SuperAdmin(1))
        assert exc_info.value.current_status is None

    @pytest.mark.asyncio
    async def test_middle_admin_cannot_act_outside_countries(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        referred = await make_user(
            email="client@example.com", country="Uganda", referrer=referrer, referral_status=REFERRAL_PENDING,
        )

        with pytest.raises(NotFound):
            await referral_service.accept_referral(db, referred.id, MiddleAdmin(2, frozenset({"Kenya"})))

        still_pending = await crud_user.get_user(db, referred.id)
        assert still_pending.referral_status == REFERRAL_PENDING

    @pytest.mark.asyncio
    async def test_listing_is_scoped_and_filtered(self, db, make_user):
        referrer = await make_user(email="ib@example.com")
        await make_user(email="ke1@example.com", country="Kenya", referrer=referrer, referral_status=REFERRAL_PENDING)
        await make_user(email="ke2@example.com", country="Kenya", referrer=referrer, referral_status=REFERRAL_ACCEPTED)
        await make_user(email="ug@example.com", country="Uganda", referrer=referrer, referral_status=REFERRAL_PENDING)
        await make_user(email="organic@example.com", country="Kenya")

        kenya = MiddleAdmin(2, frozenset({"Kenya"}))
        assert {u.email for u in await referral_service.list_referrals(db, kenya)} == {"ke1@example.com", "ke2@example.com"}
        pending = await referral_service.list_referrals(db, kenya, status=REFERRAL_PENDING)
        assert [u.email for u in pending] == ["ke1@example.com"]
        assert len(await referral_service.list_referrals(db, SuperAdmin(1))) == 3
