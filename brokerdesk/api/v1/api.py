# brokerdesk/api/v1/api.py

from fastapi import APIRouter

from brokerdesk.api.v1.endpoints import (
    admin_reports,
    admins,
    auth,
    deposits,
    documents,
    ib_wallets,
    notifications,
    payments,
    profile,
    referrals,
    trading_accounts,
    users,
    withdrawals,
)

api_router = APIRouter()

# Client portal
api_router.include_router(auth.router)
api_router.include_router(profile.router)
api_router.include_router(trading_accounts.router)
api_router.include_router(deposits.router)
api_router.include_router(withdrawals.router)
api_router.include_router(documents.router)
api_router.include_router(notifications.router)
api_router.include_router(ib_wallets.router)
api_router.include_router(payments.router)

# Back-office
api_router.include_router(users.router)
api_router.include_router(admins.router)
api_router.include_router(referrals.router)
api_router.include_router(admin_reports.router)
