# brokerdesk/schemas/stats.py

from pydantic import BaseModel
from decimal import Decimal
from typing import Dict


class AdminStats(BaseModel):
    total_users: int
    active_users: int
    verified_users: int
    pending_documents: int
    trading_accounts: int
    pending_deposits: int
    credited_deposits: int
    credited_deposit_total: Decimal
    pending_withdrawals: int
    approved_withdrawal_total: Decimal
    pending_referrals: int


class ClientDashboardStats(BaseModel):
    """Client dashboard. Balances are per currency since accounts are never converted."""
    balances: Dict[str, Decimal]
    total_accounts: int
    enabled_accounts: int
    credited_deposits: int
    pending_deposits: int
    pending_withdrawals: int
    unread_notifications: int
