# brokerdesk/database/models.py

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func
)
from sqlalchemy.types import DECIMAL as SQLDecimal
from sqlalchemy.orm import relationship

from .base import Base


# Referral lifecycle states stored on User.referral_status
REFERRAL_PENDING = "Pending"
REFERRAL_ACCEPTED = "Accepted"
REFERRAL_REJECTED = "Rejected"

# Deposit statuses; Approved (admin) and Completed (gateway) both mean funds credited
DEPOSIT_PENDING = "Pending"
DEPOSIT_APPROVED = "Approved"
DEPOSIT_COMPLETED = "Completed"
DEPOSIT_REJECTED = "Rejected"
DEPOSIT_FAILED = "Failed"
DEPOSIT_CREDITED_STATUSES = (DEPOSIT_APPROVED, DEPOSIT_COMPLETED)

WITHDRAWAL_PENDING = "Pending"
WITHDRAWAL_APPROVED = "Approved"
WITHDRAWAL_REJECTED = "Rejected"

DOCUMENT_PENDING = "Pending"
DOCUMENT_VERIFIED = "Verified"
DOCUMENT_REJECTED = "Rejected"

WALLET_TYPE_IB = "IB"
WALLET_TYPE_CB = "CB"

WALLET_ENTRY_COMMISSION = "commission"
WALLET_ENTRY_PAYOUT = "payout"


class User(Base):
    """
    A client of the brokerage.

    ``referral_status`` is non-null exactly when ``referred_by_id`` is set; both
    are fixed at signup and afterwards only moved by the referral service.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    country = Column(String(100), index=True, nullable=True)
    city = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)

    # Own shareable code, e.g. REFXYZ123
    referral_id = Column(String(32), unique=True, index=True, nullable=False)
    referred_by_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=True)
    referral_status = Column(String(20), nullable=True)
    referral_rejection_reason = Column(Text, nullable=True)

    verified = Column(Boolean, default=False, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    referrer = relationship("User", remote_side=[id], foreign_keys=[referred_by_id])
    trading_accounts = relationship("TradingAccount", back_populates="user")


class AdminUser(Base):
    """
    Back-office administrator. Roles: super_admin, middle_admin, normal_admin.
    Admins are disabled, never deleted.
    """
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="normal_admin")
    enabled = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    country_assignments = relationship(
        "AdminCountryAssignment",
        back_populates="admin",
        cascade="all, delete-orphan",
    )


class AdminCountryAssignment(Base):
    __tablename__ = "admin_country_assignments"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admin_users.id", ondelete="CASCADE"), index=True, nullable=False)
    country = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    admin = relationship("AdminUser", back_populates="country_assignments")


class TradingAccount(Base):
    __tablename__ = "trading_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    account_number = Column(String(32), unique=True, index=True, nullable=False)
    account_type = Column(String(20), nullable=False, default="Live")
    group_name = Column(String(100), nullable=True)
    leverage = Column(Integer, nullable=False, default=100)
    balance = Column(SQLDecimal(12, 2), default=Decimal("0.00"), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="trading_accounts")


class Deposit(Base):
    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    account_id = Column(Integer, ForeignKey("trading_accounts.id"), index=True, nullable=False)
    merchant = Column(String(50), nullable=False)
    amount = Column(SQLDecimal(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=DEPOSIT_PENDING, index=True)
    # Gateway invoice id or bank reference
    transaction_id = Column(String(100), index=True, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    processed_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    completed_at = Column(DateTime, nullable=True)

    user = relationship("User")
    account = relationship("TradingAccount")


class Withdrawal(Base):
    __tablename__ = "withdrawals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    account_id = Column(Integer, ForeignKey("trading_accounts.id"), index=True, nullable=False)
    method = Column(String(50), nullable=False)
    amount = Column(SQLDecimal(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=WITHDRAWAL_PENDING, index=True)
    bank_name = Column(String(255), nullable=True)
    bank_account_number = Column(String(100), nullable=True)
    account_holder_name = Column(String(255), nullable=True)
    swift_code = Column(String(50), nullable=True)
    wallet_address = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    processed_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    processed_at = Column(DateTime, nullable=True)

    user = relationship("User")
    account = relationship("TradingAccount")


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    doc_type = Column(String(50), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(512), nullable=False)
    status = Column(String(20), nullable=False, default=DOCUMENT_PENDING)
    rejection_reason = Column(Text, nullable=True)
    verified_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)

    uploaded_at = Column(DateTime, server_default=func.now())
    verified_at = Column(DateTime, nullable=True)

    user = relationship("User")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="info")
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class IbCbWallet(Base):
    """
    Commission wallet owned by a referrer. ``total_commission`` only ever grows;
    ``balance`` grows with it and shrinks on payout, so total_commission >= balance.
    """
    __tablename__ = "ib_cb_wallets"
    __table_args__ = (
        UniqueConstraint("user_id", "wallet_type", name="uq_ib_cb_wallets_user_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    wallet_type = Column(String(2), nullable=False, default=WALLET_TYPE_IB)
    balance = Column(SQLDecimal(12, 2), default=Decimal("0.00"), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    # Percentage, 5.00 means 5%
    commission_rate = Column(SQLDecimal(5, 2), default=Decimal("5.00"), nullable=False)
    total_commission = Column(SQLDecimal(12, 2), default=Decimal("0.00"), nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")


class IbWalletTransaction(Base):
    """
    Ledger of wallet movements. A commission entry's deposit_id is unique, which
    makes settlement idempotent per deposit.
    """
    __tablename__ = "ib_wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("ib_cb_wallets.id"), index=True, nullable=False)
    entry_type = Column(String(20), nullable=False)
    amount = Column(SQLDecimal(12, 2), nullable=False)
    deposit_id = Column(Integer, ForeignKey("deposits.id"), unique=True, nullable=True)
    source_user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=True)
    admin_id = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class ActivityLog(Base):
    """Append-only audit trail. A null admin_id marks a system-initiated action."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admin_users.id"), index=True, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False)
    entity = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
