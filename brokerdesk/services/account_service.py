# brokerdesk/services/account_service.py

"""Client administration: trading accounts, KYC documents and user enablement."""

import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.exceptions import InsufficientBalance, NotFound, ValidationError
from brokerdesk.core.logging_config import admin_logger, app_logger
from brokerdesk.crud import document as crud_document
from brokerdesk.crud import trading_account as crud_trading_account
from brokerdesk.crud import user as crud_user
from brokerdesk.database.models import (
    Document,
    TradingAccount,
    User,
    DOCUMENT_PENDING,
    DOCUMENT_REJECTED,
    DOCUMENT_VERIFIED,
)
from brokerdesk.schemas.document import DocumentCreate, DocumentVerify
from brokerdesk.schemas.trading_account import FundAdjustment, TradingAccountCreate, TradingAccountUpdate
from brokerdesk.schemas.user import UserProfileUpdate
from brokerdesk.services import audit_service, notification_service
from brokerdesk.services.admin_scope import AdminIdentity
from brokerdesk.services.deposit_service import get_owned_account


# --- Users ---

async def list_users(db: AsyncSession, identity: AdminIdentity) -> List[User]:
    users = await crud_user.get_all_users(db)
    return identity.filter(users, lambda user: user.country)


async def get_scoped_user(db: AsyncSession, user_id: int, identity: AdminIdentity) -> User:
    user = await crud_user.get_user(db, user_id)
    if user is None or not identity.can_see(user.country):
        raise NotFound(f"User {user_id} not found")
    return user


async def toggle_user(db: AsyncSession, user_id: int, identity: AdminIdentity) -> User:
    user = await get_scoped_user(db, user_id, identity)
    user.enabled = not user.enabled
    await db.flush()
    await db.refresh(user)
    admin_logger.info(f"Admin ID {identity.admin_id} {'enabled' if user.enabled else 'disabled'} user ID {user.id}")
    await audit_service.log_activity(
        db, identity.admin_id, "enable_user" if user.enabled else "disable_user", "user", user.id,
        f"User {user.email} {'enabled' if user.enabled else 'disabled'}", user_id=user.id,
    )
    return user


async def update_profile(db: AsyncSession, user: User, data: UserProfileUpdate) -> User:
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    if "country" in changes:
        app_logger.info(f"User ID {user.id} changed country to {user.country}")
    return user


# --- Trading accounts ---

async def open_trading_account(db: AsyncSession, user: User, data: TradingAccountCreate) -> TradingAccount:
    return await crud_trading_account.create_account(
        db,
        user_id=user.id,
        account_type=data.account_type,
        group_name=data.group_name,
        leverage=data.leverage,
        currency=data.currency,
    )


async def update_trading_account(
    db: AsyncSession, user: User, account_id: int, data: TradingAccountUpdate,
) -> TradingAccount:
    account = await get_owned_account(db, user, account_id)
    account.leverage = data.leverage
    await db.flush()
    await db.refresh(account)
    return account


async def list_trading_accounts(db: AsyncSession, identity: AdminIdentity) -> List[TradingAccount]:
    accounts = await crud_trading_account.get_all_accounts(db)
    # Accounts carry no country of their own; scope through the owning user
    return identity.filter(accounts, lambda account: account.user.country)


async def toggle_trading_account(db: AsyncSession, account_id: int, identity: AdminIdentity) -> TradingAccount:
    account = await crud_trading_account.get_account(db, account_id)
    if account is None:
        raise NotFound(f"Trading account {account_id} not found")
    owner = await crud_user.get_user(db, account.user_id)
    if owner is None or not identity.can_see(owner.country):
        raise NotFound(f"Trading account {account_id} not found")

    account.enabled = not account.enabled
    await db.flush()
    await db.refresh(account)
    await audit_service.log_activity(
        db, identity.admin_id, "enable_trading_account" if account.enabled else "disable_trading_account",
        "trading_account", account.id, f"Account {account.account_number}", user_id=account.user_id,
    )
    return account


# --- Documents ---

async def submit_document(db: AsyncSession, user: User, data: DocumentCreate) -> Document:
    return await crud_document.create_document(
        db, user_id=user.id, doc_type=data.doc_type, file_name=data.file_name, file_url=data.file_url,
    )


async def verification_status(db: AsyncSession, user: User) -> dict:
    documents = await crud_document.get_documents_by_user(db, user.id)
    return {
        "verified": user.verified,
        "documents": len(documents),
        "pending": sum(1 for d in documents if d.status == DOCUMENT_PENDING),
        "rejected": sum(1 for d in documents if d.status == DOCUMENT_REJECTED),
    }


async def list_documents(db: AsyncSession, identity: AdminIdentity, status: Optional[str] = None) -> List[Document]:
    documents = await crud_document.get_all_documents(db, status=status)
    return identity.filter(documents, lambda document: document.user.country)


async def verify_document(db: AsyncSession, document_id: int, data: DocumentVerify, identity: AdminIdentity) -> Document:
    """
    Marks a document Verified or Rejected. Verifying any document marks the
    owner as a verified client.
    """
    if data.status == DOCUMENT_REJECTED and not (data.reason and data.reason.strip()):
        raise ValidationError("A rejection reason is required")

    document = await crud_document.get_document(db, document_id)
    if document is None or not identity.can_see(document.user.country):
        raise NotFound(f"Document {document_id} not found")

    document.status = data.status
    document.rejection_reason = data.reason.strip() if data.status == DOCUMENT_REJECTED else None
    document.verified_by = identity.admin_id
    document.verified_at = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    if data.status == DOCUMENT_VERIFIED:
        document.user.verified = True
    await db.flush()
    await db.refresh(document)

    await audit_service.log_activity(
        db, identity.admin_id, "verify_document" if data.status == DOCUMENT_VERIFIED else "reject_document",
        "document", document.id, document.rejection_reason or f"{document.doc_type} verified", user_id=document.user_id,
    )
    await notification_service.notify(
        db, document.user_id, f"Document {data.status.lower()}",
        f"Your {document.doc_type} document was {data.status.lower()}."
        + (f" Reason: {document.rejection_reason}" if document.rejection_reason else ""),
        type="success" if data.status == DOCUMENT_VERIFIED else "warning",
    )
    return document


# --- Balance adjustments ---

async def _adjustable_account(db: AsyncSession, user_id: int, data: FundAdjustment) -> TradingAccount:
    if await crud_user.get_user(db, user_id) is None:
        raise NotFound(f"User {user_id} not found")
    account = await crud_trading_account.get_account(db, data.trading_account_id)
    if account is None:
        raise NotFound(f"Trading account {data.trading_account_id} not found")
    if account.user_id != user_id:
        raise ValidationError("Trading account does not belong to user")
    return account


async def add_funds(db: AsyncSession, user_id: int, data: FundAdjustment, identity: AdminIdentity) -> TradingAccount:
    """
    Credits a trading account directly. This is an admin balance correction,
    not a deposit: no deposit row is created and no commission is settled.
    """
    account = await _adjustable_account(db, user_id, data)
    await crud_trading_account.credit_balance(db, account.id, data.amount)
    await db.refresh(account)
    admin_logger.info(f"Admin ID {identity.admin_id} added {data.amount} to account ID {account.id}. Balance now {account.balance}")

    await audit_service.log_activity(
        db, identity.admin_id, "add_funds", "trading_account", account.id,
        f"Added {data.amount} {account.currency} to account {account.account_number}. Reason: {data.reason or 'N/A'}",
        user_id=user_id,
    )
    await notification_service.notify(
        db, user_id, "Funds added",
        f"{data.amount} {account.currency} was added to trading account {account.account_number}.",
        type="success",
    )
    return account


async def remove_funds(db: AsyncSession, user_id: int, data: FundAdjustment, identity: AdminIdentity) -> TradingAccount:
    account = await _adjustable_account(db, user_id, data)
    if not await crud_trading_account.debit_balance_if_sufficient(db, account.id, data.amount):
        await db.refresh(account)
        raise InsufficientBalance(f"Insufficient balance: requested {data.amount}, available {account.balance}")
    await db.refresh(account)
    admin_logger.info(f"Admin ID {identity.admin_id} removed {data.amount} from account ID {account.id}. Balance now {account.balance}")

    await audit_service.log_activity(
        db, identity.admin_id, "remove_funds", "trading_account", account.id,
        f"Removed {data.amount} {account.currency} from account {account.account_number}. Reason: {data.reason or 'N/A'}",
        user_id=user_id,
    )
    await notification_service.notify(
        db, user_id, "Funds removed",
        f"{data.amount} {account.currency} was removed from trading account {account.account_number}.",
        type="warning",
    )
    return account
