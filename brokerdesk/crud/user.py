# brokerdesk/crud/user.py

import random
import string
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from brokerdesk.core.config import get_settings
from brokerdesk.database.models import User

logger = logging.getLogger(__name__)

settings = get_settings()


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def get_user_with_lock(db: AsyncSession, user_id: int) -> Optional[User]:
    """
    Fetches a user row with SELECT ... FOR UPDATE so concurrent referral
    decisions on the same user serialize.
    """
    result = await db.execute(
        select(User)
        .filter(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.email == email))
    return result.scalars().first()


async def get_user_by_referral_code(db: AsyncSession, code: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.referral_id == code))
    return result.scalars().first()


async def generate_unique_referral_code(db: AsyncSession) -> str:
    """
    Generates a referral code such as REFXYZ123 that no user holds yet.
    """
    alphabet = string.ascii_uppercase + string.digits
    while True:
        code = settings.REFERRAL_CODE_PREFIX + ''.join(random.choices(alphabet, k=settings.REFERRAL_CODE_LENGTH))
        if await get_user_by_referral_code(db, code) is None:
            return code


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    hashed_password: str,
    full_name: str,
    phone: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
    address: Optional[str] = None,
    referred_by_id: Optional[int] = None,
    referral_status: Optional[str] = None,
) -> User:
    db_user = User(
        email=email,
        hashed_password=hashed_password,
        full_name=full_name,
        phone=phone,
        country=country,
        city=city,
        address=address,
        referral_id=await generate_unique_referral_code(db),
        referred_by_id=referred_by_id,
        referral_status=referral_status,
    )
    db.add(db_user)
    await db.flush()
    await db.refresh(db_user)
    logger.info(f"Created user ID {db_user.id} ({email}) with referral code {db_user.referral_id}")
    return db_user


async def get_all_users(db: AsyncSession, skip: int = 0, limit: Optional[int] = None) -> List[User]:
    query = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_referred_users(
    db: AsyncSession,
    referrer_id: Optional[int] = None,
    referral_status: Optional[str] = None,
) -> List[User]:
    """
    Users that signed up with a referrer, newest first, with the referrer loaded.
    """
    query = (
        select(User)
        .filter(User.referred_by_id.is_not(None))
        .options(selectinload(User.referrer))
        .order_by(User.created_at.desc(), User.id.desc())
    )
    if referrer_id is not None:
        query = query.filter(User.referred_by_id == referrer_id)
    if referral_status is not None:
        query = query.filter(User.referral_status == referral_status)
    result = await db.execute(query)
    return list(result.scalars().all())
