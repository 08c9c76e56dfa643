# brokerdesk/core/security.py

from typing import Any, Optional
from datetime import datetime, timedelta, timezone
import json
import logging

from passlib.context import CryptContext
from jose import jwt, JWTError
from redis import asyncio as aioredis

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from brokerdesk.core.config import get_settings
from brokerdesk.core.exceptions import Forbidden, Unauthorized
from brokerdesk.database.models import AdminCountryAssignment, AdminUser, User
from brokerdesk.database.session import get_db
from brokerdesk.services.admin_scope import AdminIdentity, SuperAdmin, identity_for, AdminRole

logger = logging.getLogger(__name__)

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

USER_TYPE_CLIENT = "live"
USER_TYPE_ADMIN = "admin"


# --- Password Hashing Functions ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- JWT Functions ---
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = _utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": _utcnow()})
    logger.debug(f"Creating access token for sub={to_encode.get('sub')} type={to_encode.get('user_type')}")
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = _utcnow() + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    to_encode.update({"exp": expire, "iat": _utcnow(), "token_use": "refresh"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decodes a JWT token and returns the payload.
    Raises JWTError for any invalid, expired or tampered token.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWTError in decode_token: {type(e).__name__} - {e}")
        raise JWTError("Could not validate credentials")


# --- Redis Integration ---

async def connect_to_redis() -> Optional[aioredis.Redis]:
    logger.info(f"Connecting to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT} (db {settings.REDIS_DB})")
    try:
        client = aioredis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            decode_responses=True
        )
        await client.ping()
        logger.info("Connected to Redis")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}", exc_info=True)
        return None


async def close_redis_connection(client: Optional[aioredis.Redis]):
    if client:
        logger.info("Closing Redis connection...")
        try:
            await client.aclose()
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}", exc_info=True)


async def store_refresh_token(
    client: aioredis.Redis,
    subject_id: int,
    refresh_token: str,
    user_type: str,
):
    """
    Stores a refresh token in Redis so it can be checked and revoked later.
    """
    redis_key = f"refresh_token:{refresh_token}"
    expiry_seconds = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    token_data = {
        "user_id": subject_id,
        "user_type": user_type,
        "expires_at": (_utcnow() + timedelta(seconds=expiry_seconds)).isoformat()
    }
    await client.set(redis_key, json.dumps(token_data), ex=expiry_seconds)
    logger.info(f"Refresh token stored for {user_type} ID {subject_id}")


async def get_refresh_token_data(client: aioredis.Redis, refresh_token: str) -> dict[str, Any] | None:
    redis_key = f"refresh_token:{refresh_token}"
    token_data_json = await client.get(redis_key)
    if not token_data_json:
        logger.info("No refresh token data found in Redis")
        return None
    try:
        return json.loads(token_data_json)
    except json.JSONDecodeError:
        logger.error(f"Failed to decode refresh token data stored at {redis_key[:40]}...")
        return None


async def delete_refresh_token(client: aioredis.Redis, refresh_token: str):
    deleted_count = await client.delete(f"refresh_token:{refresh_token}")
    if deleted_count:
        logger.info("Refresh token revoked")
    else:
        logger.warning("Attempted to revoke a refresh token that was not stored")


# --- Authentication Dependencies ---

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/signin", auto_error=False)


def _subject_from_token(token: Optional[str], expected_type: str) -> int:
    if token is None:
        logger.warning("Access token is missing.")
        raise Unauthorized()
    try:
        payload = decode_token(token)
    except JWTError:
        raise Unauthorized("Could not validate credentials")

    subject = payload.get("sub")
    if subject is None or payload.get("user_type") != expected_type or payload.get("token_use") == "refresh":
        logger.warning(f"Token rejected for {expected_type} route. Payload type: {payload.get('user_type')}")
        raise Unauthorized("Could not validate credentials")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise Unauthorized("Could not validate credentials")


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolves the authenticated client from a bearer access token.
    Disabled clients are treated as unauthenticated.
    """
    user_id = _subject_from_token(token, USER_TYPE_CLIENT)
    user = await db.get(User, user_id)
    if user is None or not user.enabled:
        logger.warning(f"Client ID {user_id} from access token not found or disabled.")
        raise Unauthorized("Could not validate credentials")
    return user


async def get_current_admin(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> AdminUser:
    """
    Resolves the authenticated administrator. A disabled admin is rejected the
    same way as a missing session.
    """
    admin_id = _subject_from_token(token, USER_TYPE_ADMIN)
    admin = await db.get(AdminUser, admin_id)
    if admin is None or not admin.enabled:
        logger.warning(f"Admin ID {admin_id} from access token not found or disabled.")
        raise Unauthorized("Admin authentication required")
    return admin


async def get_admin_identity(
    admin: AdminUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> AdminIdentity:
    """
    Builds the scoped identity for the current admin; middle admins carry the
    countries assigned to them.
    """
    countries: list[str] = []
    if admin.role == AdminRole.MIDDLE_ADMIN.value:
        result = await db.execute(
            select(AdminCountryAssignment.country).filter(AdminCountryAssignment.admin_id == admin.id)
        )
        countries = list(result.scalars().all())
    try:
        return identity_for(admin.id, admin.role, countries)
    except ValueError:
        logger.error(f"Admin ID {admin.id} has unknown role '{admin.role}'")
        raise Forbidden("Unknown admin role")


async def require_super_admin(identity: AdminIdentity = Depends(get_admin_identity)) -> SuperAdmin:
    if not isinstance(identity, SuperAdmin):
        logger.warning(f"Admin ID {identity.admin_id} attempted a super-admin action.")
        raise Forbidden("Super admin privileges required")
    return identity
