# brokerdesk/api/v1/endpoints/auth.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from jose import JWTError
import logging

from brokerdesk.database.session import get_db
from brokerdesk.database.models import AdminUser, User
from brokerdesk.core.exceptions import Unauthorized
from brokerdesk.core.security import (
    USER_TYPE_ADMIN,
    USER_TYPE_CLIENT,
    create_access_token,
    create_refresh_token,
    decode_token,
    delete_refresh_token,
    get_current_admin,
    get_current_user,
    get_refresh_token_data,
    store_refresh_token,
    verify_password,
)
from brokerdesk.crud import admin_user as crud_admin_user
from brokerdesk.crud import user as crud_user
from brokerdesk.dependencies.redis_client import get_redis_client
from brokerdesk.schemas.admin_user import AdminResponse
from brokerdesk.schemas.auth import AccessToken, AdminSignin, RefreshTokenRequest, StatusResponse, Token
from brokerdesk.schemas.user import UserResponse, UserSignin, UserSignup
from brokerdesk.services import admin_service, referral_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


async def _issue_tokens(redis_client: Redis, subject_id: int, user_type: str) -> Token:
    claims = {"sub": str(subject_id), "user_type": user_type}
    access_token = create_access_token(claims)
    refresh_token = create_refresh_token(claims)
    await store_refresh_token(redis_client, subject_id, refresh_token, user_type)
    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post("/auth/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: UserSignup, db: AsyncSession = Depends(get_db)):
    """
    Registers a client. A ``ref`` code or link that matches an existing client
    records them as the referrer with a Pending referral; anything else is ignored.
    """
    user = await referral_service.signup_user(db, data)
    await db.commit()
    logger.info(f"Client signed up: ID {user.id}, referred_by={user.referred_by_id}")
    return user


@router.post("/auth/signin", response_model=Token)
async def signin(
    data: UserSignin,
    db: AsyncSession = Depends(get_db),
    redis_client: Redis = Depends(get_redis_client),
):
    user = await crud_user.get_user_by_email(db, data.email.lower())
    if user is None or not verify_password(data.password, user.hashed_password):
        logger.warning(f"Failed client signin for {data.email}")
        raise Unauthorized("Invalid email or password")
    if not user.enabled:
        raise Unauthorized("Account is disabled")
    return await _issue_tokens(redis_client, user.id, USER_TYPE_CLIENT)


@router.post("/auth/refresh", response_model=AccessToken)
async def refresh_access_token(
    data: RefreshTokenRequest,
    redis_client: Redis = Depends(get_redis_client),
):
    """Exchanges a stored refresh token for a new access token."""
    try:
        payload = decode_token(data.refresh_token)
    except JWTError:
        raise Unauthorized("Invalid refresh token")
    if payload.get("token_use") != "refresh":
        raise Unauthorized("Invalid refresh token")

    stored = await get_refresh_token_data(redis_client, data.refresh_token)
    if stored is None or str(stored.get("user_id")) != str(payload.get("sub")):
        raise Unauthorized("Refresh token revoked or unknown")

    access_token = create_access_token({"sub": str(payload["sub"]), "user_type": payload.get("user_type")})
    return AccessToken(access_token=access_token)


@router.post("/auth/logout", response_model=StatusResponse)
async def logout(
    data: RefreshTokenRequest,
    redis_client: Redis = Depends(get_redis_client),
):
    await delete_refresh_token(redis_client, data.refresh_token)
    return StatusResponse(message="Logged out")


@router.get("/auth/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/admin/auth/signin", response_model=Token)
async def admin_signin(
    data: AdminSignin,
    db: AsyncSession = Depends(get_db),
    redis_client: Redis = Depends(get_redis_client),
):
    admin = await crud_admin_user.get_admin_by_username(db, data.username)
    if admin is None or not verify_password(data.password, admin.hashed_password):
        logger.warning(f"Failed admin signin for {data.username}")
        raise Unauthorized("Invalid username or password")
    if not admin.enabled:
        raise Unauthorized("Admin account is disabled")
    logger.info(f"Admin ID {admin.id} ({admin.role}) signed in")
    return await _issue_tokens(redis_client, admin.id, USER_TYPE_ADMIN)


@router.get("/admin/auth/me", response_model=AdminResponse)
async def read_admin_me(
    current_admin: AdminUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.to_response(db, current_admin)
