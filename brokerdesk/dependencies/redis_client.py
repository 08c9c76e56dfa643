# brokerdesk/dependencies/redis_client.py
from typing import Optional
import logging

from redis.asyncio import Redis

from brokerdesk.core.exceptions import BrokerDeskError
from brokerdesk.core.security import connect_to_redis

logger = logging.getLogger(__name__)

# Shared global instance, set by the application lifespan
global_redis_client_instance: Redis | None = None


async def get_redis_client() -> Redis:
    """Redis is mandatory for session endpoints (refresh tokens)."""
    global global_redis_client_instance
    if global_redis_client_instance is None:
        logger.warning("Redis client not initialized, attempting late connection.")
        global_redis_client_instance = await connect_to_redis()
        if global_redis_client_instance is None:
            raise BrokerDeskError("Redis unavailable", status_code=503)
    return global_redis_client_instance


async def get_optional_redis_client() -> Optional[Redis]:
    """Best-effort variant for publishing; callers cope with None."""
    return global_redis_client_instance
