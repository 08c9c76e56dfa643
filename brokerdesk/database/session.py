# brokerdesk/database/session.py

from typing import AsyncGenerator
import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from .base import Base
from brokerdesk.core.config import get_settings

db_logger = logging.getLogger("database")
logger = logging.getLogger(__name__)

settings = get_settings()

DATABASE_URL = settings.ASYNC_DATABASE_URL
logger.info(f"Database URL configured: {DATABASE_URL[:20]}...")


def build_engine(url: str, **overrides):
    """
    Creates the async engine with the service's pool settings.
    SQLite (local runs and tests) keeps its own default pool.
    """
    options = {"echo": settings.ECHO_SQL, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10, pool_recycle=1800)
    options.update(overrides)
    return create_async_engine(url, **options)


engine = build_engine(DATABASE_URL)

# expire_on_commit=False keeps loaded attributes usable after the endpoint commits
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get an asynchronous database session.
    Endpoints commit explicitly; anything raised while the session is in use
    rolls the whole unit of work back.
    """
    db_logger.debug("Creating new database session")
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            db_logger.error(f"Error in database session, rolling back: {e}")
            await session.rollback()
            raise
        finally:
            db_logger.debug("Closing database session")


async def create_all_tables(bind=None):
    """
    Creates all tables defined in the models. Migrations are preferred in production.
    """
    from . import models  # noqa: F401  registers the tables on Base.metadata
    async with (bind or engine).begin() as conn:
        logger.info("Running Base.metadata.create_all...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Base.metadata.create_all finished.")
