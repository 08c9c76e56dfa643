# brokerdesk/core/config.py

import os
from decimal import Decimal
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from urllib.parse import quote_plus
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Load environment variables from the project root .env, if present
dotenv_path = os.path.join(os.path.dirname(__file__), '..', '..', '.env')
loaded = load_dotenv(dotenv_path=dotenv_path)

if loaded:
    logger.info(".env file loaded successfully.")
else:
    logger.debug(".env file not found or not loaded.")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Project Settings ---
    PROJECT_NAME: str = "BrokerDesk"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # --- Database Settings ---
    DATABASE_NAME: str = ""
    DATABASE_USER: str = ""
    DATABASE_PASSWORD: str = ""
    DATABASE_HOST: str = "127.0.0.1"
    DATABASE_PORT: str = "3306"
    # Full URL override, e.g. sqlite+aiosqlite:///./brokerdesk.db for local runs
    DATABASE_URL: Optional[str] = None
    ECHO_SQL: bool = False

    # --- JWT Settings ---
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # --- Redis Settings ---
    REDIS_HOST: str = "127.0.0.1"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # --- Payment Gateway ---
    PAYMENT_GATEWAY_BASE_URL: str = "https://apitest.myfatoorah.com"
    PAYMENT_GATEWAY_API_KEY: str = ""
    PAYMENT_WEBHOOK_SECRET: str = ""
    PAYMENT_CALLBACK_URL: str = "http://localhost:3000/payments/callback"
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 15.0

    # --- IB / Referral Settings ---
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("5.00")
    REFERRAL_CODE_PREFIX: str = "REF"
    REFERRAL_CODE_LENGTH: int = 6
    REFERRAL_LINK_BASE: str = "http://localhost:3000/signup"
    DEFAULT_CURRENCY: str = "USD"

    # --- Logging ---
    LOG_DIR: Optional[str] = None

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+aiomysql://{quote_plus(self.DATABASE_USER)}:{quote_plus(self.DATABASE_PASSWORD)}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{quote_plus(self.DATABASE_NAME)}"
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings class.
    """
    settings_instance = Settings()
    logger.info(f"Settings instance loaded. Project: {settings_instance.PROJECT_NAME}, API Prefix: {settings_instance.API_V1_STR}")
    return settings_instance


settings = get_settings()
