from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "flower-ledger"
    SERVICE_NAME: str = "flower-ledger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Seoul"
    API_ROOT_PATH: str = ""

    # Database (empty -> in-memory storage)
    DATABASE_URL: Optional[str] = None

    # Ledger
    LEDGER_EXPIRY_DAYS: int = 30
    WELCOME_POINTS: int = 4900

    # Accrual rates
    BASE_BUYER_RATE: Decimal = Decimal("0.03")
    REFERRED_MEMBER_BUYER_RATE: Decimal = Decimal("0.05")
    REFERRED_GUEST_BUYER_RATE: Decimal = Decimal("0.05")
    REFERRER_RATE: Decimal = Decimal("0.03")
    ACCRUE_ON_DISCOUNTED_ORDERS: bool = True

    # Withdrawal
    WITHDRAWAL_MINIMUM: int = 5000
    WITHDRAWAL_STEP: int = 5000

    # Fulfillment
    COMMISSION_RATE: Decimal = Decimal("0.25")
    CENTRAL_DISPATCH_SLA_MINUTES: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
