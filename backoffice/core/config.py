from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Back Office Ledgers API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Payables and receivables for the small-business back office"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "backoffice"

    # Cache
    CACHE_BACKEND: str = "hybrid"  # "memory" or "hybrid" (mongo primary, memory fallback)
    CACHE_KEY_PREFIX: str = "ledger"
    CACHE_LIST_TTL_SECONDS: int = 120
    CACHE_MAX_ENTRIES: int = 1000

    # Ledgers
    PAYABLE_NUMBER_PREFIX: str = "CP"
    RECEIVABLE_NUMBER_PREFIX: str = "CR"
    DEFAULT_DAILY_INTEREST_RATE: Decimal = Decimal("0.0011")  # 0.033 over 30 days
    INVOICE_DEFAULT_TERM_DAYS: int = 30

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
