from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./invoicing.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 5  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 10  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "GST Invoice Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Invoice numbering
    INVOICE_NUMBER_PADDING: int = 4  # 4 = INV-0007
    DEFAULT_SERIES_NAME: str = "Default"
    DEFAULT_SERIES_PREFIX: str = "INV-"

    # Formatting
    CURRENCY_SYMBOL: str = "₹"
    AMOUNT_IN_WORDS_LANG: str = "en_IN"

    @field_validator('INVOICE_NUMBER_PADDING')
    @classmethod
    def validate_padding(cls, v):
        if v < 1:
            raise ValueError("INVOICE_NUMBER_PADDING must be at least 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
