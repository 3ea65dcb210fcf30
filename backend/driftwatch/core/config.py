"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Driftwatch"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["local", "development", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./driftwatch.sqlite"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"
    CELERY_TIMEZONE: str = "America/New_York"
    PRICE_REFRESH_HOUR: int = 17  # 5 PM ET
    PRICE_REFRESH_MINUTE: int = 30

    # Drift evaluation
    DRIFT_THRESHOLD_DEFAULT: float = 0.05  # absolute weight delta

    # Market Data Provider
    PRICE_PROVIDER: Literal["stooq", "yfinance"] = "stooq"
    PRICE_FETCH_TIMEOUT_SEC: float = 10.0
    STOOQ_BASE_URL: str = "https://stooq.com/q/l/"
    HTTP_USER_AGENT: str = "driftwatch/0.1"

    # Symbol directory (holding allow-list)
    SYMBOL_LIST_URLS: list[str] = [
        "https://www.nasdaqtrader.com/dynamic/SymDir/nasdaqlisted.txt",
        "https://www.nasdaqtrader.com/dynamic/SymDir/otherlisted.txt",
    ]
    SYMBOL_LIST_TTL_SEC: int = 12 * 60 * 60
    SYMBOL_LIST_TIMEOUT_SEC: float = 15.0

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    @property
    def sync_database_url(self) -> str:
        """Get synchronous database URL for Alembic migrations."""
        return self.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")


# Global settings instance
settings = Settings()
