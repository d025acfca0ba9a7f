"""
Storefront configuration with environment variable support.
Single-process deployment: API, WebSocket events and SQLite in one container.
"""
from pathlib import Path
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "SultanStamp"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./data/storefront.db"
    DB_ECHO: bool = False

    # Auth
    SESSION_TOKEN_TTL_DAYS: int = 7
    PASSWORD_RESET_TTL_MINUTES: int = 60
    GUEST_QUOTE_TOKEN_TTL_DAYS: int = 7
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_HASH_ITERATIONS: int = 100_000

    # Pricing
    TAX_RATE: float = 0.23
    DEFAULT_DEPOSIT_PCT: float = 50.0
    EMERGENCY_FEE_PCT: float = 20.0
    CURRENCY_SYMBOL: str = "€"

    # Messaging
    MESSAGE_MAX_LENGTH: int = 1000

    # Uploads
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # Booking calendar
    MAX_AVAILABILITY_RANGE_DAYS: int = 93

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW: int = 60  # Window in seconds
    RATE_LIMIT_MAX_AUTH: int = 10  # Login/register/reset attempts per window
    RATE_LIMIT_MAX_GUEST_QUOTES: int = 5  # Guest quote submissions per window
    MAX_RATE_LIMIT_KEYS: int = 10000

    # Storage
    DATA_DIR: Path = Path("./data")
    UPLOADS_DIR: Path = Path("./data/storage")

    # CORS (comma-separated string in .env, parsed to list)
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.DEBUG

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS string into list."""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()
