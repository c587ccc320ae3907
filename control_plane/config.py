# control_plane/config.py
"""
Application Configuration
Uses pydantic-settings for environment variable management
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    Create a .env file for local development
    """

    # === Application ===
    APP_NAME: str = "Relay Fleet Control Plane"
    APP_VERSION: str = "1.0.0"
    ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === API ===
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"

    # === Database ===
    DATABASE_URL: str = "sqlite:///./relayfleet.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # === Node Provisioning ===
    # Shared secret presented by node agents; empty disables the node endpoints
    NODE_PROVISION_TOKEN: str = ""
    SEED_DEFAULT_REGIONS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance
    Use this function to access settings throughout the app
    """
    return Settings()


settings = get_settings()
