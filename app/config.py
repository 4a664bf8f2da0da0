"""
Configuration management using pydantic-settings.
Loads environment variables with type validation.
"""

from functools import lru_cache
from typing import List

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
    app_name: str = "Teekoob Messaging"
    app_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str

    # JWT (tokens are issued by the auth service, only verified here)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Push provider (Expo)
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    expo_access_token: str = ""
    push_timeout_seconds: float = 10.0
    push_max_concurrency: int = 50

    # Random book broadcast
    broadcast_enabled: bool = True
    broadcast_interval_minutes: int = 2
    promotable_sample_size: int = 20
    fallback_sample_size: int = 10
    promotable_min_rating: float = 4.0

    # Inbox
    inbox_batch_size: int = 100

    # Rate limiting
    rate_limit_enabled: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.
    Use dependency injection in FastAPI routes.
    """
    return Settings()
