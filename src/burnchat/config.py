"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_key: str
    supabase_service_key: str | None = None
    cleanup_token: str
    storage_dir: str = "~/.burnchat"
    app_base_url: str = "http://localhost:8080"
    chat_ttl_seconds: int = 24 * 60 * 60
    prune_interval_seconds: float = 1.0
    lazy_key_creation: bool = False
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def reaper_key(self) -> str:
        """Key used by the cleanup job; prefers the service key."""
        return self.supabase_service_key or self.supabase_key
