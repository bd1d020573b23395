"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    storage_backend: str = "supabase"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    sessions_table: str = "wellness_sessions"
    autosave_quiet_seconds: float = 5.0
    request_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
