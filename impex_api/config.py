"""
Configuration and settings for the API server.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Runtime mode; "production" hides stack traces and restricts CORS.
    app_env: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )
    log_level: str = Field(default="INFO")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=0, le=65535)
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["https://impexinfo.com"]
    )

    # Document store (MongoDB)
    mongo_uri: Optional[str] = Field(default=None)
    mongo_db_name: str = Field(default="impexinfo")
    mongo_server_selection_timeout_ms: int = Field(default=30000)
    mongo_socket_timeout_ms: int = Field(default=45000)
    mongo_max_pool_size: int = Field(default=10)
    db_retry_delay_seconds: float = Field(default=5.0)

    # Mail relay (SMTP)
    email_user: Optional[str] = Field(default=None)
    email_pass: Optional[str] = Field(default=None)
    admin_email: Optional[str] = Field(default=None)
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=465)
    smtp_timeout: float = Field(default=30.0)

    # Branding used in email and status page templates
    brand_name: str = Field(default="ImpexInfo")
    site_url: str = Field(default="https://impexinfo.com")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
