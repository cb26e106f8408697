"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./deaftube.db",
        description="SQLAlchemy connection string",
    )
    db_create_all: bool = Field(
        default=True,
        description="Create missing tables at startup (disable when running Alembic)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3000, description="API server port")
    api_reload: bool = Field(default=False, description="Enable auto-reload for development")

    # Identity
    jwt_secret: str = Field(
        default="deaftube_secret_2024",
        description="Secret used to sign bearer tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="Bearer token signing algorithm")
    token_lifetime_seconds: int = Field(
        default=7 * 24 * 3600,
        description="Bearer token lifetime in seconds (default 7 days)",
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor for password hashes",
    )

    # Uploads
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Root directory for uploaded videos, thumbnails, captions and avatars",
    )
    max_video_bytes: int = Field(
        default=500 * 1024 * 1024,
        description="Maximum accepted video upload size in bytes",
    )

    # Feed
    feed_page_size: int = Field(default=12, description="Default number of videos per feed page")

    # Engagement ledger
    ledger_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for a reaction/subscription toggle before reporting contention",
    )

    # Defaults applied to user and video records
    default_sign_language: str = Field(default="ASL", description="Sign language for new users")
    default_category: str = Field(default="General", description="Category for new videos")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Convenience alias
settings = get_settings()
