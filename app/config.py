"""Application settings loaded from environment variables and an optional .env file."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TRACKER_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Technology Learning Tracker"
    app_version: str = "0.1.0"

    # Durable storage
    database_url: str = "sqlite:///./tracker.db"
    storage_slot_key: str = "technologies"

    # Import pipeline
    import_source_url: Optional[str] = None
    import_latency_seconds: float = 1.0
    import_timeout_seconds: float = 10.0
    # Hosts a caller-supplied sourceUrl may point at, besides import_source_url itself.
    import_allowed_hosts: list[str] = Field(default_factory=list)

    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"]
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


settings = Settings()
