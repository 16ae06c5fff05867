"""Application configuration."""

import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    record_store: Literal["sqlite", "supabase"] = "sqlite"
    database_path: str = "data/field_capture.db"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "capture_records"
    media_dir: str = "data/media"
    location_timeout_ms: int = Field(default=10_000, gt=0)
    device_bridge_url: str = "http://127.0.0.1:8765"
    location_poll_interval_ms: int = Field(default=1000, gt=0)
    location_permission_granted: bool = True
    camera_permission_granted: bool = True
    api_token: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
