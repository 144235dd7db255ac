"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = "http://localhost:8080"
    admin_user_id: str = "admin_user_001"
    user_id_header: str = "X-User-Id"
    identity_file: str = ".attendance_identity.json"
    retry_attempts: int = 3
    retry_backoff_seconds: float = 1.0
    request_timeout_seconds: float = 10
    min_token_length: int = 10
    scan_fps: int = 10
    scan_region_size: int = 250
    camera_probe_limit: int = 4
    raster_default_size: int = 512
    qr_size: int = 256
    qr_margin: int = 2
    qr_render_url: str = "https://api.qrserver.com/v1/create-qr-code/"
    export_dir: str = "."
    session_duration_minutes: int = 5
    tick_interval_seconds: float = 1.0
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
