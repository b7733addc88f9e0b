"""Application configuration."""
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telnyx
    telnyx_api_key: str
    telnyx_connection_id: str
    telnyx_from_number: str
    telnyx_api_base_url: str = "https://api.telnyx.com/v2"
    telnyx_timeout_seconds: float = 10.0
    telnyx_record_mode: str = "record-from-answer"
    telnyx_answering_machine_detection: str = "detect"

    # Webhooks
    webhook_path: str = "/webhooks/provider"
    webhook_verification: Literal["enforce", "warn", "ignore"] = "warn"
    base_url: Optional[str] = None

    # Database
    database_url: str

    # Auth
    auth_secret: str
    auth_owner_id: str = "demo-user"

    # Server
    environment: Literal["development", "production"] = "development"
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
