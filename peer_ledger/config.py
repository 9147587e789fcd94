"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="PEER_LEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./peer_ledger.db"
    ledger_key: str = "default"

    # Service
    service_name: str = "peer-ledger"
    log_level: str = "INFO"

    # Overdue sweep
    sweep_enabled: bool = True
    sweep_interval_seconds: float = 60.0

    # Change feed webhook (disabled when unset)
    change_feed_url: Optional[str] = None

    # HTTP Client
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = 5
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds


settings = Settings()
