"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables (prefixed ``CHATLEDGER_``) and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Paths / storage
    data_dir: Path = Path("data")
    db_path: Path = Path("data/chatledger.db")
    store_backend: str = "memory"  # "memory" or "sqlite"

    # Credential validation
    validation_ttl_seconds: int = 24 * 60 * 60
    validation_rate_limit: int = 5
    validation_rate_window_seconds: float = 60.0

    # Tool gateway
    tool_timeout_seconds: float = 30.0

    # Extraction jobs
    job_max_attempts: int = 3
    job_backoff_initial_seconds: float = 1.0
    job_backoff_max_seconds: float = 30.0

    # Monitoring
    monitor_max_consecutive_failures: int = 5
    monitor_backoff_max_seconds: float = 600.0

    # Webhooks
    webhook_timeout_seconds: float = 10.0
    webhook_max_attempts: int = 3

    # Fixture executors (demo data instead of real scraping)
    fixture_latency_seconds: float = 0.5

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_rate_limit_rpm: int = 120

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CHATLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
