"""Incident Pilot configuration system using Pydantic Settings."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IncidentPilotConfig(BaseSettings):
    """Main configuration class. Loads from .env file and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Incident Pilot"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
    app_url: str = "http://localhost:8000"  # base for links in notifications
    seed_demo_data: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./incident_pilot.db"
    db_wal_mode: bool = True
    db_busy_timeout: int = 5000  # ms
    db_synchronous: str = "NORMAL"

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # AI analysis
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    ai_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 10.0
    ai_max_tokens: int = 500

    # SMTP
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_addr: str = "incidents@localhost"

    # Notifications
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 10.0
    notification_max_attempts: int = 3
    notification_retry_backoff_seconds: float = 2.0
    notification_queue_size: int = 1000

    # Similarity
    similarity_limit: int = 5
    similarity_threshold: float = 0.15

    @field_validator("db_synchronous")
    @classmethod
    def validate_db_synchronous(cls, v: str) -> str:
        allowed = {"OFF", "NORMAL", "FULL", "EXTRA"}
        if v.upper() not in allowed:
            raise ValueError(f"db_synchronous must be one of {allowed}")
        return v.upper()

    @field_validator("similarity_threshold")
    @classmethod
    def validate_similarity_threshold(cls, v: float) -> float:
        if not 0.0 <= v < 0.95:
            raise ValueError("similarity_threshold must be in [0, 0.95)")
        return v

    @field_validator("similarity_limit", "notification_max_attempts", "notification_queue_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator("ai_timeout_seconds", "notification_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host)

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent.parent


def get_config() -> IncidentPilotConfig:
    """Factory function to create config instance."""
    return IncidentPilotConfig()
