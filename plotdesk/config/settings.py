"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
Notification channels without credentials run in simulated mode.
"""

from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["sqlite", "memory"] = "sqlite"
    data_dir: Path = Path("data")
    db_name: str = "plotdesk.db"

    # SQLite settings
    pool_size: int = 5
    busy_timeout: int = 30000  # ms

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]


class ReminderSettings(BaseSettings):
    """Reminder lifecycle and scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="REMINDER_")

    scan_interval_hours: float = 24.0
    default_currency: str = "INR"
    default_country_code: str = "91"
    autostart: bool = True
    company_name: str = "SOMANING KOLI PROPERTY"
    timezone: str = "Asia/Kolkata"  # IANA name; due dates in messages use this calendar

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @property
    def scan_interval_seconds(self) -> float:
        return self.scan_interval_hours * 3600

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class NotifySettings(BaseSettings):
    """Shared delivery settings for every notification channel."""

    model_config = SettingsConfigDict(env_prefix="NOTIFY_")

    timeout: float = 15.0  # seconds, per attempt
    max_retries: int = 3  # attempts per send, the first one included
    retry_delay: float = 1.0
    retry_multiplier: float = 2.0  # backoff base between attempts

    @property
    def send_budget(self) -> float:
        """Worst-case seconds for one channel send, every attempt and backoff included."""
        attempts = max(1, self.max_retries)
        cap = self.retry_delay * self.retry_multiplier**3
        waits = sum(
            min(self.retry_delay * self.retry_multiplier**n, cap) for n in range(attempts - 1)
        )
        return self.timeout * attempts + waits


class WhatsAppSettings(BaseSettings):
    """WhatsApp API configuration."""

    model_config = SettingsConfigDict(env_prefix="WHATSAPP_")

    enabled: bool = False
    api_url: str = "https://api.whatsapp.local"
    api_key: str | None = None


class SMSSettings(BaseSettings):
    """SMS gateway configuration."""

    model_config = SettingsConfigDict(env_prefix="SMS_")

    enabled: bool = False
    api_url: str = "https://api.sms.local"
    api_key: str | None = None
    sender_id: str = "SOMANING"


class EmailSettings(BaseSettings):
    """Transactional email API configuration."""

    model_config = SettingsConfigDict(env_prefix="EMAIL_")

    enabled: bool = False
    api_url: str = "https://api.email.local"
    api_key: str | None = None
    from_address: str = "reminders@plotdesk.local"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Plot Desk"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)
    reminder: ReminderSettings = Field(default_factory=ReminderSettings)
    notify: NotifySettings = Field(default_factory=NotifySettings)
    whatsapp: WhatsAppSettings = Field(default_factory=WhatsAppSettings)
    sms: SMSSettings = Field(default_factory=SMSSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        if isinstance(v, dict):
            settings = StorageSettings(**v)
        else:
            settings = v or StorageSettings()
        if settings.backend == "sqlite":
            settings.data_dir.mkdir(parents=True, exist_ok=True)
        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
