"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class AlertingConfig(BaseModel):
    """Alert rule thresholds, cooldowns and delivery target."""

    model_config = ConfigDict(frozen=True)

    critical_cooldown_minutes: int = Field(default=30, ge=0)
    high_frequency_cooldown_minutes: int = Field(default=60, ge=0)
    high_frequency_threshold_count: int = Field(default=5, ge=1)
    high_frequency_window_minutes: int = Field(default=15, ge=1)
    recipient: str = "admin@company.com"
    delivery_timeout_secs: float = Field(default=10.0, gt=0)
    # An unfinished dispatch claim older than this is treated as abandoned.
    claim_timeout_secs: float = Field(default=300.0, gt=0)

    @model_validator(mode="after")
    def _claim_outlives_delivery(self) -> AlertingConfig:
        if self.claim_timeout_secs <= self.delivery_timeout_secs:
            raise ValueError("claim_timeout_secs must exceed delivery_timeout_secs")
        return self


class SchedulerConfig(BaseModel):
    """Periodic scan, health-check and retention timers."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    scan_interval_secs: float = Field(default=60.0, gt=0)
    scan_window_minutes: int = Field(default=5, ge=1)
    health_check_interval_secs: float = Field(default=300.0, gt=0)
    retention_interval_secs: float = Field(default=86400.0, gt=0)
    retention_days: int = Field(default=30, ge=1)
    health_recent_error_warning: int = Field(default=10, ge=0)


class NotifierConfig(BaseModel):
    """Notification sink selection and transport settings."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["log", "smtp", "webhook"] = "log"
    from_address: str = "alerts@errortracker.com"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: SecretStr = SecretStr("")
    smtp_starttls: bool = True
    webhook_url: SecretStr = SecretStr("")


class DatabaseConfig(BaseModel):
    """Relational store connection."""

    model_config = ConfigDict(frozen=True)

    url: str = "sqlite:///errortracker.db"
    echo: bool = False
    pool_timeout_secs: float = Field(default=30.0, gt=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    model_config = ConfigDict(frozen=True)

    alerting: AlertingConfig = AlertingConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    notifier: NotifierConfig = NotifierConfig()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
