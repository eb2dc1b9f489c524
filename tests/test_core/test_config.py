"""Tests for errortracker/core/config.py — YAML loading, defaults, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest
import yaml

from errortracker.core.config import (
    AlertingConfig,
    LoggingConfig,
    NotifierConfig,
    SchedulerConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have the documented defaults when no YAML is provided."""

    def test_default_alerting_config(self) -> None:
        cfg = AlertingConfig()
        assert cfg.critical_cooldown_minutes == 30
        assert cfg.high_frequency_cooldown_minutes == 60
        assert cfg.high_frequency_threshold_count == 5
        assert cfg.high_frequency_window_minutes == 15
        assert cfg.recipient == "admin@company.com"

    def test_default_scheduler_config(self) -> None:
        cfg = SchedulerConfig()
        assert cfg.enabled is True
        assert cfg.scan_interval_secs == 60
        assert cfg.scan_window_minutes == 5
        assert cfg.health_check_interval_secs == 300
        assert cfg.retention_days == 30

    def test_default_notifier_is_log(self) -> None:
        assert NotifierConfig().mode == "log"

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.alerting.high_frequency_threshold_count == 5
        assert s.scheduler.enabled is True
        assert s.database.url.startswith("sqlite")


class TestImmutability:
    def test_config_is_frozen(self) -> None:
        cfg = AlertingConfig()
        with pytest.raises(pydantic.ValidationError):
            cfg.critical_cooldown_minutes = 5  # type: ignore[misc]

    def test_invalid_threshold_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertingConfig(high_frequency_threshold_count=0)

    def test_invalid_interval_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            SchedulerConfig(scan_interval_secs=0)

    def test_claim_timeout_must_exceed_delivery_timeout(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AlertingConfig(delivery_timeout_secs=30.0, claim_timeout_secs=30.0)
        config = AlertingConfig(delivery_timeout_secs=30.0, claim_timeout_secs=60.0)
        assert config.claim_timeout_secs == 60.0

    def test_unknown_notifier_mode_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            NotifierConfig(mode="carrier-pigeon")  # type: ignore[arg-type]


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "alerting": {
                "critical_cooldown_minutes": 10,
                "high_frequency_threshold_count": 3,
                "recipient": "oncall@example.com",
            },
            "scheduler": {"enabled": False, "scan_window_minutes": 2},
            "notifier": {"mode": "smtp", "smtp_password": "hunter2"},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.alerting.critical_cooldown_minutes == 10
        assert settings.alerting.high_frequency_threshold_count == 3
        assert settings.alerting.recipient == "oncall@example.com"
        assert settings.scheduler.enabled is False
        assert settings.scheduler.scan_window_minutes == 2
        assert settings.notifier.mode == "smtp"
        assert settings.notifier.smtp_password.get_secret_value() == "hunter2"
        assert settings.logging.level == "DEBUG"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.alerting.critical_cooldown_minutes == 30

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.scheduler.retention_days == 30

    def test_partial_yaml_merges_with_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"alerting": {"critical_cooldown_minutes": 1}}))

        settings = load_settings(config_file)
        assert settings.alerting.critical_cooldown_minutes == 1
        assert settings.alerting.high_frequency_cooldown_minutes == 60
        assert settings.scheduler.scan_interval_secs == 60

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"alerting": {"recipient": "x@example.com"}}))
        load_settings(config_file)
        assert get_settings().alerting.recipient == "x@example.com"
        assert get_settings() is get_settings()


class TestSecretStr:
    def test_secret_str_repr_does_not_leak(self) -> None:
        cfg = NotifierConfig(
            smtp_password="super-secret",  # type: ignore[arg-type]
            webhook_url="https://hooks.example.com/token",  # type: ignore[arg-type]
        )
        repr_str = repr(cfg)
        assert "super-secret" not in repr_str
        assert "hooks.example.com" not in repr_str
        assert "**********" in repr_str
