"""Pydantic settings for ProjectDesk runtime configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_dir() -> Path:
    """Get the user configuration directory (not created)."""
    return Path.home() / ".projectdesk"


def get_config_path() -> Path:
    """Get the path to the user config file."""
    return get_config_dir() / "config.yaml"


def _load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file if it exists.

    Returns:
        Dictionary of configuration values, or empty dict if file doesn't exist.
    """
    if path.exists():
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError):
            # Malformed or unreadable config falls back to defaults
            return {}
        return data if isinstance(data, dict) else {}
    return {}


class LockSettings(BaseModel):
    """Bounded waits for the workspace lock."""

    wait_seconds: float = 30.0
    intake_wait_seconds: float = 300.0
    edit_wait_seconds: float = 10.0
    poll_interval: float = 0.1


class RetrySettings(BaseModel):
    """Exponential backoff policy for provider calls."""

    attempts: int = 5
    base_delay_ms: int = 250
    max_delay_ms: int = 5000


class MailSettings(BaseModel):
    """Outgoing mail settings."""

    backend: Literal["outbox", "smtp"] = "outbox"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_use_tls: bool = True
    smtp_username: str | None = None
    smtp_password: str | None = None
    sender_address: str = "projectdesk@localhost"
    sender_name: str = "Teaming Tool"


class Settings(BaseSettings):
    """Main settings model for ProjectDesk."""

    model_config = SettingsConfigDict(
        env_prefix="PROJECTDESK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    lock: LockSettings = Field(default_factory=LockSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    mail: MailSettings = Field(default_factory=MailSettings)

    # Account that owns provisioned folders and the calendar
    owner_address: str = "automation@localhost"


def load_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """Build a settings instance for one invocation.

    Values come from the YAML config file (``config_path`` or
    ~/.projectdesk/config.yaml), PROJECTDESK_* environment variables and
    defaults. Keyword overrides win over the file.

    Args:
        config_path: YAML file to read instead of the user config file.
        **overrides: Values that win over the file contents.

    Returns:
        A fresh Settings object; callers pass it down explicitly.
    """
    yaml_config = _load_yaml_config(config_path or get_config_path())
    yaml_config.update(overrides)
    return Settings(**yaml_config)
