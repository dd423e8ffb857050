"""Configuration loading from environment variables and floraguard.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_HOME_DIR = Path.home() / ".floraguard"
_DEFAULT_DATA_DIR = _HOME_DIR / "data"
_CONFIG_FILENAME = "floraguard.toml"


def _as_bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Configuration for the AI engine."""

    name: str = "anthropic_api"
    fallback: str | None = None
    model: str = "claude-sonnet-4-5-20250929"
    timeout: int = 120
    max_tokens: int = 4096


@dataclass
class SchedulerConfig:
    """Reminder scheduler configuration."""

    check_interval: int = 60


@dataclass
class NotificationConfig:
    """Notification channel configuration."""

    channel: str = "console"
    enabled: bool = True


@dataclass
class FloraGuardConfig:
    """Top-level FloraGuard configuration."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    data_dir: Path = _DEFAULT_DATA_DIR
    pid_file: Path = _HOME_DIR / "floraguard.pid"
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> FloraGuardConfig:
    """Load configuration from environment variables and optional floraguard.toml.

    Priority: environment variables > floraguard.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.floraguard/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _HOME_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    engine_data = file_data.get("engine", {})
    scheduler_data = file_data.get("scheduler", {})
    notifications_data = file_data.get("notifications", {})

    config = FloraGuardConfig(
        engine=EngineConfig(
            name=os.getenv("FLORAGUARD_ENGINE", engine_data.get("name", "anthropic_api")),
            fallback=os.getenv("FLORAGUARD_FALLBACK", engine_data.get("fallback")),
            model=os.getenv(
                "FLORAGUARD_MODEL", engine_data.get("model", "claude-sonnet-4-5-20250929")
            ),
            timeout=int(os.getenv("FLORAGUARD_TIMEOUT", engine_data.get("timeout", 120))),
            max_tokens=int(engine_data.get("max_tokens", 4096)),
        ),
        scheduler=SchedulerConfig(
            check_interval=int(
                os.getenv("FLORAGUARD_CHECK_INTERVAL", scheduler_data.get("check_interval", 60))
            ),
        ),
        notifications=NotificationConfig(
            channel=notifications_data.get("channel", "console"),
            enabled=_as_bool(
                os.getenv("FLORAGUARD_NOTIFICATIONS", notifications_data.get("enabled", True))
            ),
        ),
        data_dir=Path(
            os.getenv("FLORAGUARD_DATA_DIR", file_data.get("data_dir", str(_DEFAULT_DATA_DIR)))
        ).expanduser(),
        log_level=os.getenv("FLORAGUARD_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
