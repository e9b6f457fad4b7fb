"""Configuration loading for mdns_browser."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError


@dataclass
class DiscoveryConfig:
    """Configuration for mDNS browsing."""

    service_types: list[str] = field(default_factory=list)
    auto_detect: bool = True  # Browse every type the meta query reports
    resolve_timeout_ms: int = 3000
    queue_size: int = 4096  # Oldest events are dropped beyond this


@dataclass
class UIConfig:
    poll_timeout_seconds: float = 0.05
    batch_limit: int = 256  # Events applied per frame
    show_dead: bool = True


@dataclass
class LoggingConfig:
    level: str = "warning"
    file: str | None = None
    json: bool = False


@dataclass
class Config:
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


LOG_LEVELS = ("warning", "info", "debug")


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with MDNS_BROWSER_ prefix."""
    return os.environ.get(f"MDNS_BROWSER_{key}", default)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "yes")


def _as_number(value: Any, kind: type, name: str) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


def _as_type_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        return [str(part) for part in value]
    raise ConfigError(f"service_types must be a list, got {value!r}")


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if types := _get_env("DISCOVERY_SERVICE_TYPES"):
        config.discovery.service_types = _as_type_list(types)
    if auto := _get_env("DISCOVERY_AUTO_DETECT"):
        config.discovery.auto_detect = _as_bool(auto)
    if timeout := _get_env("DISCOVERY_RESOLVE_TIMEOUT_MS"):
        config.discovery.resolve_timeout_ms = _as_number(timeout, int, "resolve_timeout_ms")
    if size := _get_env("DISCOVERY_QUEUE_SIZE"):
        config.discovery.queue_size = _as_number(size, int, "queue_size")

    if poll := _get_env("UI_POLL_TIMEOUT"):
        config.ui.poll_timeout_seconds = _as_number(poll, float, "poll_timeout_seconds")
    if batch := _get_env("UI_BATCH_LIMIT"):
        config.ui.batch_limit = _as_number(batch, int, "batch_limit")
    if show_dead := _get_env("UI_SHOW_DEAD"):
        config.ui.show_dead = _as_bool(show_dead)

    if level := _get_env("LOG_LEVEL"):
        config.logging.level = level.lower()
    if log_file := _get_env("LOG_FILE"):
        config.logging.file = log_file
    if log_json := _get_env("LOG_JSON"):
        config.logging.json = _as_bool(log_json)

    return config


def _validate(config: Config) -> Config:
    if config.discovery.queue_size < 1:
        raise ConfigError("discovery.queue_size must be at least 1")
    if config.discovery.resolve_timeout_ms < 1:
        raise ConfigError("discovery.resolve_timeout_ms must be positive")
    if config.ui.batch_limit < 1:
        raise ConfigError("ui.batch_limit must be at least 1")
    if config.ui.poll_timeout_seconds <= 0:
        raise ConfigError("ui.poll_timeout_seconds must be positive")
    if config.logging.level not in LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(LOG_LEVELS)}, "
            f"got {config.logging.level!r}"
        )
    return config


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return section


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None or missing, defaults
            are used.

    Returns:
        Loaded and validated Config object.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    config = Config()

    if config_path:
        path = Path(config_path).expanduser()
        if path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Could not read config {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config {path} must contain a mapping")

            # Parse discovery config
            if "discovery" in data:
                disc_data = _section(data, "discovery")
                config.discovery = DiscoveryConfig(
                    service_types=_as_type_list(
                        disc_data.get("service_types", config.discovery.service_types)
                    ),
                    auto_detect=_as_bool(
                        disc_data.get("auto_detect", config.discovery.auto_detect)
                    ),
                    resolve_timeout_ms=_as_number(
                        disc_data.get("resolve_timeout_ms", config.discovery.resolve_timeout_ms),
                        int,
                        "resolve_timeout_ms",
                    ),
                    queue_size=_as_number(
                        disc_data.get("queue_size", config.discovery.queue_size),
                        int,
                        "queue_size",
                    ),
                )

            # Parse UI config
            if "ui" in data:
                ui_data = _section(data, "ui")
                config.ui = UIConfig(
                    poll_timeout_seconds=_as_number(
                        ui_data.get("poll_timeout_seconds", config.ui.poll_timeout_seconds),
                        float,
                        "poll_timeout_seconds",
                    ),
                    batch_limit=_as_number(
                        ui_data.get("batch_limit", config.ui.batch_limit),
                        int,
                        "batch_limit",
                    ),
                    show_dead=_as_bool(ui_data.get("show_dead", config.ui.show_dead)),
                )

            # Parse logging config
            if "logging" in data:
                log_data = _section(data, "logging")
                config.logging = LoggingConfig(
                    level=str(log_data.get("level", config.logging.level)).lower(),
                    file=log_data.get("file", config.logging.file),
                    json=_as_bool(log_data.get("json", config.logging.json)),
                )

    return _validate(_apply_env_overrides(config))
