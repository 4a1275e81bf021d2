"""
Configuration management for arif-music.

This module handles loading, validating, and providing access to the
client configuration stored in config.yaml.

The configuration file contains:
    - Base URL and timeout of the Arif Music REST API
    - Data directory holding the local SQLite cache and the session file
    - Connectivity probe interval
    - Playback clock cadence
    - Logging level and log file toggle

Configuration File Location:
    config.yaml in the current working directory, unless an explicit
    path is passed to load_config(). A missing default file is not an
    error: every section has defaults.

Environment Overrides (a .env file is honoured via python-dotenv):
    ARIF_API_URL    -> api.base_url
    ARIF_DATA_DIR   -> storage.data_dir
    ARIF_LOG_LEVEL  -> logging.level

Example config.yaml:
    api:
      base_url: "http://localhost:5000"
      timeout: 15

    storage:
      data_dir: "~/.arif-music"

    network:
      probe_interval: 30

    playback:
      tick_interval_ms: 1000

    logging:
      level: "INFO"
      file: true
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from arif_music.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"
DATABASE_FILENAME = "arif_music.db"
SESSION_FILENAME = "session.json"

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_DATA_DIR = "~/.arif-music"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ApiConfig:
    """
    REST API settings.

    Attributes:
        base_url: Root URL of the Arif Music API, without trailing slash.
                  Example: "http://localhost:5000"
        timeout: Per-request timeout in seconds.
    """
    base_url: str = DEFAULT_API_URL
    timeout: float = 15.0


@dataclass(frozen=True)
class StorageConfig:
    """
    Local storage settings.

    Attributes:
        data_dir: Expanded, absolute directory for the database and session file.
    """
    data_dir: Path = Path(DEFAULT_DATA_DIR).expanduser()

    @property
    def database_path(self) -> Path:
        return self.data_dir / DATABASE_FILENAME

    @property
    def session_path(self) -> Path:
        return self.data_dir / SESSION_FILENAME


@dataclass(frozen=True)
class NetworkConfig:
    """
    Connectivity settings.

    Attributes:
        probe_interval: Seconds a connectivity probe result is trusted
                        before the API is pinged again.
    """
    probe_interval: float = 30.0


@dataclass(frozen=True)
class PlaybackConfig:
    """
    Playback settings.

    Attributes:
        tick_interval_ms: Cadence of the position clock while playing.
    """
    tick_interval_ms: int = 1000


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings.

    Attributes:
        level: Console log level name.
        file: Whether log files are written into the data directory.
    """
    level: str = "INFO"
    file: bool = True


@dataclass(frozen=True)
class Config:
    """
    Complete client configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"API: {config.api.base_url}")
        print(f"Cache: {config.storage.database_path}")
    """
    api: ApiConfig
    storage: StorageConfig
    network: NetworkConfig
    playback: PlaybackConfig
    logging: LoggingConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in the current working
                     directory and falls back to defaults when absent.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit file is missing, the YAML is invalid,
                     or a value has the wrong type or range.
    """
    load_dotenv()

    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    _apply_environment(raw_config)

    return Config(
        api=_parse_api_config(_section(raw_config, "api")),
        storage=_parse_storage_config(_section(raw_config, "storage")),
        network=_parse_network_config(_section(raw_config, "network")),
        playback=_parse_playback_config(_section(raw_config, "playback")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a section dict, treating a missing section as empty."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _apply_environment(raw_config: dict[str, Any]) -> None:
    """Override file values with ARIF_* environment variables."""
    env_mappings = {
        "ARIF_API_URL": ("api", "base_url"),
        "ARIF_DATA_DIR": ("storage", "data_dir"),
        "ARIF_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.getenv(env_var)
        if value:
            target = raw_config.get(section)
            if not isinstance(target, dict):
                target = {}
                raw_config[section] = target
            target[key] = value


def _parse_api_config(section: dict[str, Any]) -> ApiConfig:
    base_url = section.get("base_url", DEFAULT_API_URL)
    if not isinstance(base_url, str) or not base_url.strip():
        raise ConfigError(
            "'api.base_url' must be a non-empty string",
            details={"field": "api.base_url"}
        )
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(
            "'api.base_url' must start with http:// or https://",
            details={"field": "api.base_url", "value": base_url}
        )

    timeout = section.get("timeout", 15.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(
            "'api.timeout' must be a positive number",
            details={"field": "api.timeout", "value": timeout}
        )

    return ApiConfig(base_url=base_url.strip().rstrip("/"), timeout=float(timeout))


def _parse_storage_config(section: dict[str, Any]) -> StorageConfig:
    data_dir = section.get("data_dir", DEFAULT_DATA_DIR)
    if not isinstance(data_dir, str) or not data_dir.strip():
        raise ConfigError(
            "'storage.data_dir' must be a non-empty string",
            details={"field": "storage.data_dir"}
        )

    # Expand ~ and make absolute; the directory is created at startup
    return StorageConfig(data_dir=Path(data_dir.strip()).expanduser().resolve())


def _parse_network_config(section: dict[str, Any]) -> NetworkConfig:
    interval = section.get("probe_interval", 30.0)
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < 0:
        raise ConfigError(
            "'network.probe_interval' must be a non-negative number",
            details={"field": "network.probe_interval", "value": interval}
        )
    return NetworkConfig(probe_interval=float(interval))


def _parse_playback_config(section: dict[str, Any]) -> PlaybackConfig:
    tick = section.get("tick_interval_ms", 1000)
    if isinstance(tick, bool) or not isinstance(tick, int) or tick < 1:
        raise ConfigError(
            "'playback.tick_interval_ms' must be a positive integer",
            details={"field": "playback.tick_interval_ms", "value": tick}
        )
    return PlaybackConfig(tick_interval_ms=tick)


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    level = section.get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(VALID_LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    to_file = section.get("file", True)
    if not isinstance(to_file, bool):
        raise ConfigError(
            "'logging.file' must be true or false",
            details={"field": "logging.file", "value": to_file}
        )

    return LoggingConfig(level=level.upper(), file=to_file)
