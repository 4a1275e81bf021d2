"""
Core module for arif-music.

This module provides the foundational components used throughout the package:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite store for offline data
    - session: Persistent auth token and user id
    - logger: Logging system with multiple outputs

Usage:
    from arif_music.core import (
        Config, load_config,
        LocalStore, SessionManager,
        setup_logging, get_logger,
        ArifMusicError, ConfigError, DatabaseError
    )
"""

from arif_music.core.config import (
    ApiConfig,
    Config,
    LoggingConfig,
    NetworkConfig,
    PlaybackConfig,
    StorageConfig,
    load_config,
)
from arif_music.core.database import LocalStore
from arif_music.core.exceptions import (
    ArifMusicError,
    AuthenticationError,
    AuthorizationError,
    ConfigError,
    ConflictError,
    DatabaseError,
    NetworkError,
    NotFoundError,
    PlaybackError,
    TokenMissingError,
    ValidationError,
)
from arif_music.core.logger import (
    get_logger,
    log_sync_fallback,
    setup_logging,
    shutdown_logging,
)
from arif_music.core.session import SessionManager

__all__ = [
    # Config
    "Config",
    "ApiConfig",
    "StorageConfig",
    "NetworkConfig",
    "PlaybackConfig",
    "LoggingConfig",
    "load_config",
    # Storage
    "LocalStore",
    "SessionManager",
    # Exceptions
    "ArifMusicError",
    "ConfigError",
    "DatabaseError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AuthorizationError",
    "AuthenticationError",
    "TokenMissingError",
    "PlaybackError",
    "NetworkError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_sync_fallback",
    "shutdown_logging",
]
