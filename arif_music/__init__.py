"""
arif-music: offline-aware data-sync core of the Arif Music client.

This package keeps a local SQLite copy of users, music, playlists,
watchlists and follows, talks to the Arif Music REST API when it can,
and falls back to the local copy when it cannot. A small playback
engine plays tracks from the catalogue.

Architecture:
    core/      - Configuration, local store, session, logging, exceptions
    remote/    - RemoteGateway: typed HTTP client for the REST API
    sync/      - Repositories built on one remote-first/local-fallback strategy
    playback/  - PlaybackEngine state machine, clock and audio sources
    client.py  - ArifClient: wires the components together
    cli.py     - Command-line interface

Usage:
    Command Line:
        arif login ada@example.com
        arif playlist create "Road trip"
        arif --offline watchlist favorite <music-id>

    Python API:
        from arif_music import ArifClient, load_config, setup_logging

        config = load_config()
        setup_logging(config.storage.data_dir)
        client = ArifClient.create(config)

        client.users.login("ada@example.com", "secret").unwrap()
        playlist = client.playlists.create_item("Road trip").unwrap()

Configuration:
    Optional config.yaml in the current directory:

        api:
          base_url: "http://localhost:5000"
        storage:
          data_dir: "~/.arif-music"

Dependencies:
    - requests: REST client
    - mutagen: Audio file validation and durations
    - click / rich-click: CLI framework and help colours
    - pyyaml: Configuration file parsing
    - python-dotenv: .env support for environment overrides
    - colorama: Console log colours
"""

__version__ = "0.1.0"
__author__ = "arif-music"
__license__ = "MIT"

# Convenience imports for common usage
from arif_music.client import ArifClient
from arif_music.core import (
    ArifMusicError,
    AuthenticationError,
    AuthorizationError,
    Config,
    ConfigError,
    ConflictError,
    DatabaseError,
    LocalStore,
    NetworkError,
    NotFoundError,
    PlaybackError,
    SessionManager,
    TokenMissingError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
)
from arif_music.models import (
    LibraryItem,
    LibraryKind,
    Music,
    Notification,
    NotificationType,
    User,
    UserType,
)
from arif_music.playback import PlaybackEngine, PlaybackState
from arif_music.sync import Result

__all__ = [
    # Version
    "__version__",
    # Core
    "ArifClient",
    "Config",
    "load_config",
    "LocalStore",
    "SessionManager",
    "setup_logging",
    "get_logger",
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
    # Models
    "User",
    "UserType",
    "Music",
    "LibraryItem",
    "LibraryKind",
    "Notification",
    "NotificationType",
    "Result",
    "PlaybackEngine",
    "PlaybackState",
]
