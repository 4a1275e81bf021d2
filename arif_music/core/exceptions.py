"""
Exception classes for arif-music.

This module defines all custom exceptions used throughout the package.
Each exception carries a human-readable message plus an optional details
dictionary, and the taxonomy errors carry the HTTP status the Arif Music
API uses for the same condition.

Exception Hierarchy:
    ArifMusicError (base)
        ConfigError - Configuration file issues
        DatabaseError - Local SQLite store issues
        ValidationError - Missing or malformed input (400)
        NotFoundError - Entity absent locally and remotely (404)
        ConflictError - Duplicate id, email, membership or follow (400)
        AuthorizationError - Ownership or role check failed (403)
        AuthenticationError - Bad credentials or missing session (401)
        PlaybackError - Unreadable media or invalid player state
        NetworkError - Transient transport failure, triggers local fallback
        TokenMissingError - No API token for an authenticated call, triggers local fallback

Propagation:
    NetworkError and TokenMissingError never reach callers of the
    repositories; the sync strategy absorbs them and falls back to the
    local store. Everything else, server rejections included, is returned
    to callers inside a Result.
"""


class ArifMusicError(Exception):
    """
    Base exception for all arif-music errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (ids, urls, status codes).
        http_status: Status code the REST API uses for this kind of error,
                     or None for client-only errors.

    Example:
        try:
            repository.login(email, password).unwrap()
        except ArifMusicError as e:
            logger.error(f"Login failed: {e.message}")
    """

    http_status: int | None = None

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary with additional context. Common keys:
                     - 'user_id', 'music_id', 'item_id': entity involved
                     - 'status_code': HTTP status of a failed remote call
                     - 'original_error': the wrapped exception's text
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(ArifMusicError):
    """
    Raised when config.yaml is unreadable or holds invalid values.

    This is a CRITICAL error that should stop program execution.
    """
    pass


class DatabaseError(ArifMusicError):
    """
    Raised when the local SQLite store cannot be opened, migrated or written.

    Common causes:
        - Parent directory of the database file does not exist
        - Schema version mismatch
        - Disk full or permission denied
    """
    pass


class ValidationError(ArifMusicError):
    """Raised for missing or malformed input."""

    http_status = 400


class NotFoundError(ArifMusicError):
    """
    Raised when an entity is absent locally and remotely.

    Also used when removing a song that is not a member of a playlist
    or watchlist, and when unfollowing a user that is not followed.
    """

    http_status = 404


class ConflictError(ArifMusicError):
    """
    Raised for duplicates.

    Common causes:
        - Registering an email that already exists
        - Creating a playlist or watchlist with an id already in use
        - Adding a song already present in a playlist or watchlist
        - Following the same user twice
    """

    http_status = 400


class AuthorizationError(ArifMusicError):
    """Raised when the caller is neither the owner of an entity nor an ADMIN."""

    http_status = 403


class AuthenticationError(ArifMusicError):
    """Raised for bad credentials or when an operation needs a session and none exists."""

    http_status = 401


class PlaybackError(ArifMusicError):
    """
    Raised when a track cannot be played.

    Attributes:
        track_id: Id of the music entry that failed, or None when the
                  error is about player state rather than a track.

    Example:
        raise PlaybackError(
            "Audio source is not readable",
            track_id="b1c2",
            details={"path": "/music/missing.mp3"}
        )
    """

    def __init__(
        self,
        message: str,
        track_id: str | None = None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.track_id = track_id


class NetworkError(ArifMusicError):
    """
    Raised for transient transport failures.

    Connection errors, timeouts, server errors (5xx) and unparsable
    responses all map here. The sync strategy treats it as "offline"
    and falls back to the local store.
    """
    pass


class TokenMissingError(AuthenticationError):
    """
    Raised by the gateway when an authenticated call is made without a
    bearer token, e.g. for a session that was started offline.

    No request was sent, so the sync strategy serves the call from the
    local store like it does for NetworkError.
    """
    pass
