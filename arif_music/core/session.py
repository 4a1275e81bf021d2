"""
Session persistence for arif-music.

Holds the bearer token and user id of the signed-in account and keeps
them in a small JSON file in the data directory, so a later run starts
signed in. The file is written with owner-only permissions.

An offline registration or login yields a session with a user id but no
token; authenticated remote calls are then skipped by the gateway until
a later online login stores a token.

File format (session.json):
    {
        "token": "eyJhbGciOi...",
        "user_id": "5f1c...",
        "saved_at": 1760796131.0,
        "expires_at": 1763388131.0
    }

Usage:
    session = SessionManager(config.storage.session_path)
    session.save(token, user.id)
    if session.is_authenticated:
        ...
    session.clear()
"""

import json
import threading
import time
from pathlib import Path

from arif_music.core.exceptions import AuthenticationError
from arif_music.core.logger import get_logger


logger = get_logger(__name__)

# Server-issued tokens are valid for 30 days
SESSION_LIFETIME_SECONDS = 30 * 24 * 60 * 60

# Treat the session as expired slightly early
EXPIRY_SAFETY_SECONDS = 300


class SessionManager:
    """
    Current token and user id, mirrored to a JSON file.

    Attributes:
        session_path: Location of the session file, or None to keep the
                      session in memory only (used by tests).
    """

    def __init__(self, session_path: Path | None = None) -> None:
        self.session_path = session_path
        self._lock = threading.Lock()
        self._token: str | None = None
        self._user_id: str | None = None
        self._expires_at: float = 0.0
        self._load()

    @property
    def token(self) -> str | None:
        with self._lock:
            return self._token if self._is_live() else None

    @property
    def user_id(self) -> str | None:
        with self._lock:
            return self._user_id if self._is_live() else None

    @property
    def is_authenticated(self) -> bool:
        """True when a live session names a user, with or without a token."""
        return self.user_id is not None

    def require_user_id(self) -> str:
        """
        Return the signed-in user id.

        Raises:
            AuthenticationError: If nobody is signed in or the session expired.
        """
        user_id = self.user_id
        if user_id is None:
            raise AuthenticationError("Not signed in")
        return user_id

    def save(self, token: str | None, user_id: str) -> None:
        """Store a new session and write it to disk."""
        now = time.time()
        with self._lock:
            self._token = token
            self._user_id = user_id
            self._expires_at = now + SESSION_LIFETIME_SECONDS
            self._write(now)
        logger.debug(f"Session saved for user {user_id} (token: {token is not None})")

    def clear(self) -> None:
        """Forget the session and remove the file."""
        with self._lock:
            self._token = None
            self._user_id = None
            self._expires_at = 0.0
            if self.session_path is not None and self.session_path.exists():
                self.session_path.unlink()
        logger.debug("Session cleared")

    def _is_live(self) -> bool:
        if self._user_id is None:
            return False
        return time.time() < self._expires_at - EXPIRY_SAFETY_SECONDS

    def _load(self) -> None:
        if self.session_path is None or not self.session_path.exists():
            return

        try:
            with open(self.session_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.session_path}: {e}")
            return

        if not isinstance(data, dict) or not data.get("user_id"):
            logger.warning(f"Ignoring malformed session file {self.session_path}")
            return

        self._token = data.get("token") or None
        self._user_id = str(data["user_id"])
        self._expires_at = float(data.get("expires_at", 0.0))

        if not self._is_live():
            logger.info("Stored session has expired, sign in again")

    def _write(self, saved_at: float) -> None:
        if self.session_path is None:
            return

        payload = {
            "token": self._token,
            "user_id": self._user_id,
            "saved_at": saved_at,
            "expires_at": self._expires_at,
        }
        self.session_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.session_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

        try:
            # 0o600 = owner read/write only
            self.session_path.chmod(0o600)
        except OSError:
            logger.debug("Could not restrict session file permissions")
