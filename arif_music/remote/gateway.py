"""
HTTP client for the Arif Music REST API.

RemoteGateway wraps a requests.Session and exposes one method per
endpoint. Responses are returned as decoded JSON; failures are mapped to
the arif-music exception taxonomy so the repositories can decide between
reporting an error and falling back to the local store.

Status Mapping:
    400 -> ConflictError when the server says something already exists,
           NotFoundError when it says a song is not in a collection,
           ValidationError otherwise
    401 -> AuthenticationError
    403 -> AuthorizationError
    404 -> NotFoundError
    other >= 400, connection errors, timeouts, invalid JSON -> NetworkError

Authentication:
    Calls marked authenticated send "Authorization: Bearer <token>" with the
    token held by the SessionManager. Without a token they raise
    TokenMissingError (an AuthenticationError) before any request is made.

Usage:
    gateway = RemoteGateway(config.api.base_url, session, timeout=config.api.timeout)
    body = gateway.login("a@b.c", "secret")
"""

from typing import Any

import requests

from arif_music.core.exceptions import (
    ArifMusicError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NetworkError,
    NotFoundError,
    TokenMissingError,
    ValidationError,
)
from arif_music.core.logger import get_logger
from arif_music.core.session import SessionManager
from arif_music.models import LibraryItem, LibraryKind


logger = get_logger(__name__)


def map_error(status_code: int, message: str) -> ArifMusicError:
    """
    Translate an HTTP error status and server message into an exception.

    Args:
        status_code: HTTP status (>= 400).
        message: The 'message' field of the error body, or the reason phrase.

    Returns:
        The exception to raise. Never returns None.
    """
    details = {"status_code": status_code}
    lowered = message.lower()

    if status_code == 400:
        if "already" in lowered:
            return ConflictError(message, details=details)
        if " not in " in f" {lowered} ":
            return NotFoundError(message, details=details)
        return ValidationError(message, details=details)
    if status_code == 401:
        return AuthenticationError(message, details=details)
    if status_code == 403:
        return AuthorizationError(message, details=details)
    if status_code == 404:
        return NotFoundError(message, details=details)
    return NetworkError(message, details=details)


class RemoteGateway:
    """
    Typed client for the Arif Music REST API.

    Attributes:
        base_url: API root without trailing slash.
        session: SessionManager supplying the bearer token.
        timeout: Per-request timeout in seconds.
        http: The underlying requests.Session (connection pooling).
    """

    def __init__(
        self,
        base_url: str,
        session: SessionManager,
        timeout: float = 15.0,
        http: requests.Session | None = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"Accept": "application/json"})

    def close(self) -> None:
        self.http.close()

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None
    ) -> Any:
        headers: dict[str, str] = {}
        if authenticated:
            token = self.session.token
            if not token:
                raise TokenMissingError(
                    "No API token, sign in while online",
                    details={"path": path}
                )
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = self.http.request(
                method,
                url,
                json=json_body,
                params=params,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise NetworkError(
                f"Request timed out: {method} {path}",
                details={"url": url, "original_error": str(e)}
            ) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                f"Request failed: {method} {path}: {e}",
                details={"url": url, "original_error": str(e)}
            ) from e

        if response.status_code >= 400:
            raise map_error(response.status_code, self._error_message(response))

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                f"Invalid JSON from {method} {path}",
                details={"url": url, "status_code": response.status_code}
            ) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.reason or f"HTTP {response.status_code}"

    def ping(self) -> bool:
        """
        Check whether the API host answers at all.

        Any HTTP response counts as reachable; only transport failures
        count as offline.
        """
        try:
            self.http.get(f"{self.base_url}/", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"API unreachable: {e}")
            return False
        return True

    # =========================================================================
    # Users
    # =========================================================================

    def register(
        self,
        user_id: str,
        email: str,
        password: str,
        name: str,
        full_name: str,
        user_type: str
    ) -> dict[str, Any]:
        return self._request("POST", "/api/users/register", authenticated=False, json_body={
            "id": user_id,
            "email": email,
            "password": password,
            "name": name,
            "fullName": full_name,
            "userType": user_type,
        })

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._request("POST", "/api/users/login", authenticated=False, json_body={
            "email": email,
            "password": password,
        })

    def user_exists(self, email: str) -> bool:
        body = self._request("GET", f"/api/users/exists/{email}", authenticated=False)
        return bool(body and body.get("exists"))

    def reset_password(self, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST", "/api/users/reset-password", authenticated=False,
            params={"email": email, "password": password}
        )

    def get_profile(self) -> dict[str, Any]:
        return self._request("GET", "/api/users/profile")

    def update_profile(self, fields: dict[str, Any]) -> dict[str, Any]:
        """PUT /api/users/profile with camelCase fields (fullName, bio, password, profileImageUrl)."""
        return self._request("PUT", "/api/users/profile", json_body=fields)

    def get_user(self, user_id: str) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{user_id}")

    def delete_user(self, user_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/api/users/{user_id}")

    def set_user_type(self, user_id: str, user_type: str) -> dict[str, Any]:
        return self._request("PUT", f"/api/users/{user_id}/type", params={"type": user_type})

    def approve_artist(self, user_id: str, approved: bool) -> dict[str, Any]:
        return self._request(
            "PUT", f"/api/users/{user_id}/approve",
            params={"approved": "true" if approved else "false"}
        )

    def suspend_user(self, user_id: str, suspended: bool) -> dict[str, Any]:
        return self._request(
            "PUT", f"/api/users/{user_id}/suspend",
            params={"suspended": "true" if suspended else "false"}
        )

    def follow(self, user_id: str) -> dict[str, Any]:
        return self._request("POST", f"/api/users/{user_id}/follow")

    def unfollow(self, user_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/api/users/{user_id}/follow")

    def followers(self, user_id: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/api/users/{user_id}/followers") or []

    def following(self, user_id: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/api/users/{user_id}/following") or []

    # =========================================================================
    # Playlists and watchlists
    # =========================================================================

    def create_item(self, item: LibraryItem) -> dict[str, Any]:
        return self._request("POST", item.kind.api_prefix, json_body=item.to_api())

    def list_items(self, kind: LibraryKind) -> list[dict[str, Any]]:
        return self._request("GET", kind.api_prefix) or []

    def get_item(self, kind: LibraryKind, item_id: int) -> dict[str, Any]:
        return self._request("GET", f"{kind.api_prefix}/{item_id}")

    def update_item(self, kind: LibraryKind, item_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"{kind.api_prefix}/{item_id}", json_body=fields)

    def delete_item(self, kind: LibraryKind, item_id: int) -> dict[str, Any]:
        return self._request("DELETE", f"{kind.api_prefix}/{item_id}")

    def add_song(self, kind: LibraryKind, item_id: int, music_id: str) -> dict[str, Any]:
        return self._request(
            "POST", f"{kind.api_prefix}/{item_id}/songs", json_body={"musicId": music_id}
        )

    def remove_song(self, kind: LibraryKind, item_id: int, music_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"{kind.api_prefix}/{item_id}/songs/{music_id}")

    def check_in_watchlists(self, music_id: str) -> list[int]:
        """Ids of the caller's watchlists that contain the song."""
        body = self._request("GET", f"/api/watchlists/check/{music_id}") or {}
        return [int(entry["id"]) for entry in body.get("watchlists", [])]
