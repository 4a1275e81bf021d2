"""
Network-first, local-fallback execution of repository operations.

Every repository operation is expressed as up to four callables and
handed to SyncStrategy.run():

    precheck  Validation and ownership checks; runs first, on every path.
              An error here is returned and nothing else runs.
    remote    The API call. Skipped when the network is unavailable.
    mirror    Translates the API response to the local shape and writes
              it through to the LocalStore; its return value is the result.
    local     The offline implementation against the LocalStore.

Flow:
    precheck -> (network available?) remote -> mirror -> success
                                       |
                                       +-- NetworkError, TokenMissingError -> local
                                       +-- other ArifMusicError -> failure
             -> (network unavailable) local

An answer from the server, success or rejection, is authoritative: a
ConflictError or AuthenticationError from the API is returned as is and
local() never runs. Only an unreachable server or a session without an
API token falls back. There is no retry, queueing or reconciliation.

Usage:
    result = strategy.run(
        "playlist.create",
        local=lambda: store.insert_item(item),
        remote=lambda: gateway.create_item(item),
        mirror=lambda body: store.upsert_item(LibraryItem.from_api(body, kind)),
    )
    playlist = result.unwrap()
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from arif_music.core.exceptions import ArifMusicError, NetworkError, TokenMissingError
from arif_music.core.logger import get_logger, log_sync_fallback
from arif_music.sync.connectivity import ConnectivityMonitor


logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a repository operation.

    Attributes:
        ok: True on success.
        value: The operation's return value when ok.
        error: The taxonomy error when not ok.

    Example:
        result = users.login(email, password)
        if result.ok:
            print(result.value.name)
        else:
            print(result.error.message)
    """

    ok: bool
    value: T | None = None
    error: ArifMusicError | None = None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ArifMusicError) -> "Result[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if not self.ok:
            raise self.error
        return self.value


class SyncStrategy:
    """
    Runs operations remote-first with local fallback.

    Attributes:
        connectivity: Decides whether the remote path is attempted.
    """

    def __init__(self, connectivity: ConnectivityMonitor) -> None:
        self.connectivity = connectivity

    def run(
        self,
        operation: str,
        local: Callable[[], T],
        remote: Callable[[], Any] | None = None,
        mirror: Callable[[Any], T] | None = None,
        precheck: Callable[[], None] | None = None
    ) -> Result[T]:
        """
        Execute one operation.

        Args:
            operation: Dotted name used in logs, e.g. "watchlist.add_music".
            local: Offline implementation.
            remote: API call, or None for local-only operations.
            mirror: Applied to the API response; defaults to returning it unchanged.
            precheck: Guard run before either path.

        Returns:
            Result carrying the value or the taxonomy error. NetworkError and
            TokenMissingError are never returned from the remote path, they
            route the call to local().
        """
        if precheck is not None:
            try:
                precheck()
            except ArifMusicError as e:
                logger.debug(f"{operation}: rejected ({e.message})")
                return Result.failure(e)

        if remote is not None:
            if self.connectivity.is_available():
                try:
                    response = remote()
                except TokenMissingError:
                    log_sync_fallback(operation, "no API token", level=logging.INFO)
                except NetworkError as e:
                    self.connectivity.report_failure()
                    log_sync_fallback(operation, f"network unavailable: {e.message}")
                except ArifMusicError as e:
                    logger.debug(f"{operation}: rejected by API ({e.message})")
                    return Result.failure(e)
                else:
                    return self._mirror(operation, response, mirror)
            else:
                log_sync_fallback(operation, "offline", level=logging.INFO)

        try:
            value = local()
        except ArifMusicError as e:
            logger.debug(f"{operation}: local store rejected ({e.message})")
            return Result.failure(e)

        logger.debug(f"{operation}: served by local store")
        return Result.success(value)

    @staticmethod
    def _mirror(
        operation: str,
        response: Any,
        mirror: Callable[[Any], T] | None
    ) -> Result[T]:
        if mirror is None:
            return Result.success(response)
        try:
            value = mirror(response)
        except ArifMusicError as e:
            logger.error(f"{operation}: failed to mirror API response locally: {e.message}")
            return Result.failure(e)
        logger.debug(f"{operation}: served by API")
        return Result.success(value)
