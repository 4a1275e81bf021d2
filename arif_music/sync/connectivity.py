"""
Network availability for the sync layer.

The monitor answers one question, "should the repositories try the API
right now?", from three sources in order of precedence:

    1. A forced state set by the user (--offline) or by tests
    2. A recent failure reported by the sync strategy
    3. An optional probe (normally RemoteGateway.ping), cached for
       probe_interval seconds

With no probe and no override the network is assumed available and the
first failed request flips it to unavailable for one interval.
"""

import threading
import time
from typing import Callable

from arif_music.core.logger import get_logger


logger = get_logger(__name__)


class ConnectivityMonitor:
    """
    Cached view of whether the API is reachable.

    Attributes:
        probe: Callable returning True when the API answers, or None.
        probe_interval: Seconds a probe result or a reported failure is trusted.
    """

    def __init__(
        self,
        probe: Callable[[], bool] | None = None,
        probe_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.probe = probe
        self.probe_interval = probe_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._forced: bool | None = None
        self._cached: bool | None = None
        self._checked_at = 0.0

    def is_available(self) -> bool:
        with self._lock:
            if self._forced is not None:
                return self._forced

            now = self._clock()
            if self._cached is not None and now - self._checked_at < self.probe_interval:
                return self._cached

            if self.probe is None:
                self._cached = None
                return True

            available = bool(self.probe())
            if available != self._cached:
                logger.info(f"API {'reachable' if available else 'unreachable'}")
            self._cached = available
            self._checked_at = now
            return available

    def report_failure(self) -> None:
        """Treat the network as unavailable until the next probe is due."""
        with self._lock:
            self._cached = False
            self._checked_at = self._clock()

    def force_offline(self) -> None:
        with self._lock:
            self._forced = False

    def force_online(self) -> None:
        with self._lock:
            self._forced = True

    def clear_override(self) -> None:
        with self._lock:
            self._forced = None
            self._cached = None
