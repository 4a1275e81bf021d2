"""
Background position clock.

While a track plays, a daemon thread calls the engine's tick() every
tick_interval_ms. stop() only signals the thread; it never joins, so it
is safe to call while holding the engine lock or from the clock thread
itself (auto-advance to the end of the queue stops the clock).
"""

import threading
from typing import Callable

from arif_music.core.logger import get_logger


logger = get_logger(__name__)


class PlaybackClock:
    """
    Periodic callback on a daemon thread.

    Attributes:
        interval_ms: Delay between callbacks.
    """

    def __init__(self, interval_ms: int = 1000) -> None:
        self.interval_ms = interval_ms
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._stop_event is not None and not self._stop_event.is_set()

    def start(self, callback: Callable[[], object]) -> None:
        """Start ticking; a running clock is left as is."""
        if self.running:
            return

        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run,
            args=(callback, stop_event),
            name="arif-playback-clock",
            daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    def _run(self, callback: Callable[[], object], stop_event: threading.Event) -> None:
        interval = self.interval_ms / 1000
        while not stop_event.wait(interval):
            try:
                callback()
            except Exception as e:
                logger.error(f"Playback clock tick failed: {e}")
                stop_event.set()
