"""
Single-track playback state machine.

States:
    IDLE --load--> LOADED --play--> PLAYING <--pause/play--> PAUSED
    any --stop--> IDLE

The engine keeps the queue in its original order and a separate play
order (a permutation of queue indexes) with a cursor into it. Shuffle
permutes only the part of the play order after the cursor; turning it
off puts that part back in original order.

Position:
    While PLAYING, tick() advances the position by the elapsed wall time
    (monotonic clock) or by an explicit amount. Reaching the end of a
    track with a known duration advances like skip_to_next(). The
    PlaybackClock drives tick() in the background; tests call it directly.

Failures:
    A track whose audio cannot be prepared raises PlaybackError; the
    engine keeps that track as current and moves to PAUSED.

Thread safety:
    Every public method takes the engine's RLock, so the clock thread and
    the caller never interleave mutations.

Usage:
    engine = PlaybackEngine(music_repository, clock=PlaybackClock(1000))
    engine.set_queue(["a", "b", "c"])
    engine.play()
    state = engine.snapshot()
"""

import random
import threading
import time
from typing import TYPE_CHECKING, Callable

from arif_music.core.exceptions import ArifMusicError, PlaybackError, ValidationError
from arif_music.core.logger import get_logger
from arif_music.models import Music
from arif_music.playback.audio import AudioSource
from arif_music.playback.clock import PlaybackClock
from arif_music.playback.commands import (
    LoadTrack,
    Pause,
    Play,
    PlaybackCommand,
    SeekTo,
    SetQueue,
    SkipToNext,
    SkipToPrevious,
    Stop,
    Tick,
    ToggleRepeatMode,
    ToggleShuffle,
)
from arif_music.playback.state import PlaybackState, PlaybackStatus, RepeatMode
from arif_music.sync.strategy import Result

if TYPE_CHECKING:
    from arif_music.sync.music import MusicRepository


logger = get_logger(__name__)


class PlaybackEngine:
    """
    Player for one track at a time over a queue.

    Attributes:
        music: Resolves ids to tracks and records plays.
        clock: Background ticker started on play, stopped on pause/stop.
        source_factory: Builds the AudioSource for a track.
    """

    def __init__(
        self,
        music: "MusicRepository",
        clock: PlaybackClock | None = None,
        source_factory: Callable[[Music], AudioSource] = AudioSource,
        rng: random.Random | None = None,
        monotonic: Callable[[], float] = time.monotonic
    ) -> None:
        self.music = music
        self.clock = clock or PlaybackClock()
        self.source_factory = source_factory
        self._rng = rng or random.Random()
        self._monotonic = monotonic
        self._lock = threading.RLock()

        self._queue: list[str] = []
        self._order: list[int] = []
        self._cursor = -1

        self._current: Music | None = None
        self._status = PlaybackStatus.IDLE
        self._position_ms = 0
        self._duration_ms = 0
        self._shuffle = False
        self._repeat_mode = RepeatMode.NONE
        self._play_recorded = False
        self._source_failed = False
        self._last_tick = 0.0

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> PlaybackState:
        with self._lock:
            return PlaybackState(
                current_track=self._current,
                position_ms=self._position_ms,
                duration_ms=self._duration_ms,
                status=self._status,
                shuffle=self._shuffle,
                repeat_mode=self._repeat_mode,
                queue=tuple(self._queue[index] for index in self._order),
                queue_index=self._cursor,
            )

    # =========================================================================
    # Loading
    # =========================================================================

    def _resolve(self, music_id: str) -> Music:
        return self.music.get_music(music_id).unwrap()

    def _prepare(self, music: Music) -> None:
        """Make music the current track at position 0, LOADED or PAUSED on failure."""
        self.clock.stop()
        self._current = music
        self._position_ms = 0
        self._duration_ms = music.duration_ms
        self._play_recorded = False

        try:
            self._duration_ms = self.source_factory(music).prepare()
        except PlaybackError:
            self._source_failed = True
            self._status = PlaybackStatus.PAUSED
            logger.error(f"Cannot play '{music.title}' ({music.id})")
            raise

        self._source_failed = False
        self._status = PlaybackStatus.LOADED
        logger.debug(f"Loaded '{music.title}' ({self._duration_ms} ms)")

    def _load_at(self, cursor: int, keep_playing: bool) -> PlaybackState:
        """Move to cursor once its track resolves; an unknown id leaves the cursor as is."""
        music = self._resolve(self._queue[self._order[cursor]])
        self._cursor = cursor
        self._prepare(music)
        if keep_playing:
            self.play()
        return self.snapshot()

    def load_track(self, music_id: str) -> PlaybackState:
        """
        Load a track at position 0.

        A track already in the queue becomes the cursor; any other track
        replaces the queue.

        Raises:
            NotFoundError: If the id is unknown.
            PlaybackError: If the audio cannot be prepared.
        """
        with self._lock:
            music = self._resolve(music_id)

            if music_id in self._queue:
                self._cursor = self._order.index(self._queue.index(music_id))
            else:
                self._queue = [music_id]
                self._order = [0]
                self._cursor = 0

            self._prepare(music)
            return self.snapshot()

    def set_queue(self, music_ids: list[str], start_index: int = 0) -> PlaybackState:
        """
        Replace the queue and load the track at start_index.

        Every id is resolved first; an unknown id leaves the engine untouched.
        """
        with self._lock:
            music_ids = list(music_ids)
            if not music_ids:
                raise ValidationError("Queue is empty")
            if not 0 <= start_index < len(music_ids):
                raise ValidationError(
                    "Start index out of range",
                    details={"start_index": start_index, "queue_length": len(music_ids)}
                )
            for music_id in music_ids:
                self._resolve(music_id)

            keep_playing = self._status is PlaybackStatus.PLAYING
            self._queue = music_ids
            if self._shuffle:
                rest = [index for index in range(len(music_ids)) if index != start_index]
                self._rng.shuffle(rest)
                self._order = [start_index] + rest
                cursor = 0
            else:
                self._order = list(range(len(music_ids)))
                cursor = start_index

            return self._load_at(cursor, keep_playing)

    # =========================================================================
    # Transport
    # =========================================================================

    def play(self) -> PlaybackState:
        """
        Start or resume playback.

        Raises:
            PlaybackError: If nothing is loaded, or the current track's
                           audio still cannot be prepared.
        """
        with self._lock:
            if self._status is PlaybackStatus.PLAYING:
                return self.snapshot()
            if self._status is PlaybackStatus.IDLE or self._current is None:
                raise PlaybackError("Nothing to play, load a track first")

            if self._source_failed:
                position = self._position_ms
                self._prepare(self._current)
                self._position_ms = position

            self._status = PlaybackStatus.PLAYING
            self._last_tick = self._monotonic()
            self.clock.start(self.tick)

            if not self._play_recorded:
                self._play_recorded = True
                recorded = self.music.record_play(self._current.id)
                if not recorded.ok:
                    logger.debug(f"Play not counted: {recorded.error.message}")

            return self.snapshot()

    def pause(self) -> PlaybackState:
        with self._lock:
            if self._status is PlaybackStatus.PLAYING:
                self.clock.stop()
                self._status = PlaybackStatus.PAUSED
            return self.snapshot()

    def stop(self) -> PlaybackState:
        with self._lock:
            self.clock.stop()
            self._status = PlaybackStatus.IDLE
            self._current = None
            self._position_ms = 0
            self._duration_ms = 0
            self._source_failed = False
            return self.snapshot()

    def seek_to(self, position_ms: int) -> PlaybackState:
        """
        Move the position, clamped to [0, duration].

        With an unknown duration the only reachable position is 0.
        """
        with self._lock:
            if self._status is PlaybackStatus.IDLE:
                raise PlaybackError("Nothing loaded")
            self._position_ms = max(0, min(int(position_ms), self._duration_ms))
            self._last_tick = self._monotonic()
            return self.snapshot()

    def tick(self, elapsed_ms: int | None = None) -> PlaybackState:
        """
        Advance the position while PLAYING.

        Args:
            elapsed_ms: Amount to advance; None measures the wall time
                        since the previous tick.
        """
        with self._lock:
            if self._status is not PlaybackStatus.PLAYING:
                return self.snapshot()

            now = self._monotonic()
            if elapsed_ms is None:
                elapsed_ms = int((now - self._last_tick) * 1000)
            self._last_tick = now
            self._position_ms += max(0, elapsed_ms)

            if self._duration_ms > 0 and self._position_ms >= self._duration_ms:
                self._position_ms = self._duration_ms
                logger.debug(f"Finished '{self._current.title}'")
                return self.skip_to_next()

            return self.snapshot()

    # =========================================================================
    # Queue navigation
    # =========================================================================

    def skip_to_next(self) -> PlaybackState:
        """
        Advance in play order.

        Repeat ONE reloads the same track; at the end of the queue, ALL
        wraps to the first track and NONE stops.
        """
        with self._lock:
            if not self._order:
                return self.stop()

            keep_playing = self._status is PlaybackStatus.PLAYING

            if self._repeat_mode is RepeatMode.ONE and self._cursor >= 0:
                return self._load_at(self._cursor, keep_playing)

            if self._cursor + 1 < len(self._order):
                cursor = self._cursor + 1
            elif self._repeat_mode is RepeatMode.ALL:
                cursor = 0
            else:
                logger.debug("End of queue")
                return self.stop()

            return self._load_at(cursor, keep_playing)

    def skip_to_previous(self) -> PlaybackState:
        """
        Go back in play order.

        At the start of the queue, ALL wraps to the last track and NONE or
        ONE stops, keeping the queue.
        """
        with self._lock:
            if not self._order or self._cursor < 0:
                raise PlaybackError("Queue is empty")

            keep_playing = self._status is PlaybackStatus.PLAYING

            if self._cursor > 0:
                cursor = self._cursor - 1
            elif self._repeat_mode is RepeatMode.ALL:
                cursor = len(self._order) - 1
            else:
                logger.debug("Start of queue")
                return self.stop()

            return self._load_at(cursor, keep_playing)

    def toggle_shuffle(self) -> PlaybackState:
        with self._lock:
            played = self._order[:self._cursor + 1]
            remaining = self._order[self._cursor + 1:]

            self._shuffle = not self._shuffle
            if self._shuffle:
                self._rng.shuffle(remaining)
            else:
                remaining.sort()

            self._order = played + remaining
            return self.snapshot()

    def toggle_repeat_mode(self) -> PlaybackState:
        with self._lock:
            self._repeat_mode = self._repeat_mode.next()
            return self.snapshot()

    # =========================================================================
    # Commands
    # =========================================================================

    def dispatch(self, command: PlaybackCommand) -> Result[PlaybackState]:
        """
        Apply a command object and report the outcome as a Result.

        Errors raised by the operation are returned, never raised.
        """
        handlers: dict[type, Callable[[], PlaybackState]] = {
            LoadTrack: lambda: self.load_track(command.music_id),
            SetQueue: lambda: self.set_queue(list(command.music_ids), command.start_index),
            Play: self.play,
            Pause: self.pause,
            SeekTo: lambda: self.seek_to(command.position_ms),
            Tick: lambda: self.tick(command.elapsed_ms),
            SkipToNext: self.skip_to_next,
            SkipToPrevious: self.skip_to_previous,
            ToggleShuffle: self.toggle_shuffle,
            ToggleRepeatMode: self.toggle_repeat_mode,
            Stop: self.stop,
        }

        handler = handlers.get(type(command))
        if handler is None:
            return Result.failure(
                ValidationError(f"Unknown playback command: {type(command).__name__}")
            )

        try:
            return Result.success(handler())
        except ArifMusicError as e:
            logger.warning(f"{type(command).__name__} failed: {e.message}")
            return Result.failure(e)
