"""Playback status, repeat mode and the immutable state snapshot."""

from dataclasses import dataclass
from enum import Enum

from arif_music.models import Music


class PlaybackStatus(str, Enum):
    IDLE = "IDLE"
    LOADED = "LOADED"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"


class RepeatMode(str, Enum):
    NONE = "NONE"
    ONE = "ONE"
    ALL = "ALL"

    def next(self) -> "RepeatMode":
        """NONE -> ONE -> ALL -> NONE."""
        cycle = (RepeatMode.NONE, RepeatMode.ONE, RepeatMode.ALL)
        return cycle[(cycle.index(self) + 1) % len(cycle)]


@dataclass(frozen=True)
class PlaybackState:
    """
    Point-in-time view of the engine.

    Attributes:
        current_track: Loaded track, or None when IDLE.
        position_ms: Playback position.
        duration_ms: Track length; 0 means unknown.
        status: IDLE, LOADED, PLAYING or PAUSED.
        shuffle: Whether the remaining queue is shuffled.
        repeat_mode: NONE, ONE or ALL.
        queue: Music ids in play order.
        queue_index: Index of the current track in queue, or -1.
    """

    current_track: Music | None = None
    position_ms: int = 0
    duration_ms: int = 0
    status: PlaybackStatus = PlaybackStatus.IDLE
    shuffle: bool = False
    repeat_mode: RepeatMode = RepeatMode.NONE
    queue: tuple[str, ...] = ()
    queue_index: int = -1

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING
