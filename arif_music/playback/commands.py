"""
Commands accepted by PlaybackEngine.dispatch().

Each command is a small frozen dataclass naming one engine operation and
carrying its arguments, so a UI can send intents without calling the
engine methods directly.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LoadTrack:
    music_id: str


@dataclass(frozen=True)
class SetQueue:
    music_ids: tuple[str, ...]
    start_index: int = 0


@dataclass(frozen=True)
class Play:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class SeekTo:
    position_ms: int


@dataclass(frozen=True)
class Tick:
    elapsed_ms: int | None = None


@dataclass(frozen=True)
class SkipToNext:
    pass


@dataclass(frozen=True)
class SkipToPrevious:
    pass


@dataclass(frozen=True)
class ToggleShuffle:
    pass


@dataclass(frozen=True)
class ToggleRepeatMode:
    pass


@dataclass(frozen=True)
class Stop:
    pass


PlaybackCommand = (
    LoadTrack | SetQueue | Play | Pause | SeekTo | Tick | SkipToNext
    | SkipToPrevious | ToggleShuffle | ToggleRepeatMode | Stop
)
