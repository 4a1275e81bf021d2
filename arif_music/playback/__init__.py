"""
Playback of tracks from the local catalogue.

Modules:
    state    - PlaybackStatus, RepeatMode, PlaybackState snapshot
    commands - Command objects for PlaybackEngine.dispatch()
    audio    - AudioSource: validates files and reads durations (mutagen)
    clock    - PlaybackClock: background tick thread
    engine   - PlaybackEngine: the state machine

Usage:
    from arif_music.playback import PlaybackEngine, PlaybackClock, Play, SetQueue

    engine = PlaybackEngine(music_repository, clock=PlaybackClock(config.playback.tick_interval_ms))
    engine.dispatch(SetQueue(("a", "b")))
    engine.dispatch(Play())
"""

from arif_music.playback.audio import AudioSource, read_duration_ms
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
from arif_music.playback.engine import PlaybackEngine
from arif_music.playback.state import PlaybackState, PlaybackStatus, RepeatMode

__all__ = [
    # Engine
    "PlaybackEngine",
    "PlaybackClock",
    "AudioSource",
    "read_duration_ms",
    # State
    "PlaybackState",
    "PlaybackStatus",
    "RepeatMode",
    # Commands
    "PlaybackCommand",
    "LoadTrack",
    "SetQueue",
    "Play",
    "Pause",
    "SeekTo",
    "Tick",
    "SkipToNext",
    "SkipToPrevious",
    "ToggleShuffle",
    "ToggleRepeatMode",
    "Stop",
]
