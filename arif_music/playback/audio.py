"""
Audio sources for the playback engine.

An AudioSource is prepared once per load: local files are opened with
mutagen to make sure they are decodable audio and to recover the track
length when the catalogue does not know it. Remote URIs are accepted as
is, with the catalogue duration.

Supported local formats are whatever mutagen.File() recognises
(MP3, FLAC, M4A/MP4, Ogg Vorbis/Opus, WAV, ...).
"""

from pathlib import Path

import mutagen

from arif_music.core.exceptions import PlaybackError
from arif_music.core.logger import get_logger
from arif_music.models import Music


logger = get_logger(__name__)

REMOTE_SCHEMES = ("http://", "https://", "content://")


def read_duration_ms(path: Path, track_id: str | None = None) -> int:
    """
    Open an audio file with mutagen and return its length in milliseconds.

    Returns:
        Length in ms, or 0 if the format carries no length.

    Raises:
        PlaybackError: If the file is missing or not recognised as audio.
    """
    if not path.is_file():
        raise PlaybackError(
            "Audio file not found", track_id=track_id, details={"path": str(path)}
        )

    try:
        audio = mutagen.File(path)
    except (mutagen.MutagenError, OSError) as e:
        raise PlaybackError(
            f"Audio file is not readable: {e}",
            track_id=track_id,
            details={"path": str(path), "original_error": str(e)}
        ) from e

    if audio is None:
        raise PlaybackError(
            "Unsupported or corrupt audio file",
            track_id=track_id,
            details={"path": str(path)}
        )

    length = getattr(audio.info, "length", 0) or 0
    return int(length * 1000)


class AudioSource:
    """
    A track's audio, validated and ready to play.

    Attributes:
        music: The catalogue entry being played.
        duration_ms: Known length after prepare(); 0 means unknown.
    """

    def __init__(self, music: Music) -> None:
        self.music = music
        self.duration_ms = music.duration_ms

    @property
    def is_remote(self) -> bool:
        return self.music.path.startswith(REMOTE_SCHEMES)

    def prepare(self) -> int:
        """
        Validate the source and return the track length in ms.

        Raises:
            PlaybackError: If the track has no source or a local file is unreadable.
        """
        if not self.music.path:
            raise PlaybackError("Track has no audio source", track_id=self.music.id)

        if self.is_remote:
            return self.duration_ms

        file_duration = read_duration_ms(Path(self.music.path), track_id=self.music.id)
        if self.duration_ms <= 0:
            self.duration_ms = file_duration
            logger.debug(f"Duration of {self.music.id} read from file: {file_duration} ms")
        return self.duration_ms
