"""
Music catalogue.

The REST API has no music endpoints, so every operation here runs against
the LocalStore through the sync strategy's local path only. The strategy
is still used so results, prechecks and logging look the same as for the
syncing repositories.
"""

import uuid
from dataclasses import replace
from pathlib import Path

from arif_music.core.database import LocalStore
from arif_music.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    PlaybackError,
    ValidationError,
)
from arif_music.core.logger import get_logger
from arif_music.core.session import SessionManager
from arif_music.models import ApprovalStatus, LibraryKind, Music, NotificationType, User, UserType
from arif_music.playback.audio import REMOTE_SCHEMES, read_duration_ms
from arif_music.sync.notifications import notify
from arif_music.sync.strategy import Result, SyncStrategy


logger = get_logger(__name__)

DEFAULT_LISTING_LIMIT = 20


class MusicRepository:
    """
    Local-only repository for tracks, moderation and play counts.

    Public listings only show APPROVED tracks; an artist also sees their
    own pending and rejected uploads in artist_music().
    """

    def __init__(
        self,
        store: LocalStore,
        session: SessionManager,
        strategy: SyncStrategy
    ) -> None:
        self.store = store
        self.session = session
        self.strategy = strategy

    def _actor(self) -> User:
        user_id = self.session.require_user_id()
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user

    def _require_admin(self) -> None:
        if not self._actor().is_admin:
            raise AuthorizationError("Admin privileges required")

    def _require_music(self, music_id: str) -> Music:
        music = self.store.get_music(music_id)
        if music is None:
            raise NotFoundError("Music not found", details={"music_id": music_id})
        return music

    def _with_favorite(self, music: Music) -> Music:
        """Fill in 'favorite' from the reader's watchlists."""
        user_id = self.session.user_id
        if user_id is None:
            return music
        favorite = bool(self.store.items_containing(LibraryKind.WATCHLIST, user_id, music.id))
        return replace(music, favorite=favorite)

    def _decorate(self, tracks: list[Music]) -> list[Music]:
        return [self._with_favorite(music) for music in tracks]

    # =========================================================================
    # Reads
    # =========================================================================

    def get_music(self, music_id: str) -> Result[Music]:
        return self.strategy.run(
            "music.get", local=lambda: self._with_favorite(self._require_music(music_id))
        )

    def all_music(self) -> Result[list[Music]]:
        return self.strategy.run(
            "music.all",
            local=lambda: self._decorate(self.store.list_music(ApprovalStatus.APPROVED)),
        )

    def artist_music(self, artist_id: str) -> Result[list[Music]]:
        def local() -> list[Music]:
            user_id = self.session.user_id
            actor = self.store.get_user(user_id) if user_id else None
            if actor is not None and actor.can_modify(artist_id):
                tracks = self.store.list_music(artist_id=artist_id)
            else:
                tracks = self.store.list_music(ApprovalStatus.APPROVED, artist_id=artist_id)
            return self._decorate(tracks)

        return self.strategy.run("music.artist", local)

    def new_releases(self, limit: int = DEFAULT_LISTING_LIMIT) -> Result[list[Music]]:
        return self.strategy.run(
            "music.new_releases",
            local=lambda: self._decorate(
                self.store.list_music(ApprovalStatus.APPROVED, order_by="newest", limit=limit)
            ),
        )

    def trending(self, limit: int = DEFAULT_LISTING_LIMIT) -> Result[list[Music]]:
        return self.strategy.run(
            "music.trending",
            local=lambda: self._decorate(
                self.store.list_music(ApprovalStatus.APPROVED, order_by="plays", limit=limit)
            ),
        )

    def search(self, text: str) -> Result[list[Music]]:
        """Approved tracks whose title, artist, album or genre contains the text."""

        def precheck() -> None:
            if not text.strip():
                raise ValidationError("Search text is empty")

        return self.strategy.run(
            "music.search",
            local=lambda: self._decorate(
                self.store.list_music(ApprovalStatus.APPROVED, text=text.strip())
            ),
            precheck=precheck,
        )

    def favorite_music(self) -> Result[list[Music]]:
        """Tracks in any of the signed-in user's watchlists, in watchlist order."""

        def local() -> list[Music]:
            user_id = self.session.require_user_id()
            seen: dict[str, Music] = {}
            for item in self.store.list_items(LibraryKind.WATCHLIST, user_id):
                for music_id in item.songs:
                    music = self.store.get_music(music_id)
                    if music is not None and music_id not in seen:
                        seen[music_id] = replace(music, favorite=True)
            return list(seen.values())

        return self.strategy.run("music.favorites", local)

    # =========================================================================
    # Uploads and moderation
    # =========================================================================

    def upload_music(
        self,
        title: str,
        path: str,
        album: str = "",
        genre: str = "",
        duration_ms: int = 0,
        artwork_uri: str = ""
    ) -> Result[Music]:
        """
        Add a track by the signed-in artist. New tracks await approval.

        A missing duration is read from a local audio file.
        """

        def precheck() -> None:
            actor = self._actor()
            if actor.user_type not in (UserType.ARTIST, UserType.ADMIN):
                raise AuthorizationError(
                    "Only artists can upload music", details={"user_id": actor.id}
                )
            if not title.strip():
                raise ValidationError("Title is required")
            if not path:
                raise ValidationError("Audio path is required")

        def local() -> Music:
            actor = self._actor()
            duration = duration_ms
            if duration <= 0 and not path.startswith(REMOTE_SCHEMES):
                try:
                    duration = read_duration_ms(Path(path))
                except PlaybackError as e:
                    raise ValidationError(
                        f"Audio file is not usable: {e}", details={"path": path}
                    ) from e

            music = self.store.upsert_music(Music(
                id=str(uuid.uuid4()),
                title=title.strip(),
                artist=actor.name,
                artist_id=actor.id,
                album=album,
                genre=genre,
                duration_ms=duration,
                path=path,
                artwork_uri=artwork_uri,
                approval_status=ApprovalStatus.PENDING,
            ))
            logger.info(f"Uploaded '{music.title}' ({music.id}), awaiting approval")
            return music

        return self.strategy.run("music.upload", local, precheck=precheck)

    def pending_music(self) -> Result[list[Music]]:
        return self.strategy.run(
            "music.pending",
            local=lambda: self.store.list_music(ApprovalStatus.PENDING, order_by="newest"),
            precheck=self._require_admin,
        )

    def approve_music(self, music_id: str) -> Result[Music]:
        """Publish a track and tell its artist and the artist's followers."""

        def local() -> Music:
            music = self.store.set_approval_status(music_id, ApprovalStatus.APPROVED)
            notify(
                self.store, music.artist_id, NotificationType.SYSTEM,
                "Upload approved", f"'{music.title}' is now public",
                related_content_id=music.id, related_content_type="MUSIC",
            )
            for follower_id in self.store.follower_ids(music.artist_id):
                notify(
                    self.store, follower_id, NotificationType.NEW_MUSIC,
                    "New music", f"{music.artist} released '{music.title}'",
                    related_content_id=music.id, related_content_type="MUSIC",
                )
            return music

        return self.strategy.run("music.approve", local, precheck=self._require_admin)

    def reject_music(self, music_id: str) -> Result[Music]:
        return self.strategy.run(
            "music.reject",
            local=lambda: self.store.set_approval_status(music_id, ApprovalStatus.REJECTED),
            precheck=self._require_admin,
        )

    def delete_music(self, music_id: str) -> Result[None]:
        def precheck() -> None:
            music = self._require_music(music_id)
            actor = self._actor()
            if not actor.can_modify(music.artist_id):
                raise AuthorizationError(
                    "Not authorized to delete this track",
                    details={"music_id": music_id, "user_id": actor.id}
                )

        return self.strategy.run(
            "music.delete", local=lambda: self.store.delete_music(music_id), precheck=precheck
        )

    # =========================================================================
    # Plays
    # =========================================================================

    def record_play(self, music_id: str) -> Result[bool]:
        """
        Count a play by the signed-in user.

        Returns:
            Result[bool]: True if the play count was incremented, False if
            this user had already played the track.
        """
        return self.strategy.run(
            "music.record_play",
            local=lambda: self.store.record_play(self.session.require_user_id(), music_id),
        )
