"""
Playlists and watchlists.

One LibraryRepository class serves both collection families; the
LibraryKind passed at construction picks the REST prefix and the rows in
the store. Watchlists additionally back the "favorite" flag of tracks.

Ids:
    The client chooses item ids: the current time in milliseconds, bumped
    by one until no local item of the same kind uses it.

Checks before any remote call:
    - the caller is signed in
    - the item exists locally and the caller owns it (or is an ADMIN)
    - the music id exists, and membership is as the operation expects
"""

import time
from dataclasses import replace
from typing import Any, Callable

from arif_music.core.database import LocalStore
from arif_music.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from arif_music.core.logger import get_logger
from arif_music.core.session import SessionManager
from arif_music.models import LibraryItem, LibraryKind, User
from arif_music.remote.gateway import RemoteGateway
from arif_music.sync.strategy import Result, SyncStrategy


logger = get_logger(__name__)

FAVORITES_NAME = "Favorites"


class LibraryRepository:
    """
    Syncing repository for one kind of library item.

    Attributes:
        kind: PLAYLIST or WATCHLIST.
        store: Local SQLite cache.
        gateway: REST client.
        session: Current token and user id.
        strategy: Remote-first executor.

    Example:
        playlists = LibraryRepository(LibraryKind.PLAYLIST, store, gateway, session, strategy)
        playlist = playlists.create_item("Road trip").unwrap()
        playlists.add_music(playlist.id, music_id)
    """

    def __init__(
        self,
        kind: LibraryKind,
        store: LocalStore,
        gateway: RemoteGateway,
        session: SessionManager,
        strategy: SyncStrategy,
        clock: Callable[[], float] = time.time
    ) -> None:
        self.kind = kind
        self.store = store
        self.gateway = gateway
        self.session = session
        self.strategy = strategy
        self._clock = clock

    def _op(self, name: str) -> str:
        return f"{self.kind.label}.{name}"

    def _actor(self) -> User:
        user_id = self.session.require_user_id()
        user = self.store.get_user(user_id)
        if user is None:
            raise AuthenticationError(
                "Signed-in user is not known locally, sign in again",
                details={"user_id": user_id}
            )
        return user

    def _require_item(self, item_id: int) -> LibraryItem:
        item = self.store.get_item(self.kind, item_id)
        if item is None:
            raise NotFoundError(
                f"{self.kind.label.capitalize()} not found", details={"item_id": item_id}
            )
        return item

    def _require_owned(self, item_id: int) -> LibraryItem:
        item = self._require_item(item_id)
        actor = self._actor()
        if not actor.can_modify(item.created_by):
            raise AuthorizationError(
                f"Not authorized to update this {self.kind.label}",
                details={"item_id": item_id, "user_id": actor.id}
            )
        return item

    def _require_music(self, music_id: str) -> None:
        if self.store.get_music(music_id) is None:
            raise NotFoundError("Music not found", details={"music_id": music_id})

    def _mirror(self, body: dict[str, Any]) -> LibraryItem:
        return self.store.upsert_item(LibraryItem.from_api(body, self.kind))

    def next_id(self) -> int:
        item_id = int(self._clock() * 1000)
        while self.store.item_id_exists(self.kind, item_id):
            item_id += 1
        return item_id

    # =========================================================================
    # Items
    # =========================================================================

    def create_item(
        self,
        name: str,
        description: str = "",
        cover_art_url: str = "",
        is_public: bool = True
    ) -> Result[LibraryItem]:
        """Create an empty item owned by the signed-in user."""
        is_playlist = self.kind is LibraryKind.PLAYLIST
        draft: LibraryItem | None = None

        def precheck() -> None:
            nonlocal draft
            actor = self._actor()
            if not name.strip():
                raise ValidationError(f"Please provide a {self.kind.label} name")
            draft = LibraryItem(
                id=self.next_id(),
                kind=self.kind,
                name=name.strip(),
                created_by=actor.id,
                description=description,
                cover_art_url=cover_art_url if is_playlist else "",
                is_public=is_public if is_playlist else False,
            )

        def local() -> LibraryItem:
            item = self.store.insert_item(draft)
            logger.info(f"Created {self.kind.label} '{item.name}' ({item.id})")
            return item

        return self.strategy.run(
            self._op("create"),
            local,
            remote=lambda: self.gateway.create_item(draft),
            mirror=self._mirror,
            precheck=precheck,
        )

    def list_items(self) -> Result[list[LibraryItem]]:
        """The signed-in user's items, ordered by id."""

        def mirror(body: list[dict[str, Any]]) -> list[LibraryItem]:
            items = [self._mirror(entry) for entry in body]
            return sorted(items, key=lambda item: item.id)

        return self.strategy.run(
            self._op("list"),
            local=lambda: self.store.list_items(self.kind, self.session.require_user_id()),
            remote=lambda: self.gateway.list_items(self.kind),
            mirror=mirror,
            precheck=self._actor,
        )

    def get_item(self, item_id: int) -> Result[LibraryItem]:
        """Fetch one item; private items are visible to the owner and ADMINs only."""

        def local() -> LibraryItem:
            item = self._require_item(item_id)
            if item.is_public:
                return item
            user_id = self.session.user_id
            reader = self.store.get_user(user_id) if user_id else None
            if reader is None or not reader.can_modify(item.created_by):
                raise AuthorizationError(
                    f"Not authorized to view this {self.kind.label}",
                    details={"item_id": item_id}
                )
            return item

        return self.strategy.run(
            self._op("get"),
            local,
            remote=lambda: self.gateway.get_item(self.kind, item_id),
            mirror=self._mirror,
        )

    def update_item(
        self,
        item_id: int,
        name: str | None = None,
        description: str | None = None,
        cover_art_url: str | None = None,
        is_public: bool | None = None
    ) -> Result[LibraryItem]:
        """Change item details; None leaves a field unchanged, a blank name is rejected."""
        is_playlist = self.kind is LibraryKind.PLAYLIST

        fields: dict[str, Any] = {}
        changes: dict[str, Any] = {}
        if name is not None:
            fields["name"] = changes["name"] = name.strip()
        if description is not None:
            fields["description"] = changes["description"] = description
        if is_playlist and cover_art_url:
            fields["coverArtUrl"] = changes["cover_art_url"] = cover_art_url
        if is_playlist and is_public is not None:
            fields["isPublic"] = changes["is_public"] = is_public

        def precheck() -> None:
            if name is not None and not changes["name"]:
                raise ValidationError(f"Please provide a {self.kind.label} name")
            self._require_owned(item_id)

        return self.strategy.run(
            self._op("update"),
            local=lambda: self.store.update_item(replace(self._require_item(item_id), **changes)),
            remote=lambda: self.gateway.update_item(self.kind, item_id, fields),
            mirror=self._mirror,
            precheck=precheck,
        )

    def delete_item(self, item_id: int) -> Result[None]:
        def local() -> None:
            self.store.delete_item(self.kind, item_id)
            logger.info(f"Deleted {self.kind.label} {item_id}")

        def mirror(_: Any) -> None:
            if self.store.item_id_exists(self.kind, item_id):
                local()

        return self.strategy.run(
            self._op("delete"),
            local,
            remote=lambda: self.gateway.delete_item(self.kind, item_id),
            mirror=mirror,
            precheck=lambda: self._require_owned(item_id),
        )

    # =========================================================================
    # Membership
    # =========================================================================

    def add_music(self, item_id: int, music_id: str) -> Result[LibraryItem]:
        def precheck() -> None:
            item = self._require_owned(item_id)
            self._require_music(music_id)
            if item.contains(music_id):
                raise ConflictError(
                    f"Song already in {self.kind.label}",
                    details={"item_id": item_id, "music_id": music_id}
                )

        return self.strategy.run(
            self._op("add_music"),
            local=lambda: self.store.add_song(self.kind, item_id, music_id),
            remote=lambda: self.gateway.add_song(self.kind, item_id, music_id),
            mirror=self._mirror,
            precheck=precheck,
        )

    def remove_music(self, item_id: int, music_id: str) -> Result[LibraryItem]:
        def precheck() -> None:
            item = self._require_owned(item_id)
            if not item.contains(music_id):
                raise NotFoundError(
                    f"Song not in {self.kind.label}",
                    details={"item_id": item_id, "music_id": music_id}
                )

        return self.strategy.run(
            self._op("remove_music"),
            local=lambda: self.store.remove_song(self.kind, item_id, music_id),
            remote=lambda: self.gateway.remove_song(self.kind, item_id, music_id),
            mirror=self._mirror,
            precheck=precheck,
        )

    def toggle_music(self, item_id: int, music_id: str) -> Result[bool]:
        """
        Add the song if absent, remove it if present.

        Returns:
            Result[bool]: The new membership (True if the song is now in the item).
        """
        item = self.store.get_item(self.kind, item_id)
        if item is not None and item.contains(music_id):
            result = self.remove_music(item_id, music_id)
        else:
            result = self.add_music(item_id, music_id)

        if not result.ok:
            return Result.failure(result.error)
        return Result.success(result.value.contains(music_id))

    def check_music(self, music_id: str) -> Result[list[int]]:
        """Ids of the signed-in user's items that contain the song."""
        remote = None
        if self.kind is LibraryKind.WATCHLIST:
            def remote() -> list[int]:
                return self.gateway.check_in_watchlists(music_id)

        return self.strategy.run(
            self._op("check_music"),
            local=lambda: self.store.items_containing(
                self.kind, self.session.require_user_id(), music_id
            ),
            remote=remote,
            precheck=self._actor,
        )

    def toggle_favorite(self, music_id: str) -> Result[bool]:
        """
        Flip a track's favorite flag.

        Favorites live in the user's first watchlist; one named
        "Favorites" is created when the user has none.
        """
        if self.kind is not LibraryKind.WATCHLIST:
            return Result.failure(ValidationError("Favorites are kept in watchlists"))

        items = self.list_items()
        if not items.ok:
            return Result.failure(items.error)

        if items.value:
            target = items.value[0]
        else:
            created = self.create_item(FAVORITES_NAME)
            if not created.ok:
                return Result.failure(created.error)
            target = created.value

        return self.toggle_music(target.id, music_id)
