"""
Data models for Arif Music entities.

This module defines immutable dataclasses for the entities shared by the
remote gateway, the local store and the repositories.

Design Decisions:
    - All dataclasses are frozen; updates go through dataclasses.replace()
    - Field names are snake_case; from_api() translates the camelCase JSON
      the REST API returns, to_api() does the reverse for request bodies
    - Playlists and watchlists share one LibraryItem shape, told apart by
      LibraryKind; a watchlist is never public
    - Notifications are local only and have no API shape
    - Models are independent of the SQLite row layout; the store converts

Usage:
    from arif_music.models import LibraryItem, LibraryKind, User

    playlist = LibraryItem.from_api(response_json, LibraryKind.PLAYLIST)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class UserType(str, Enum):
    LISTENER = "LISTENER"
    ARTIST = "ARTIST"
    ADMIN = "ADMIN"
    GUEST = "GUEST"


class VerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationType(str, Enum):
    NEW_FOLLOWER = "NEW_FOLLOWER"
    NEW_MUSIC = "NEW_MUSIC"
    VERIFICATION = "VERIFICATION"
    SYSTEM = "SYSTEM"
    LIKE = "LIKE"
    COMMENT = "COMMENT"


class LibraryKind(str, Enum):
    """Which collection family a library item belongs to."""

    PLAYLIST = "PLAYLIST"
    WATCHLIST = "WATCHLIST"

    @property
    def api_prefix(self) -> str:
        """REST path prefix for this kind."""
        return "/api/playlists" if self is LibraryKind.PLAYLIST else "/api/watchlists"

    @property
    def label(self) -> str:
        return self.value.lower()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class User:
    """
    Immutable representation of an Arif Music account.

    Attributes:
        id: Server-assigned id (the client proposes a UUID4 on register).
        email: Unique login email.
        name: Short display name.
        full_name: Full name.
        user_type: Role; ADMIN bypasses ownership checks.
        verification_status: Artist verification state.
        password_hash: SHA-256 hex digest kept only in the local store so
                       login works offline. Never sent to the API.
        is_approved: Artist approval flag set by an admin.
        is_suspended: Suspension flag set by an admin.
        bio: Free-text profile bio.
        profile_image_url: Avatar URL or local URI.
    """

    id: str
    email: str
    name: str
    full_name: str
    user_type: UserType = UserType.LISTENER
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    password_hash: str = field(default="", repr=False)
    is_approved: bool = False
    is_suspended: bool = False
    bio: str = ""
    profile_image_url: str = ""

    @property
    def is_admin(self) -> bool:
        return self.user_type is UserType.ADMIN

    def can_modify(self, owner_id: str) -> bool:
        """True if this user owns the entity or is an admin."""
        return self.id == owner_id or self.is_admin

    @classmethod
    def from_api(cls, data: dict[str, Any], password_hash: str = "") -> "User":
        """
        Create a User from an API response body.

        The server returns the Mongo document id as either 'id' or '_id'
        depending on the endpoint, and omits the password.
        """
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            email=data.get("email", ""),
            name=data.get("name", ""),
            full_name=data.get("fullName", ""),
            user_type=UserType(data.get("userType", UserType.LISTENER.value)),
            verification_status=VerificationStatus(
                data.get("verificationStatus", VerificationStatus.UNVERIFIED.value)
            ),
            password_hash=password_hash,
            is_approved=bool(data.get("isApproved", False)),
            is_suspended=bool(data.get("isSuspended", False)),
            bio=data.get("bio") or "",
            profile_image_url=data.get("profileImageUrl") or "",
        )


@dataclass(frozen=True)
class Music:
    """
    Immutable representation of an uploaded track.

    Attributes:
        id: Track id.
        title: Track title.
        artist: Artist display name.
        artist_id: Id of the owning artist user.
        duration_ms: Length in milliseconds; 0 means unknown.
        path: Local file path or URI of the audio source.
        play_count: Distinct listeners that played the track.
        favorite: Derived from the reader's watchlist membership, never stored.
        approval_status: Moderation state; only APPROVED tracks are public.
        upload_date: ISO timestamp of the upload.
    """

    id: str
    title: str
    artist: str
    artist_id: str
    album: str = ""
    genre: str = ""
    duration_ms: int = 0
    path: str = ""
    artwork_uri: str = ""
    play_count: int = 0
    favorite: bool = False
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    upload_date: str = field(default_factory=now_iso)

    @property
    def duration_str(self) -> str:
        """Duration as M:SS, or --:-- when unknown."""
        if self.duration_ms <= 0:
            return "--:--"
        seconds = self.duration_ms // 1000
        return f"{seconds // 60}:{seconds % 60:02d}"


@dataclass(frozen=True)
class LibraryItem:
    """
    A playlist or a watchlist.

    Attributes:
        id: Numeric id chosen by the client at creation.
        kind: PLAYLIST or WATCHLIST.
        name: Display name.
        created_by: Owner user id.
        description: Free text.
        cover_art_url: Playlist cover; always empty for watchlists.
        is_public: Playlists only; watchlists are always private.
        songs: Ordered music ids, no duplicates.
    """

    id: int
    kind: LibraryKind
    name: str
    created_by: str
    description: str = ""
    cover_art_url: str = ""
    is_public: bool = False
    songs: tuple[str, ...] = ()

    def contains(self, music_id: str) -> bool:
        return music_id in self.songs

    @classmethod
    def from_api(cls, data: dict[str, Any], kind: LibraryKind) -> "LibraryItem":
        """Create a LibraryItem from a playlist or watchlist response body."""
        is_playlist = kind is LibraryKind.PLAYLIST
        return cls(
            id=int(data["id"]),
            kind=kind,
            name=data.get("name", ""),
            created_by=str(data.get("createdBy", "")),
            description=data.get("description") or "",
            cover_art_url=(data.get("coverArtUrl") or "") if is_playlist else "",
            is_public=bool(data.get("isPublic", True)) if is_playlist else False,
            songs=tuple(str(song) for song in data.get("songs", [])),
        )

    def to_api(self) -> dict[str, Any]:
        """Request body for creating this item."""
        body: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
        if self.kind is LibraryKind.PLAYLIST:
            body["coverArtUrl"] = self.cover_art_url
            body["isPublic"] = self.is_public
        return body


@dataclass(frozen=True)
class Follow:
    """Directed follow edge between two users."""

    follower_id: str
    following_id: str
    created_at: str = field(default_factory=now_iso)


@dataclass(frozen=True)
class Notification:
    """
    Message shown in a user's notification inbox.

    Notifications are created on this device when a local action concerns
    another user (a new follower, an approved upload, a verification
    decision) and never leave it.

    Attributes:
        id: Client-generated UUID4.
        user_id: Recipient.
        related_content_id: Id of the user or track the message is about.
        related_content_type: "USER" or "MUSIC", empty when unrelated.
    """

    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.SYSTEM
    timestamp: str = field(default_factory=now_iso)
    is_read: bool = False
    related_content_id: str = ""
    related_content_type: str = ""
    image_url: str = ""
