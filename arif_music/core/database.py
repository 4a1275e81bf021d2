"""
Thread-safe SQLite store for arif-music.

This is the on-device cache the repositories fall back to when the API is
unreachable, and the mirror they write through to when it is not.

Schema:
    users:          One row per account (unique email), with the local
                    password hash used for offline login
    music:          Track metadata, approval state and play count
    music_played:   One row per (user, music) pair; dedupes play counts
    library_items:  Playlists and watchlists, keyed by (kind, id)
    library_songs:  Ordered membership of music ids in a library item
    follows:        Directed user -> user edges, unique per pair

Invariants enforced here:
    - Adding a song already in an item raises ConflictError; removing an
      absent one raises NotFoundError; neither changes the item
    - Library songs must reference an existing music row
    - A follow edge exists at most once per pair
    - Play count increments at most once per (user, music)

Usage:
    store = LocalStore(config.storage.database_path)

    store.upsert_user(user)
    store.add_song(LibraryKind.PLAYLIST, playlist_id, music_id)
    incremented = store.record_play(user_id, music_id)
"""

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any, Generator

from arif_music.core.exceptions import ConflictError, DatabaseError, NotFoundError
from arif_music.core.logger import get_logger
from arif_music.models import (
    ApprovalStatus,
    Follow,
    LibraryItem,
    LibraryKind,
    Music,
    Notification,
    NotificationType,
    User,
    UserType,
    VerificationStatus,
    now_iso,
)


logger = get_logger(__name__)

DATABASE_VERSION = 2


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    full_name TEXT NOT NULL,
    user_type TEXT NOT NULL,
    verification_status TEXT NOT NULL,
    is_approved INTEGER NOT NULL DEFAULT 0,
    is_suspended INTEGER NOT NULL DEFAULT 0,
    bio TEXT NOT NULL DEFAULT '',
    profile_image_url TEXT NOT NULL DEFAULT '',
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS music (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    artist TEXT NOT NULL,
    artist_id TEXT NOT NULL,
    album TEXT NOT NULL DEFAULT '',
    genre TEXT NOT NULL DEFAULT '',
    duration_ms INTEGER NOT NULL DEFAULT 0,
    path TEXT NOT NULL DEFAULT '',
    artwork_uri TEXT NOT NULL DEFAULT '',
    play_count INTEGER NOT NULL DEFAULT 0,
    approval_status TEXT NOT NULL,
    upload_date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS music_played (
    user_id TEXT NOT NULL,
    music_id TEXT NOT NULL,
    played_at TEXT,
    PRIMARY KEY (user_id, music_id),
    FOREIGN KEY (music_id) REFERENCES music(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS library_items (
    kind TEXT NOT NULL,
    id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    cover_art_url TEXT NOT NULL DEFAULT '',
    created_by TEXT NOT NULL,
    is_public INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT,
    PRIMARY KEY (kind, id)
);

CREATE TABLE IF NOT EXISTS library_songs (
    kind TEXT NOT NULL,
    item_id INTEGER NOT NULL,
    music_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (kind, item_id, music_id),
    FOREIGN KEY (kind, item_id) REFERENCES library_items(kind, id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS follows (
    follower_id TEXT NOT NULL,
    following_id TEXT NOT NULL,
    created_at TEXT,
    PRIMARY KEY (follower_id, following_id)
);

CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    type TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    is_read INTEGER NOT NULL DEFAULT 0,
    related_content_id TEXT NOT NULL DEFAULT '',
    related_content_type TEXT NOT NULL DEFAULT '',
    image_url TEXT NOT NULL DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_music_artist ON music(artist_id);
CREATE INDEX IF NOT EXISTS idx_library_items_owner ON library_items(kind, created_by);
CREATE INDEX IF NOT EXISTS idx_library_songs_music ON library_songs(music_id);
CREATE INDEX IF NOT EXISTS idx_follows_following ON follows(following_id);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, timestamp);
"""


class LocalStore:
    """
    Thread-safe SQLite store.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing, so every
    entity kind has one serialized writer path.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Lock, yield the connection, and commit on success.

        Rolls back on any exception; sqlite3 errors are re-raised as
        DatabaseError, taxonomy errors pass through unchanged.
        """
        with self._lock:
            conn = self._connection()
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(
                    f"Database operation failed: {e}",
                    details={"path": str(self.db_path), "original_error": str(e)}
                ) from e
            except Exception:
                conn.rollback()
                raise

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _init_database(self) -> None:
        conn = self._connection()
        conn.executescript(_SCHEMA_SQL)

        row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()

        if row is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
        elif row[0] != DATABASE_VERSION:
            raise DatabaseError(
                f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                details={"expected": DATABASE_VERSION, "actual": row[0]}
            )
        conn.commit()

    # =========================================================================
    # Row conversion
    # =========================================================================

    @staticmethod
    def _user_from_row(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            full_name=row["full_name"],
            user_type=UserType(row["user_type"]),
            verification_status=VerificationStatus(row["verification_status"]),
            password_hash=row["password_hash"],
            is_approved=bool(row["is_approved"]),
            is_suspended=bool(row["is_suspended"]),
            bio=row["bio"],
            profile_image_url=row["profile_image_url"],
        )

    @staticmethod
    def _music_from_row(row: sqlite3.Row) -> Music:
        return Music(
            id=row["id"],
            title=row["title"],
            artist=row["artist"],
            artist_id=row["artist_id"],
            album=row["album"],
            genre=row["genre"],
            duration_ms=row["duration_ms"],
            path=row["path"],
            artwork_uri=row["artwork_uri"],
            play_count=row["play_count"],
            approval_status=ApprovalStatus(row["approval_status"]),
            upload_date=row["upload_date"],
        )

    def _item_from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> LibraryItem:
        songs = conn.execute(
            "SELECT music_id FROM library_songs WHERE kind = ? AND item_id = ? ORDER BY position",
            (row["kind"], row["id"])
        ).fetchall()
        return LibraryItem(
            id=row["id"],
            kind=LibraryKind(row["kind"]),
            name=row["name"],
            created_by=row["created_by"],
            description=row["description"],
            cover_art_url=row["cover_art_url"],
            is_public=bool(row["is_public"]),
            songs=tuple(song["music_id"] for song in songs),
        )

    @staticmethod
    def _notification_from_row(row: sqlite3.Row) -> Notification:
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            message=row["message"],
            type=NotificationType(row["type"]),
            timestamp=row["timestamp"],
            is_read=bool(row["is_read"]),
            related_content_id=row["related_content_id"],
            related_content_type=row["related_content_type"],
            image_url=row["image_url"],
        )

    # =========================================================================
    # Users
    # =========================================================================

    def insert_user(self, user: User) -> User:
        """Insert a new account; ConflictError if the email or id is taken."""
        with self._transaction() as conn:
            existing = conn.execute(
                "SELECT 1 FROM users WHERE email = ? OR id = ?", (user.email, user.id)
            ).fetchone()
            if existing:
                raise ConflictError(
                    "User with this email already exists",
                    details={"email": user.email}
                )
            self._write_user(conn, user)
        return user

    def upsert_user(self, user: User) -> User:
        """
        Mirror a user returned by the API.

        A row with the same email but a different id (local registration
        later confirmed by the server under another id) is replaced. An
        empty password hash keeps the stored one.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, password_hash FROM users WHERE email = ? OR id = ?",
                (user.email, user.id)
            ).fetchone()
            if row is not None and not user.password_hash:
                user = replace(user, password_hash=row["password_hash"])
            conn.execute("DELETE FROM users WHERE email = ? OR id = ?", (user.email, user.id))
            self._write_user(conn, user)
        return user

    def _write_user(self, conn: sqlite3.Connection, user: User) -> None:
        conn.execute("""
            INSERT INTO users (
                id, email, password_hash, name, full_name, user_type,
                verification_status, is_approved, is_suspended, bio,
                profile_image_url, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            user.id, user.email, user.password_hash, user.name, user.full_name,
            user.user_type.value, user.verification_status.value,
            int(user.is_approved), int(user.is_suspended), user.bio,
            user.profile_image_url, now_iso()
        ))

    def update_user(self, user: User) -> User:
        """Overwrite an existing user row; NotFoundError if absent."""
        with self._transaction() as conn:
            cursor = conn.execute("""
                UPDATE users SET
                    email = ?, password_hash = ?, name = ?, full_name = ?,
                    user_type = ?, verification_status = ?, is_approved = ?,
                    is_suspended = ?, bio = ?, profile_image_url = ?, updated_at = ?
                WHERE id = ?
            """, (
                user.email, user.password_hash, user.name, user.full_name,
                user.user_type.value, user.verification_status.value,
                int(user.is_approved), int(user.is_suspended), user.bio,
                user.profile_image_url, now_iso(), user.id
            ))
            if cursor.rowcount == 0:
                raise NotFoundError("User not found", details={"user_id": user.id})
        return user

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT * FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return self._user_from_row(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT * FROM users WHERE email = ?", (email,)
            ).fetchone()
            return self._user_from_row(row) if row else None

    def list_users(self, user_type: UserType | None = None) -> list[User]:
        with self._lock:
            if user_type is None:
                rows = self._connection().execute("SELECT * FROM users ORDER BY name").fetchall()
            else:
                rows = self._connection().execute(
                    "SELECT * FROM users WHERE user_type = ? ORDER BY name", (user_type.value,)
                ).fetchall()
            return [self._user_from_row(row) for row in rows]

    def delete_user(self, user_id: str) -> None:
        """
        Delete a user together with everything they own: library items,
        follows, play history and notifications.

        Raises:
            NotFoundError: If no such user exists.
        """
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("User not found", details={"user_id": user_id})
            conn.execute("DELETE FROM library_items WHERE created_by = ?", (user_id,))
            conn.execute(
                "DELETE FROM follows WHERE follower_id = ? OR following_id = ?",
                (user_id, user_id)
            )
            conn.execute("DELETE FROM music_played WHERE user_id = ?", (user_id,))
            conn.execute("DELETE FROM notifications WHERE user_id = ?", (user_id,))

    # =========================================================================
    # Music
    # =========================================================================

    def upsert_music(self, music: Music) -> Music:
        """Insert or replace track metadata, keeping the stored play count."""
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO music (
                    id, title, artist, artist_id, album, genre, duration_ms, path,
                    artwork_uri, play_count, approval_status, upload_date
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    artist = excluded.artist,
                    artist_id = excluded.artist_id,
                    album = excluded.album,
                    genre = excluded.genre,
                    duration_ms = excluded.duration_ms,
                    path = excluded.path,
                    artwork_uri = excluded.artwork_uri,
                    approval_status = excluded.approval_status
            """, (
                music.id, music.title, music.artist, music.artist_id, music.album,
                music.genre, music.duration_ms, music.path, music.artwork_uri,
                music.play_count, music.approval_status.value, music.upload_date
            ))
        return music

    def get_music(self, music_id: str) -> Music | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT * FROM music WHERE id = ?", (music_id,)
            ).fetchone()
            return self._music_from_row(row) if row else None

    def list_music(
        self,
        approval_status: ApprovalStatus | None = None,
        artist_id: str | None = None,
        order_by: str = "title",
        limit: int | None = None,
        text: str | None = None
    ) -> list[Music]:
        """
        Query tracks.

        Args:
            approval_status: Restrict to one moderation state.
            artist_id: Restrict to one artist's uploads.
            order_by: "title", "newest" (upload date desc) or "plays" (play count desc).
            limit: Maximum rows.
            text: Case-insensitive substring matched against title, artist, album and genre.
        """
        orderings = {
            "title": "title COLLATE NOCASE",
            "newest": "upload_date DESC",
            "plays": "play_count DESC, title COLLATE NOCASE",
        }
        if order_by not in orderings:
            raise ValueError(f"Unknown ordering: {order_by}")

        clauses: list[str] = []
        params: list[Any] = []
        if approval_status is not None:
            clauses.append("approval_status = ?")
            params.append(approval_status.value)
        if artist_id is not None:
            clauses.append("artist_id = ?")
            params.append(artist_id)
        if text:
            clauses.append("(title LIKE ? OR artist LIKE ? OR album LIKE ? OR genre LIKE ?)")
            params.extend([f"%{text}%"] * 4)

        sql = "SELECT * FROM music"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += f" ORDER BY {orderings[order_by]}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._lock:
            rows = self._connection().execute(sql, params).fetchall()
            return [self._music_from_row(row) for row in rows]

    def set_approval_status(self, music_id: str, status: ApprovalStatus) -> Music:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE music SET approval_status = ? WHERE id = ?", (status.value, music_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Music not found", details={"music_id": music_id})
            row = conn.execute("SELECT * FROM music WHERE id = ?", (music_id,)).fetchone()
            return self._music_from_row(row)

    def delete_music(self, music_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM music WHERE id = ?", (music_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Music not found", details={"music_id": music_id})
            conn.execute("DELETE FROM library_songs WHERE music_id = ?", (music_id,))

    def record_play(self, user_id: str, music_id: str) -> bool:
        """
        Increment the play count once per (user, music) pair.

        Returns:
            True if this call incremented the count, False if the pair
            was already recorded.

        Raises:
            NotFoundError: If the music id is unknown.
        """
        with self._transaction() as conn:
            if conn.execute("SELECT 1 FROM music WHERE id = ?", (music_id,)).fetchone() is None:
                raise NotFoundError("Music not found", details={"music_id": music_id})

            cursor = conn.execute(
                "INSERT OR IGNORE INTO music_played (user_id, music_id, played_at) VALUES (?, ?, ?)",
                (user_id, music_id, now_iso())
            )
            if cursor.rowcount == 0:
                return False

            conn.execute("UPDATE music SET play_count = play_count + 1 WHERE id = ?", (music_id,))
            return True

    def has_played(self, user_id: str, music_id: str) -> bool:
        with self._lock:
            row = self._connection().execute(
                "SELECT 1 FROM music_played WHERE user_id = ? AND music_id = ?",
                (user_id, music_id)
            ).fetchone()
            return row is not None

    # =========================================================================
    # Library items (playlists and watchlists)
    # =========================================================================

    def insert_item(self, item: LibraryItem) -> LibraryItem:
        """Insert a new, empty-or-populated item; ConflictError if the id is taken."""
        with self._transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM library_items WHERE kind = ? AND id = ?",
                (item.kind.value, item.id)
            ).fetchone()
            if exists:
                raise ConflictError(
                    f"{item.kind.label.capitalize()} with this ID already exists",
                    details={"item_id": item.id}
                )
            self._write_item(conn, item)
        return item

    def upsert_item(self, item: LibraryItem) -> LibraryItem:
        """
        Mirror an item returned by the API, replacing its song list.

        Song ids with no cached music entry are dropped, so every member of
        a stored item resolves locally. The stored item is returned.
        """
        with self._transaction() as conn:
            songs = tuple(dict.fromkeys(item.songs))
            known = self._cached_music_ids(conn, songs)
            unknown = [music_id for music_id in songs if music_id not in known]
            if unknown:
                logger.warning(
                    f"Dropping {len(unknown)} uncached song(s) from "
                    f"{item.kind.label} {item.id}: {', '.join(unknown)}"
                )
            item = replace(item, songs=tuple(music_id for music_id in songs if music_id in known))

            conn.execute(
                "DELETE FROM library_items WHERE kind = ? AND id = ?",
                (item.kind.value, item.id)
            )
            conn.execute(
                "DELETE FROM library_songs WHERE kind = ? AND item_id = ?",
                (item.kind.value, item.id)
            )
            self._write_item(conn, item)
        return item

    @staticmethod
    def _cached_music_ids(conn: sqlite3.Connection, music_ids: tuple[str, ...]) -> set[str]:
        if not music_ids:
            return set()
        placeholders = ", ".join("?" * len(music_ids))
        rows = conn.execute(f"SELECT id FROM music WHERE id IN ({placeholders})", music_ids)
        return {row["id"] for row in rows}

    def _write_item(self, conn: sqlite3.Connection, item: LibraryItem) -> None:
        conn.execute("""
            INSERT INTO library_items (
                kind, id, name, description, cover_art_url, created_by, is_public, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            item.kind.value, item.id, item.name, item.description,
            item.cover_art_url, item.created_by, int(item.is_public), now_iso()
        ))
        conn.executemany(
            "INSERT INTO library_songs (kind, item_id, music_id, position) VALUES (?, ?, ?, ?)",
            [(item.kind.value, item.id, music_id, position)
             for position, music_id in enumerate(dict.fromkeys(item.songs))]
        )

    def get_item(self, kind: LibraryKind, item_id: int) -> LibraryItem | None:
        with self._lock:
            conn = self._connection()
            row = conn.execute(
                "SELECT * FROM library_items WHERE kind = ? AND id = ?", (kind.value, item_id)
            ).fetchone()
            return self._item_from_row(conn, row) if row else None

    def list_items(self, kind: LibraryKind, owner_id: str) -> list[LibraryItem]:
        with self._lock:
            conn = self._connection()
            rows = conn.execute(
                "SELECT * FROM library_items WHERE kind = ? AND created_by = ? ORDER BY id",
                (kind.value, owner_id)
            ).fetchall()
            return [self._item_from_row(conn, row) for row in rows]

    def item_id_exists(self, kind: LibraryKind, item_id: int) -> bool:
        with self._lock:
            row = self._connection().execute(
                "SELECT 1 FROM library_items WHERE kind = ? AND id = ?", (kind.value, item_id)
            ).fetchone()
            return row is not None

    def update_item(self, item: LibraryItem) -> LibraryItem:
        """Update name, description, cover and visibility of an existing item."""
        with self._transaction() as conn:
            cursor = conn.execute("""
                UPDATE library_items SET
                    name = ?, description = ?, cover_art_url = ?, is_public = ?, updated_at = ?
                WHERE kind = ? AND id = ?
            """, (
                item.name, item.description, item.cover_art_url, int(item.is_public),
                now_iso(), item.kind.value, item.id
            ))
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"{item.kind.label.capitalize()} not found", details={"item_id": item.id}
                )
            row = conn.execute(
                "SELECT * FROM library_items WHERE kind = ? AND id = ?",
                (item.kind.value, item.id)
            ).fetchone()
            return self._item_from_row(conn, row)

    def delete_item(self, kind: LibraryKind, item_id: int) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM library_items WHERE kind = ? AND id = ?", (kind.value, item_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"{kind.label.capitalize()} not found", details={"item_id": item_id}
                )
            conn.execute(
                "DELETE FROM library_songs WHERE kind = ? AND item_id = ?", (kind.value, item_id)
            )

    def add_song(self, kind: LibraryKind, item_id: int, music_id: str) -> LibraryItem:
        """
        Append a song to an item.

        Raises:
            NotFoundError: If the item or the music id does not exist.
            ConflictError: If the song is already a member.
        """
        with self._transaction() as conn:
            row = self._require_item_row(conn, kind, item_id)

            if conn.execute("SELECT 1 FROM music WHERE id = ?", (music_id,)).fetchone() is None:
                raise NotFoundError("Music not found", details={"music_id": music_id})

            member = conn.execute(
                "SELECT 1 FROM library_songs WHERE kind = ? AND item_id = ? AND music_id = ?",
                (kind.value, item_id, music_id)
            ).fetchone()
            if member:
                raise ConflictError(
                    f"Song already in {kind.label}",
                    details={"item_id": item_id, "music_id": music_id}
                )

            next_position = conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 FROM library_songs WHERE kind = ? AND item_id = ?",
                (kind.value, item_id)
            ).fetchone()[0]
            conn.execute(
                "INSERT INTO library_songs (kind, item_id, music_id, position) VALUES (?, ?, ?, ?)",
                (kind.value, item_id, music_id, next_position)
            )
            return self._item_from_row(conn, row)

    def remove_song(self, kind: LibraryKind, item_id: int, music_id: str) -> LibraryItem:
        """
        Remove a song from an item.

        Raises:
            NotFoundError: If the item does not exist or the song is not a member.
        """
        with self._transaction() as conn:
            row = self._require_item_row(conn, kind, item_id)
            cursor = conn.execute(
                "DELETE FROM library_songs WHERE kind = ? AND item_id = ? AND music_id = ?",
                (kind.value, item_id, music_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"Song not in {kind.label}",
                    details={"item_id": item_id, "music_id": music_id}
                )
            return self._item_from_row(conn, row)

    def items_containing(self, kind: LibraryKind, owner_id: str, music_id: str) -> list[int]:
        """Ids of the owner's items of this kind that contain the song."""
        with self._lock:
            rows = self._connection().execute("""
                SELECT i.id FROM library_items i
                JOIN library_songs s ON s.kind = i.kind AND s.item_id = i.id
                WHERE i.kind = ? AND i.created_by = ? AND s.music_id = ?
                ORDER BY i.id
            """, (kind.value, owner_id, music_id)).fetchall()
            return [row[0] for row in rows]

    def _require_item_row(
        self, conn: sqlite3.Connection, kind: LibraryKind, item_id: int
    ) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM library_items WHERE kind = ? AND id = ?", (kind.value, item_id)
        ).fetchone()
        if row is None:
            raise NotFoundError(
                f"{kind.label.capitalize()} not found", details={"item_id": item_id}
            )
        return row

    # =========================================================================
    # Follows
    # =========================================================================

    def add_follow(self, follow: Follow) -> Follow:
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO follows (follower_id, following_id, created_at) VALUES (?, ?, ?)",
                (follow.follower_id, follow.following_id, follow.created_at)
            )
            if cursor.rowcount == 0:
                raise ConflictError(
                    "Already following this user",
                    details={"follower_id": follow.follower_id, "following_id": follow.following_id}
                )
        return follow

    def remove_follow(self, follower_id: str, following_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM follows WHERE follower_id = ? AND following_id = ?",
                (follower_id, following_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    "Not following this user",
                    details={"follower_id": follower_id, "following_id": following_id}
                )

    def is_following(self, follower_id: str, following_id: str) -> bool:
        with self._lock:
            row = self._connection().execute(
                "SELECT 1 FROM follows WHERE follower_id = ? AND following_id = ?",
                (follower_id, following_id)
            ).fetchone()
            return row is not None

    def follower_ids(self, user_id: str) -> list[str]:
        with self._lock:
            rows = self._connection().execute(
                "SELECT follower_id FROM follows WHERE following_id = ? ORDER BY created_at",
                (user_id,)
            ).fetchall()
            return [row[0] for row in rows]

    def following_ids(self, user_id: str) -> list[str]:
        with self._lock:
            rows = self._connection().execute(
                "SELECT following_id FROM follows WHERE follower_id = ? ORDER BY created_at",
                (user_id,)
            ).fetchall()
            return [row[0] for row in rows]

    # =========================================================================
    # Notifications
    # =========================================================================

    def add_notification(self, notification: Notification) -> Notification:
        with self._transaction() as conn:
            cursor = conn.execute("""
                INSERT OR IGNORE INTO notifications (
                    id, user_id, title, message, type, timestamp, is_read,
                    related_content_id, related_content_type, image_url
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                notification.id, notification.user_id, notification.title,
                notification.message, notification.type.value, notification.timestamp,
                int(notification.is_read), notification.related_content_id,
                notification.related_content_type, notification.image_url
            ))
            if cursor.rowcount == 0:
                raise ConflictError(
                    "Notification with this ID already exists",
                    details={"notification_id": notification.id}
                )
        return notification

    def get_notification(self, notification_id: str) -> Notification | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT * FROM notifications WHERE id = ?", (notification_id,)
            ).fetchone()
            return self._notification_from_row(row) if row else None

    def list_notifications(self, user_id: str) -> list[Notification]:
        """A user's notifications, newest first."""
        with self._lock:
            rows = self._connection().execute(
                "SELECT * FROM notifications WHERE user_id = ? ORDER BY timestamp DESC, rowid DESC",
                (user_id,)
            ).fetchall()
            return [self._notification_from_row(row) for row in rows]

    def unread_count(self, user_id: str) -> int:
        with self._lock:
            row = self._connection().execute(
                "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND is_read = 0",
                (user_id,)
            ).fetchone()
            return row[0]

    def mark_notification_read(self, notification_id: str) -> Notification:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE id = ?", (notification_id,)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    "Notification not found", details={"notification_id": notification_id}
                )
        return self.get_notification(notification_id)

    def mark_all_notifications_read(self, user_id: str) -> int:
        """Returns the number of notifications that were unread."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE user_id = ? AND is_read = 0",
                (user_id,)
            )
            return cursor.rowcount

    def delete_notification(self, notification_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM notifications WHERE id = ?", (notification_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(
                    "Notification not found", details={"notification_id": notification_id}
                )

    def clear_notifications(self, user_id: str) -> int:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM notifications WHERE user_id = ?", (user_id,))
            return cursor.rowcount
