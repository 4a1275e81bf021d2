"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from arif_music.core.database import LocalStore
from arif_music.core.exceptions import PlaybackError
from arif_music.core.session import SessionManager
from arif_music.models import ApprovalStatus, LibraryKind, Music, User, UserType
from arif_music.remote.gateway import RemoteGateway
from arif_music.sync.connectivity import ConnectivityMonitor
from arif_music.sync.library import LibraryRepository
from arif_music.sync.music import MusicRepository
from arif_music.sync.notifications import NotificationRepository
from arif_music.sync.strategy import SyncStrategy
from arif_music.sync.users import UserRepository, hash_password


API_URL = "http://api.arif.test"
PASSWORD = "s3cret"


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def store(temp_dir):
    """Local store in a temporary database file"""
    local_store = LocalStore(temp_dir / "arif_music.db")
    yield local_store
    local_store.close()


@pytest.fixture
def session():
    """In-memory session (no file)"""
    return SessionManager(None)


@pytest.fixture
def connectivity():
    """Connectivity with no probe: online until forced or a request fails"""
    return ConnectivityMonitor()


@pytest.fixture
def strategy(connectivity):
    return SyncStrategy(connectivity)


@pytest.fixture
def gateway(session):
    """Gateway pointed at a host that only `responses` answers"""
    client = RemoteGateway(API_URL, session, timeout=2.0)
    yield client
    client.close()


@pytest.fixture
def users(store, gateway, session, strategy):
    return UserRepository(store, gateway, session, strategy)


@pytest.fixture
def music_repo(store, session, strategy):
    return MusicRepository(store, session, strategy)


@pytest.fixture
def playlists(store, gateway, session, strategy):
    return LibraryRepository(LibraryKind.PLAYLIST, store, gateway, session, strategy)


@pytest.fixture
def watchlists(store, gateway, session, strategy):
    return LibraryRepository(LibraryKind.WATCHLIST, store, gateway, session, strategy)


@pytest.fixture
def notifications(store, session, strategy):
    return NotificationRepository(store, session, strategy)


def make_user(store, user_id, user_type=UserType.LISTENER, email=None):
    """Insert a user with PASSWORD as password"""
    return store.insert_user(User(
        id=user_id,
        email=email or f"{user_id}@arif.test",
        name=user_id,
        full_name=f"{user_id.capitalize()} Test",
        user_type=user_type,
        password_hash=hash_password(PASSWORD),
    ))


def make_music(store, music_id, artist_id="artist", duration_ms=180000,
               approval_status=ApprovalStatus.APPROVED, **fields):
    return store.upsert_music(Music(
        id=music_id,
        title=fields.pop("title", f"Song {music_id}"),
        artist=fields.pop("artist", "Artist"),
        artist_id=artist_id,
        duration_ms=duration_ms,
        path=fields.pop("path", f"/music/{music_id}.mp3"),
        approval_status=approval_status,
        **fields
    ))


@pytest.fixture
def listener(store, session):
    """Signed-in listener (offline session, no token)"""
    user = make_user(store, "listener")
    session.save(None, user.id)
    return user


@pytest.fixture
def catalogue(store):
    """Artist plus three approved tracks"""
    make_user(store, "artist", UserType.ARTIST)
    return [make_music(store, music_id) for music_id in ("m1", "m2", "m3")]


class FakeClock:
    """Stand-in for PlaybackClock that never ticks on its own"""

    def __init__(self):
        self.running = False
        self.starts = 0

    def start(self, callback):
        if not self.running:
            self.starts += 1
        self.running = True

    def stop(self):
        self.running = False


class FakeSource:
    """AudioSource stand-in; ids in `failing` cannot be prepared"""

    def __init__(self, music, failing=frozenset()):
        self.music = music
        self.failing = failing

    def prepare(self):
        if self.music.id in self.failing:
            raise PlaybackError("Audio source is not readable", track_id=self.music.id)
        return self.music.duration_ms
