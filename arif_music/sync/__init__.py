"""
Syncing repositories: network first, local store as fallback.

Modules:
    connectivity  - ConnectivityMonitor (forced state, cached probe)
    strategy      - Result and SyncStrategy, the shared remote/local flow
    users         - UserRepository: accounts, moderation, follows
    music         - MusicRepository: catalogue and play counts (local only)
    library       - LibraryRepository: playlists and watchlists
    notifications - NotificationRepository and notify(): local inbox

Usage:
    from arif_music.sync import (
        ConnectivityMonitor, SyncStrategy,
        UserRepository, MusicRepository, LibraryRepository
    )

    strategy = SyncStrategy(ConnectivityMonitor(probe=gateway.ping))
    users = UserRepository(store, gateway, session, strategy)
    result = users.login("a@b.c", "secret")
"""

from arif_music.sync.connectivity import ConnectivityMonitor
from arif_music.sync.library import FAVORITES_NAME, LibraryRepository
from arif_music.sync.music import MusicRepository
from arif_music.sync.notifications import NotificationRepository, notify
from arif_music.sync.strategy import Result, SyncStrategy
from arif_music.sync.users import UserRepository, hash_password

__all__ = [
    "ConnectivityMonitor",
    "Result",
    "SyncStrategy",
    "UserRepository",
    "MusicRepository",
    "LibraryRepository",
    "NotificationRepository",
    "notify",
    "FAVORITES_NAME",
    "hash_password",
]
