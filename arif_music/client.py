"""
Wiring of the arif-music components.

ArifClient builds every component from a Config and hands the shared
SessionManager, LocalStore and SyncStrategy to each repository
explicitly; there are no module-level singletons.

Usage:
    config = load_config()
    client = ArifClient.create(config)
    try:
        client.users.login(email, password).unwrap()
        playlist = client.playlists.create_item("Road trip").unwrap()
    finally:
        client.close()
"""

from dataclasses import dataclass

from arif_music.core.config import Config
from arif_music.core.database import LocalStore
from arif_music.core.logger import get_logger
from arif_music.core.session import SessionManager
from arif_music.models import LibraryKind
from arif_music.playback.clock import PlaybackClock
from arif_music.playback.engine import PlaybackEngine
from arif_music.remote.gateway import RemoteGateway
from arif_music.sync.connectivity import ConnectivityMonitor
from arif_music.sync.library import LibraryRepository
from arif_music.sync.music import MusicRepository
from arif_music.sync.notifications import NotificationRepository
from arif_music.sync.strategy import SyncStrategy
from arif_music.sync.users import UserRepository


logger = get_logger(__name__)


@dataclass
class ArifClient:
    """All components of one client instance."""

    config: Config
    store: LocalStore
    session: SessionManager
    gateway: RemoteGateway
    connectivity: ConnectivityMonitor
    strategy: SyncStrategy
    users: UserRepository
    music: MusicRepository
    playlists: LibraryRepository
    watchlists: LibraryRepository
    notifications: NotificationRepository
    player: PlaybackEngine

    @classmethod
    def create(cls, config: Config, offline: bool = False) -> "ArifClient":
        """
        Build a client from configuration.

        Args:
            config: Loaded configuration.
            offline: Never contact the API during this run.

        Raises:
            DatabaseError: If the local store cannot be opened.
        """
        config.storage.data_dir.mkdir(parents=True, exist_ok=True)

        store = LocalStore(config.storage.database_path)
        session = SessionManager(config.storage.session_path)
        gateway = RemoteGateway(config.api.base_url, session, timeout=config.api.timeout)

        connectivity = ConnectivityMonitor(
            probe=gateway.ping, probe_interval=config.network.probe_interval
        )
        if offline:
            connectivity.force_offline()

        strategy = SyncStrategy(connectivity)
        music = MusicRepository(store, session, strategy)

        logger.debug(
            f"Client ready - API: {config.api.base_url}, data: {config.storage.data_dir}, "
            f"offline: {offline}"
        )

        return cls(
            config=config,
            store=store,
            session=session,
            gateway=gateway,
            connectivity=connectivity,
            strategy=strategy,
            users=UserRepository(store, gateway, session, strategy),
            music=music,
            playlists=LibraryRepository(LibraryKind.PLAYLIST, store, gateway, session, strategy),
            watchlists=LibraryRepository(LibraryKind.WATCHLIST, store, gateway, session, strategy),
            notifications=NotificationRepository(store, session, strategy),
            player=PlaybackEngine(
                music, clock=PlaybackClock(config.playback.tick_interval_ms)
            ),
        )

    def close(self) -> None:
        self.player.stop()
        self.gateway.close()
        self.store.close()
