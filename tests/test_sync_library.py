"""LibraryRepository tests for playlists and watchlists"""

import pytest
import responses

from arif_music.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from arif_music.models import LibraryItem, LibraryKind, UserType
from arif_music.sync.library import FAVORITES_NAME, LibraryRepository
from tests.conftest import API_URL, make_user


@pytest.fixture
def offline(connectivity):
    connectivity.force_offline()


class TestCreateAndRead:

    def test_offline_create_is_readable_locally(self, playlists, listener, offline):
        created = playlists.create_item("Road trip", description="Songs for the car").unwrap()

        fetched = playlists.get_item(created.id).unwrap()

        assert fetched == created
        assert fetched.created_by == "listener"
        assert fetched.songs == ()
        assert [item.id for item in playlists.list_items().value] == [created.id]

    def test_create_requires_session(self, playlists, offline):
        assert isinstance(playlists.create_item("x").error, AuthenticationError)

    def test_blank_name_rejected(self, playlists, listener, offline):
        assert isinstance(playlists.create_item("   ").error, ValidationError)

    def test_watchlist_is_always_private(self, watchlists, listener, offline):
        item = watchlists.create_item("Later", cover_art_url="http://x/y.png").unwrap()
        assert item.is_public is False
        assert item.cover_art_url == ""

    def test_online_create_is_mirrored(self, playlists, listener, session, store):
        session.save("tok", "listener")
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/playlists", json={
                "id": 1700000000000, "name": "Road trip", "createdBy": "listener",
                "isPublic": True, "songs": [],
            }, status=201)

            item = playlists.create_item("Road trip").unwrap()

        assert item.id == 1700000000000
        assert store.get_item(LibraryKind.PLAYLIST, item.id).name == "Road trip"

    def test_mirrored_list_drops_uncached_songs(
        self, playlists, listener, session, store, catalogue
    ):
        session.save("tok", "listener")
        with responses.RequestsMock() as rsps:
            rsps.add(responses.GET, f"{API_URL}/api/playlists", json=[{
                "id": 1700000000000, "name": "Road trip", "createdBy": "listener",
                "isPublic": True, "songs": ["m1", "ghost"],
            }], status=200)

            items = playlists.list_items().unwrap()

        assert items[0].songs == ("m1",)
        assert store.get_item(LibraryKind.PLAYLIST, 1700000000000).songs == ("m1",)

    def test_missing_item_not_found(self, playlists, listener, offline):
        assert isinstance(playlists.get_item(12345).error, NotFoundError)

    def test_private_item_hidden_from_others(self, playlists, listener, store, session, offline):
        item = playlists.create_item("Secret", is_public=False).unwrap()
        make_user(store, "other")
        session.save(None, "other")

        assert isinstance(playlists.get_item(item.id).error, AuthorizationError)

        make_user(store, "root", UserType.ADMIN)
        session.save(None, "root")
        assert playlists.get_item(item.id).ok

    def test_next_id_skips_used_ids(self, store, gateway, session, strategy):
        repo = LibraryRepository(
            LibraryKind.PLAYLIST, store, gateway, session, strategy, clock=lambda: 5.0
        )
        store.insert_item(LibraryItem(
            id=5000, kind=LibraryKind.PLAYLIST, name="a", created_by="listener"
        ))
        store.insert_item(LibraryItem(
            id=5001, kind=LibraryKind.PLAYLIST, name="b", created_by="listener"
        ))
        assert repo.next_id() == 5002


class TestMembership:

    @pytest.fixture
    def playlist(self, playlists, listener, catalogue, offline):
        return playlists.create_item("Mix").unwrap()

    def test_add_and_remove(self, playlists, playlist):
        assert playlists.add_music(playlist.id, "m1").value.songs == ("m1",)
        assert playlists.add_music(playlist.id, "m2").value.songs == ("m1", "m2")
        assert playlists.remove_music(playlist.id, "m1").value.songs == ("m2",)

    def test_duplicate_add_is_conflict_and_unchanged(self, playlists, playlist, store):
        playlists.add_music(playlist.id, "m1").unwrap()

        result = playlists.add_music(playlist.id, "m1")

        assert isinstance(result.error, ConflictError)
        assert store.get_item(LibraryKind.PLAYLIST, playlist.id).songs == ("m1",)

    def test_remove_non_member_is_not_found(self, playlists, playlist):
        assert isinstance(playlists.remove_music(playlist.id, "m3").error, NotFoundError)

    def test_unknown_music_is_not_found(self, playlists, playlist):
        assert isinstance(playlists.add_music(playlist.id, "ghost").error, NotFoundError)

    def test_non_owner_refused_without_request(
        self, playlists, playlist, store, session, connectivity
    ):
        make_user(store, "other")
        session.save("tok", "other")
        connectivity.force_online()

        with responses.RequestsMock() as rsps:
            add = playlists.add_music(playlist.id, "m1")
            delete = playlists.delete_item(playlist.id)
            assert len(rsps.calls) == 0

        assert isinstance(add.error, AuthorizationError)
        assert isinstance(delete.error, AuthorizationError)
        assert store.get_item(LibraryKind.PLAYLIST, playlist.id).songs == ()

    def test_toggle_music(self, playlists, playlist):
        assert playlists.toggle_music(playlist.id, "m2").value is True
        assert playlists.toggle_music(playlist.id, "m2").value is False

    def test_online_add_is_mirrored(self, playlists, playlist, session, connectivity, store):
        session.save("tok", "listener")
        connectivity.force_online()
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/playlists/{playlist.id}/songs", json={
                "id": playlist.id, "name": "Mix", "createdBy": "listener",
                "isPublic": True, "songs": ["m3"],
            }, status=200)

            playlists.add_music(playlist.id, "m3").unwrap()

        assert store.get_item(LibraryKind.PLAYLIST, playlist.id).songs == ("m3",)

    def test_update_and_delete(self, playlists, playlist, store):
        updated = playlists.update_item(playlist.id, name="Mix 2", is_public=False).unwrap()
        assert updated.name == "Mix 2"
        assert updated.is_public is False

        assert playlists.delete_item(playlist.id).ok
        assert store.get_item(LibraryKind.PLAYLIST, playlist.id) is None

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_rename_rejected(self, playlists, playlist, store, name):
        with responses.RequestsMock() as rsps:
            result = playlists.update_item(playlist.id, name=name)
            assert len(rsps.calls) == 0

        assert isinstance(result.error, ValidationError)
        assert store.get_item(LibraryKind.PLAYLIST, playlist.id).name == playlist.name

    def test_check_music(self, playlists, playlist):
        playlists.add_music(playlist.id, "m1").unwrap()
        assert playlists.check_music("m1").value == [playlist.id]
        assert playlists.check_music("m2").value == []


class TestFavorites:

    def test_toggle_favorite_creates_favorites(self, watchlists, music_repo, listener,
                                               catalogue, offline):
        assert watchlists.toggle_favorite("m1").value is True

        items = watchlists.list_items().value
        assert [item.name for item in items] == [FAVORITES_NAME]
        assert music_repo.get_music("m1").value.favorite is True

        assert watchlists.toggle_favorite("m1").value is False
        assert music_repo.get_music("m1").value.favorite is False
        assert len(watchlists.list_items().value) == 1

    def test_playlists_do_not_hold_favorites(self, playlists, listener, offline):
        assert isinstance(playlists.toggle_favorite("m1").error, ValidationError)
