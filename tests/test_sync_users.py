"""UserRepository tests, online (mocked API) and offline"""

import pytest
import requests
import responses

from arif_music.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from arif_music.models import UserType, VerificationStatus
from arif_music.sync.users import hash_password
from tests.conftest import API_URL, PASSWORD, make_user


def sign_in(session, user_id, token=None):
    session.save(token, user_id)


class TestRegisterAndLogin:

    def test_online_register_uses_server_id_and_token(self, users, store, session):
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/users/register", json={
                "_id": "server-1",
                "email": "ada@arif.test",
                "name": "ada",
                "fullName": "Ada L.",
                "userType": "LISTENER",
                "token": "tok-1",
            }, status=201)

            result = users.register("Ada@Arif.test", "pw", "ada", "Ada L.")

        assert result.ok
        assert result.value.id == "server-1"
        assert session.token == "tok-1"
        assert store.get_user("server-1").password_hash == hash_password("pw")

    def test_offline_register_then_offline_login(self, users, store, session, connectivity):
        connectivity.force_offline()

        registered = users.register("ada@arif.test", "pw", "ada", "Ada L.").unwrap()
        assert session.user_id == registered.id
        assert session.token is None

        users.logout()
        assert session.is_authenticated is False

        logged_in = users.login("ada@arif.test", "pw").unwrap()
        assert logged_in.id == registered.id

    def test_network_failure_registers_locally(self, users, store):
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/users/register",
                     body=requests.exceptions.ConnectionError("down"))

            result = users.register("ada@arif.test", "pw", "ada", "Ada L.")

        assert result.ok
        assert store.get_user_by_email("ada@arif.test") is not None

    def test_duplicate_email_is_conflict_without_request(self, users, store):
        make_user(store, "ada", email="ada@arif.test")
        with responses.RequestsMock() as rsps:
            result = users.register("ada@arif.test", "pw", "ada", "Ada L.")
            assert len(rsps.calls) == 0
        assert isinstance(result.error, ConflictError)

    @pytest.mark.parametrize("email, password, name", [
        ("not-an-email", "pw", "ada"),
        ("ada@arif.test", "", "ada"),
        ("ada@arif.test", "pw", ""),
    ])
    def test_register_validation(self, users, email, password, name):
        result = users.register(email, password, name, "Full Name")
        assert isinstance(result.error, ValidationError)

    def test_server_conflict_is_not_registered_locally(self, users, store, session):
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/users/register",
                     json={"message": "User already exists"}, status=400)

            result = users.register("ada@arif.test", "pw", "ada", "Ada L.")

        assert isinstance(result.error, ConflictError)
        assert store.get_user_by_email("ada@arif.test") is None
        assert session.is_authenticated is False

    def test_server_rejected_login_ignores_cached_password(self, users, store, session):
        make_user(store, "ada")
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/users/login",
                     json={"message": "Invalid credentials"}, status=401)

            result = users.login("ada@arif.test", PASSWORD)

        assert isinstance(result.error, AuthenticationError)
        assert session.is_authenticated is False

    def test_offline_login_wrong_password(self, users, store, connectivity):
        make_user(store, "ada")
        connectivity.force_offline()
        result = users.login("ada@arif.test", "wrong")
        assert isinstance(result.error, AuthenticationError)

    def test_online_login_mirrors_user(self, users, store, session):
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/users/login", json={
                "_id": "u9", "email": "bob@arif.test", "name": "bob",
                "fullName": "Bob", "userType": "ARTIST", "token": "tok-9",
            }, status=200)

            user = users.login("bob@arif.test", "pw").unwrap()

        assert user.user_type is UserType.ARTIST
        assert session.token == "tok-9"
        assert store.get_user("u9").email == "bob@arif.test"

    def test_reset_password_offline(self, users, store, connectivity):
        make_user(store, "ada")
        connectivity.force_offline()

        users.reset_password("ada@arif.test", "new-pw").unwrap()

        assert users.login("ada@arif.test", "new-pw").ok
        assert not users.login("ada@arif.test", PASSWORD).ok

    def test_user_exists_offline(self, users, store, connectivity):
        make_user(store, "ada")
        connectivity.force_offline()
        assert users.user_exists("ada@arif.test").value is True
        assert users.user_exists("nobody@arif.test").value is False


class TestProfiles:

    def test_current_user_requires_session(self, users):
        assert isinstance(users.current_user().error, AuthenticationError)

    def test_update_profile_offline(self, users, store, session, connectivity):
        make_user(store, "ada")
        sign_in(session, "ada")
        connectivity.force_offline()

        updated = users.update_profile(full_name="Ada Lovelace", bio="Hi").unwrap()

        assert updated.full_name == "Ada Lovelace"
        assert store.get_user("ada").bio == "Hi"

    def test_update_profile_online_keeps_unreturned_fields(self, users, store, session):
        make_user(store, "ada")
        sign_in(session, "ada", token="tok")
        with responses.RequestsMock() as rsps:
            rsps.add(responses.PUT, f"{API_URL}/api/users/profile",
                     json={"_id": "ada", "bio": "From server"}, status=200)

            updated = users.update_profile(bio="From server").unwrap()

        assert updated.bio == "From server"
        assert updated.email == "ada@arif.test"

    def test_delete_other_user_is_refused_before_request(self, users, store, session):
        make_user(store, "ada")
        make_user(store, "bob")
        sign_in(session, "ada", token="tok")

        with responses.RequestsMock() as rsps:
            result = users.delete_user("bob")
            assert len(rsps.calls) == 0

        assert isinstance(result.error, AuthorizationError)
        assert store.get_user("bob") is not None

    def test_delete_self_clears_session(self, users, store, session, connectivity):
        make_user(store, "ada")
        sign_in(session, "ada")
        connectivity.force_offline()

        assert users.delete_user("ada").ok
        assert store.get_user("ada") is None
        assert session.is_authenticated is False

    def test_admin_deletes_anyone(self, users, store, session):
        make_user(store, "root", UserType.ADMIN)
        make_user(store, "bob")
        sign_in(session, "root", token="tok")
        with responses.RequestsMock() as rsps:
            rsps.add(responses.DELETE, f"{API_URL}/api/users/bob",
                     json={"message": "User deleted"}, status=200)

            assert users.delete_user("bob").ok

        assert store.get_user("bob") is None
        assert session.user_id == "root"


class TestModeration:

    @pytest.fixture
    def admin(self, store, session, connectivity):
        make_user(store, "root", UserType.ADMIN)
        make_user(store, "art", UserType.ARTIST)
        sign_in(session, "root")
        connectivity.force_offline()

    def test_admin_operations(self, users, store, admin):
        assert users.approve_artist("art").value.is_approved is True
        assert users.suspend_user("art").value.is_suspended is True
        assert users.set_user_type("art", UserType.LISTENER).value.user_type is UserType.LISTENER

    def test_unknown_target_is_not_found(self, users, admin):
        assert isinstance(users.approve_artist("ghost").error, NotFoundError)

    def test_non_admin_refused(self, users, store, session, connectivity):
        make_user(store, "ada")
        make_user(store, "art", UserType.ARTIST)
        sign_in(session, "ada")
        connectivity.force_offline()

        assert isinstance(users.suspend_user("art").error, AuthorizationError)
        assert store.get_user("art").is_suspended is False

    def test_verification_flow(self, users, store, session, admin):
        sign_in(session, "art")
        assert users.request_verification("art").value.verification_status is (
            VerificationStatus.PENDING
        )

        sign_in(session, "root")
        assert [user.id for user in users.pending_verifications().value] == ["art"]
        users.set_verification_status("art", VerificationStatus.VERIFIED).unwrap()
        assert users.pending_verifications().value == []

    def test_listener_cannot_request_verification(self, users, store, session, admin):
        make_user(store, "ada")
        sign_in(session, "ada")
        assert isinstance(users.request_verification("ada").error, ValidationError)


class TestFollows:

    @pytest.fixture
    def ada(self, store, session, connectivity):
        make_user(store, "ada")
        make_user(store, "art", UserType.ARTIST)
        sign_in(session, "ada")
        connectivity.force_offline()

    def test_follow_and_counts(self, users, ada):
        users.follow_artist("art").unwrap()

        assert users.is_following("art").value is True
        assert users.follower_count("art").value == 1
        assert users.following_count("ada").value == 1
        assert [user.id for user in users.followers("art").value] == ["ada"]

    def test_follow_twice_is_conflict(self, users, ada):
        users.follow_artist("art").unwrap()
        assert isinstance(users.follow_artist("art").error, ConflictError)

    def test_cannot_follow_self(self, users, ada):
        assert isinstance(users.follow_artist("ada").error, ValidationError)

    def test_unfollow_not_followed(self, users, ada):
        assert isinstance(users.unfollow_artist("art").error, NotFoundError)

    def test_online_follow_mirrors_edge(self, users, store, session, ada, connectivity):
        connectivity.force_online()
        sign_in(session, "ada", token="tok")
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, f"{API_URL}/api/users/art/follow",
                     json={"message": "Followed"}, status=200)

            users.follow_artist("art").unwrap()

        assert store.is_following("ada", "art")

    def test_artists_listing(self, users, ada):
        assert [user.id for user in users.artists().value] == ["art"]
