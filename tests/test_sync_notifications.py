"""NotificationRepository tests and the actions that create notifications"""

import pytest

from arif_music.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
)
from arif_music.models import (
    ApprovalStatus,
    Notification,
    NotificationType,
    UserType,
    VerificationStatus,
)
from arif_music.sync.notifications import notify
from tests.conftest import make_music, make_user


def inbox(store, user_id):
    return store.list_notifications(user_id)


@pytest.fixture
def offline(connectivity):
    connectivity.force_offline()


class TestInbox:

    def test_requires_session(self, notifications):
        assert isinstance(notifications.notifications().error, AuthenticationError)
        assert isinstance(notifications.unread_count().error, AuthenticationError)

    def test_newest_first_and_own_only(self, notifications, store, listener):
        notify(store, "listener", NotificationType.SYSTEM, "First", "one")
        notify(store, "listener", NotificationType.SYSTEM, "Second", "two")
        notify(store, "someone-else", NotificationType.SYSTEM, "Other", "three")

        entries = notifications.notifications().unwrap()

        assert [entry.title for entry in entries] == ["Second", "First"]
        assert notifications.unread_count().value == 2

    def test_mark_as_read(self, notifications, store, listener):
        first = notify(store, "listener", NotificationType.LIKE, "Liked", "a")
        notify(store, "listener", NotificationType.COMMENT, "Comment", "b")

        updated = notifications.mark_as_read(first.id).unwrap()

        assert updated.is_read is True
        assert notifications.unread_count().value == 1

    def test_mark_all_as_read(self, notifications, store, listener):
        for title in ("a", "b", "c"):
            notify(store, "listener", NotificationType.SYSTEM, title, title)

        assert notifications.mark_all_as_read().value == 3
        assert notifications.mark_all_as_read().value == 0
        assert notifications.unread_count().value == 0

    def test_delete_and_clear(self, notifications, store, listener):
        first = notify(store, "listener", NotificationType.SYSTEM, "a", "a")
        notify(store, "listener", NotificationType.SYSTEM, "b", "b")

        assert notifications.delete_notification(first.id).ok
        assert [entry.title for entry in notifications.notifications().value] == ["b"]

        assert notifications.clear_all().value == 1
        assert notifications.notifications().value == []

    def test_unknown_notification(self, notifications, listener):
        assert isinstance(notifications.mark_as_read("ghost").error, NotFoundError)
        assert isinstance(notifications.delete_notification("ghost").error, NotFoundError)

    def test_other_users_notification_is_untouched(self, notifications, store, listener):
        theirs = notify(store, "someone-else", NotificationType.SYSTEM, "Private", "x")

        assert isinstance(notifications.mark_as_read(theirs.id).error, AuthorizationError)
        assert isinstance(notifications.delete_notification(theirs.id).error, AuthorizationError)

        stored = store.get_notification(theirs.id)
        assert stored is not None
        assert stored.is_read is False

    def test_duplicate_id_is_conflict(self, store):
        notification = Notification(id="n1", user_id="u", title="t", message="m")
        store.add_notification(notification)
        with pytest.raises(ConflictError):
            store.add_notification(notification)

    def test_deleting_user_clears_inbox(self, store):
        make_user(store, "ada")
        notify(store, "ada", NotificationType.SYSTEM, "Hi", "hello")

        store.delete_user("ada")

        assert inbox(store, "ada") == []


class TestNotifyingActions:

    def test_follow_notifies_artist(self, users, store, listener, catalogue, offline):
        users.follow_artist("artist").unwrap()

        [entry] = inbox(store, "artist")
        assert entry.type is NotificationType.NEW_FOLLOWER
        assert entry.message == "listener started following you"
        assert entry.related_content_id == "listener"
        assert entry.related_content_type == "USER"

    def test_follow_without_token_still_notifies(self, users, store, listener, catalogue):
        users.follow_artist("artist").unwrap()
        assert len(inbox(store, "artist")) == 1

    def test_refused_follow_does_not_notify(self, users, store, listener, catalogue, offline):
        users.follow_artist("artist").unwrap()
        assert not users.follow_artist("artist").ok
        assert len(inbox(store, "artist")) == 1

    def test_approval_notifies_artist_and_followers(
        self, music_repo, users, store, session, listener, catalogue, offline
    ):
        users.follow_artist("artist").unwrap()
        make_music(store, "new", title="Fresh", approval_status=ApprovalStatus.PENDING)
        make_user(store, "root", UserType.ADMIN)
        session.save(None, "root")

        music_repo.approve_music("new").unwrap()

        to_listener = inbox(store, "listener")
        assert [entry.type for entry in to_listener] == [NotificationType.NEW_MUSIC]
        assert to_listener[0].related_content_id == "new"
        assert "'Fresh'" in to_listener[0].message

        to_artist = [e for e in inbox(store, "artist") if e.type is NotificationType.SYSTEM]
        assert len(to_artist) == 1
        assert to_artist[0].title == "Upload approved"

    def test_refused_approval_does_not_notify(self, music_repo, store, listener, catalogue):
        make_music(store, "new", approval_status=ApprovalStatus.PENDING)
        assert not music_repo.approve_music("new").ok
        assert inbox(store, "artist") == []

    def test_verification_notifies_user(self, users, store, session):
        make_user(store, "ada", UserType.ARTIST)
        make_user(store, "root", UserType.ADMIN)
        session.save(None, "root")

        users.set_verification_status("ada", VerificationStatus.VERIFIED).unwrap()

        [entry] = inbox(store, "ada")
        assert entry.type is NotificationType.VERIFICATION
        assert entry.message == "Your verification status is now verified"
