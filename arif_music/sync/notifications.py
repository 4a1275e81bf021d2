"""
Per-user notification inbox.

Notifications exist only in the LocalStore. They are written by notify()
when a local action concerns another user:

    follow_artist          -> NEW_FOLLOWER for the followed artist
    approve_music          -> NEW_MUSIC for each follower of the artist,
                              SYSTEM for the artist
    set_verification_status -> VERIFICATION for the user

NotificationRepository reads and manages the signed-in user's inbox.
A user can only see or change their own notifications.
"""

import uuid

from arif_music.core.database import LocalStore
from arif_music.core.exceptions import AuthorizationError, DatabaseError, NotFoundError
from arif_music.core.logger import get_logger
from arif_music.core.session import SessionManager
from arif_music.models import Notification, NotificationType
from arif_music.sync.strategy import Result, SyncStrategy


logger = get_logger(__name__)


def notify(
    store: LocalStore,
    user_id: str,
    notification_type: NotificationType,
    title: str,
    message: str,
    related_content_id: str = "",
    related_content_type: str = ""
) -> Notification | None:
    """
    Add a notification to a user's inbox.

    A store failure is logged and does not fail the action that caused
    the notification.

    Returns:
        The stored notification, or None if it could not be written.
    """
    notification = Notification(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
        related_content_id=related_content_id,
        related_content_type=related_content_type,
    )
    try:
        store.add_notification(notification)
    except DatabaseError as e:
        logger.warning(
            f"Could not store {notification_type.value} notification for {user_id}: {e.message}"
        )
        return None
    logger.debug(f"Notified {user_id}: {title}")
    return notification


class NotificationRepository:
    """Local-only repository for the signed-in user's notifications."""

    def __init__(self, store: LocalStore, session: SessionManager, strategy: SyncStrategy) -> None:
        self.store = store
        self.session = session
        self.strategy = strategy

    def _require_own(self, notification_id: str) -> Notification:
        user_id = self.session.require_user_id()
        notification = self.store.get_notification(notification_id)
        if notification is None:
            raise NotFoundError(
                "Notification not found", details={"notification_id": notification_id}
            )
        if notification.user_id != user_id:
            raise AuthorizationError(
                "Not authorized to change this notification",
                details={"notification_id": notification_id, "user_id": user_id}
            )
        return notification

    def notifications(self) -> Result[list[Notification]]:
        """Newest first."""
        return self.strategy.run(
            "notification.list",
            local=lambda: self.store.list_notifications(self.session.require_user_id()),
        )

    def unread_count(self) -> Result[int]:
        return self.strategy.run(
            "notification.unread_count",
            local=lambda: self.store.unread_count(self.session.require_user_id()),
        )

    def mark_as_read(self, notification_id: str) -> Result[Notification]:
        return self.strategy.run(
            "notification.mark_read",
            local=lambda: self.store.mark_notification_read(notification_id),
            precheck=lambda: self._require_own(notification_id),
        )

    def mark_all_as_read(self) -> Result[int]:
        """Returns how many notifications changed."""
        return self.strategy.run(
            "notification.mark_all_read",
            local=lambda: self.store.mark_all_notifications_read(self.session.require_user_id()),
        )

    def delete_notification(self, notification_id: str) -> Result[None]:
        return self.strategy.run(
            "notification.delete",
            local=lambda: self.store.delete_notification(notification_id),
            precheck=lambda: self._require_own(notification_id),
        )

    def clear_all(self) -> Result[int]:
        def local() -> int:
            removed = self.store.clear_notifications(self.session.require_user_id())
            logger.info(f"Cleared {removed} notification(s)")
            return removed

        return self.strategy.run("notification.clear", local)
