"""
Accounts, profiles, moderation and follows.

Online, every write goes to the API first and the response is mirrored
into the LocalStore; offline, the same operation runs against the store
alone. Registration and login keep a SHA-256 hash of the password in the
store so a later offline login can be checked.

Ownership and role checks run before any remote call, so a refused
operation changes nothing on either side.
"""

import hashlib
import uuid
from dataclasses import replace
from typing import Any

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
from arif_music.models import Follow, NotificationType, User, UserType, VerificationStatus
from arif_music.remote.gateway import RemoteGateway
from arif_music.sync.notifications import notify
from arif_music.sync.strategy import Result, SyncStrategy


logger = get_logger(__name__)

# API field name -> User attribute, for merging partial responses
_API_USER_FIELDS = {
    "email": "email",
    "name": "name",
    "fullName": "full_name",
    "userType": "user_type",
    "verificationStatus": "verification_status",
    "isApproved": "is_approved",
    "isSuspended": "is_suspended",
    "bio": "bio",
    "profileImageUrl": "profile_image_url",
}


def hash_password(password: str) -> str:
    """SHA-256 hex digest used for offline credential checks."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class UserRepository:
    """
    Syncing repository for users and follow edges.

    Attributes:
        store: Local SQLite cache.
        gateway: REST client.
        session: Current token and user id.
        strategy: Remote-first executor.
    """

    def __init__(
        self,
        store: LocalStore,
        gateway: RemoteGateway,
        session: SessionManager,
        strategy: SyncStrategy
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.session = session
        self.strategy = strategy

    # =========================================================================
    # Helpers
    # =========================================================================

    def _actor(self) -> User:
        """The signed-in user, read from the local store."""
        user_id = self.session.require_user_id()
        user = self.store.get_user(user_id)
        if user is None:
            raise AuthenticationError(
                "Signed-in user is not known locally, sign in again",
                details={"user_id": user_id}
            )
        return user

    def _require_user(self, user_id: str) -> User:
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user

    def _require_admin(self) -> User:
        actor = self._actor()
        if not actor.is_admin:
            raise AuthorizationError(
                "Admin privileges required", details={"user_id": actor.id}
            )
        return actor

    def _require_owner_or_admin(self, user_id: str) -> User:
        actor = self._actor()
        if not actor.can_modify(user_id):
            raise AuthorizationError(
                "Not authorized", details={"user_id": actor.id, "target_id": user_id}
            )
        return actor

    def _mirror_user(self, data: dict[str, Any], password_hash: str = "") -> User:
        """
        Write an API user document through to the store.

        Only fields present in the response overwrite the cached user, so
        partial bodies (login, profile update) keep the rest.
        """
        remote = User.from_api(data, password_hash=password_hash)
        existing = self.store.get_user(remote.id)
        if existing is None and remote.email:
            existing = self.store.get_user_by_email(remote.email)

        if existing is None:
            user = remote
        else:
            changes = {
                attribute: getattr(remote, attribute)
                for key, attribute in _API_USER_FIELDS.items()
                if key in data
            }
            user = replace(existing, id=remote.id, **changes)
            if password_hash:
                user = replace(user, password_hash=password_hash)

        return self.store.upsert_user(user)

    def _update_local(self, user_id: str, **changes: Any) -> User:
        user = replace(self._require_user(user_id), **changes)
        return self.store.update_user(user)

    # =========================================================================
    # Authentication
    # =========================================================================

    def register(
        self,
        email: str,
        password: str,
        name: str,
        full_name: str,
        user_type: UserType = UserType.LISTENER
    ) -> Result[User]:
        """
        Create an account and sign in as it.

        The client proposes a UUID4 id; the server may answer with its own.
        Offline, the session carries the user id but no token.
        """
        email = email.strip().lower()
        user_id = str(uuid.uuid4())
        password_hash = hash_password(password)

        def precheck() -> None:
            if not email or "@" not in email:
                raise ValidationError("A valid email is required", details={"email": email})
            if not password or not name or not full_name:
                raise ValidationError("Please provide all required fields")
            if self.store.get_user_by_email(email) is not None:
                raise ConflictError(
                    "User with this email already exists", details={"email": email}
                )

        def remote() -> dict[str, Any]:
            return self.gateway.register(
                user_id, email, password, name, full_name, user_type.value
            )

        def mirror(body: dict[str, Any]) -> User:
            user = self._mirror_user(body, password_hash=password_hash)
            self.session.save(body.get("token"), user.id)
            logger.info(f"Registered {user.email}")
            return user

        def local() -> User:
            user = self.store.insert_user(User(
                id=user_id,
                email=email,
                name=name,
                full_name=full_name,
                user_type=user_type,
                password_hash=password_hash,
            ))
            self.session.save(None, user.id)
            logger.info(f"Registered {user.email} locally")
            return user

        return self.strategy.run("user.register", local, remote, mirror, precheck)

    def login(self, email: str, password: str) -> Result[User]:
        email = email.strip().lower()
        password_hash = hash_password(password)

        def mirror(body: dict[str, Any]) -> User:
            user = self._mirror_user(body, password_hash=password_hash)
            self.session.save(body.get("token"), user.id)
            logger.info(f"Signed in as {user.email}")
            return user

        def local() -> User:
            user = self.store.get_user_by_email(email)
            if user is None or user.password_hash != password_hash:
                raise AuthenticationError("Invalid credentials", details={"email": email})
            self.session.save(None, user.id)
            logger.info(f"Signed in as {user.email} (offline)")
            return user

        return self.strategy.run(
            "user.login",
            local,
            remote=lambda: self.gateway.login(email, password),
            mirror=mirror,
        )

    def logout(self) -> Result[None]:
        self.session.clear()
        return Result.success(None)

    def user_exists(self, email: str) -> Result[bool]:
        email = email.strip().lower()
        return self.strategy.run(
            "user.exists",
            local=lambda: self.store.get_user_by_email(email) is not None,
            remote=lambda: self.gateway.user_exists(email),
        )

    def reset_password(self, email: str, new_password: str) -> Result[User]:
        """Set a new password for an account identified by email."""
        email = email.strip().lower()
        password_hash = hash_password(new_password)

        def precheck() -> None:
            if not new_password:
                raise ValidationError("A new password is required")

        def local() -> User:
            user = self.store.get_user_by_email(email)
            if user is None:
                raise NotFoundError("User not found", details={"email": email})
            return self.store.update_user(replace(user, password_hash=password_hash))

        def mirror(_: Any) -> User:
            if self.store.get_user_by_email(email) is None:
                raise NotFoundError("User not found locally", details={"email": email})
            return local()

        return self.strategy.run(
            "user.reset_password",
            local,
            remote=lambda: self.gateway.reset_password(email, new_password),
            mirror=mirror,
            precheck=precheck,
        )

    # =========================================================================
    # Profiles
    # =========================================================================

    def current_user(self) -> Result[User]:
        def local() -> User:
            return self._require_user(self.session.require_user_id())

        return self.strategy.run(
            "user.current",
            local,
            remote=self.gateway.get_profile,
            mirror=self._mirror_user,
            precheck=self.session.require_user_id,
        )

    def get_user(self, user_id: str) -> Result[User]:
        return self.strategy.run(
            "user.get",
            local=lambda: self._require_user(user_id),
            remote=lambda: self.gateway.get_user(user_id),
            mirror=self._mirror_user,
        )

    def update_profile(
        self,
        full_name: str | None = None,
        bio: str | None = None,
        password: str | None = None,
        profile_image_url: str | None = None
    ) -> Result[User]:
        """Update the signed-in user's profile; None leaves a field unchanged."""
        password_hash = hash_password(password) if password else ""

        fields: dict[str, Any] = {}
        changes: dict[str, Any] = {}
        if full_name:
            fields["fullName"] = changes["full_name"] = full_name
        if bio is not None:
            fields["bio"] = changes["bio"] = bio
        if password:
            fields["password"] = password
            changes["password_hash"] = password_hash
        if profile_image_url:
            fields["profileImageUrl"] = changes["profile_image_url"] = profile_image_url

        return self.strategy.run(
            "user.update_profile",
            local=lambda: self._update_local(self.session.require_user_id(), **changes),
            remote=lambda: self.gateway.update_profile(fields),
            mirror=lambda body: self._mirror_user(body, password_hash=password_hash),
            precheck=self._actor,
        )

    def delete_user(self, user_id: str) -> Result[None]:
        """Delete an account; the owner or an ADMIN only."""

        def local() -> None:
            self.store.delete_user(user_id)
            if self.session.user_id == user_id:
                self.session.clear()
            logger.info(f"Deleted user {user_id}")

        def mirror(_: Any) -> None:
            if self.store.get_user(user_id) is not None:
                local()
            elif self.session.user_id == user_id:
                self.session.clear()

        return self.strategy.run(
            "user.delete",
            local,
            remote=lambda: self.gateway.delete_user(user_id),
            mirror=mirror,
            precheck=lambda: self._require_owner_or_admin(user_id),
        )

    # =========================================================================
    # Moderation (ADMIN)
    # =========================================================================

    def _admin_update(
        self,
        operation: str,
        user_id: str,
        remote: Any,
        **changes: Any
    ) -> Result[User]:
        def precheck() -> None:
            self._require_admin()
            self._require_user(user_id)

        return self.strategy.run(
            operation,
            local=lambda: self._update_local(user_id, **changes),
            remote=remote,
            mirror=lambda _: self._update_local(user_id, **changes),
            precheck=precheck,
        )

    def set_user_type(self, user_id: str, user_type: UserType) -> Result[User]:
        return self._admin_update(
            "user.set_type", user_id,
            lambda: self.gateway.set_user_type(user_id, user_type.value),
            user_type=user_type,
        )

    def approve_artist(self, user_id: str, approved: bool = True) -> Result[User]:
        return self._admin_update(
            "user.approve", user_id,
            lambda: self.gateway.approve_artist(user_id, approved),
            is_approved=approved,
        )

    def suspend_user(self, user_id: str, suspended: bool = True) -> Result[User]:
        return self._admin_update(
            "user.suspend", user_id,
            lambda: self.gateway.suspend_user(user_id, suspended),
            is_suspended=suspended,
        )

    def request_verification(self, user_id: str) -> Result[User]:
        """Mark an artist as awaiting verification."""

        def precheck() -> None:
            self._require_owner_or_admin(user_id)
            if self._require_user(user_id).user_type is not UserType.ARTIST:
                raise ValidationError(
                    "Only artists can request verification", details={"user_id": user_id}
                )

        return self.strategy.run(
            "user.request_verification",
            local=lambda: self._update_local(
                user_id, verification_status=VerificationStatus.PENDING
            ),
            precheck=precheck,
        )

    def set_verification_status(
        self, user_id: str, status: VerificationStatus
    ) -> Result[User]:
        def local() -> User:
            user = self._update_local(user_id, verification_status=status)
            notify(
                self.store, user_id, NotificationType.VERIFICATION,
                "Verification update",
                f"Your verification status is now {status.value.lower()}",
            )
            return user

        return self.strategy.run(
            "user.set_verification",
            local=local,
            precheck=self._require_admin,
        )

    # =========================================================================
    # Follows
    # =========================================================================

    def _check_follow_target(self, artist_id: str) -> None:
        if self.session.require_user_id() == artist_id:
            raise ValidationError("You cannot follow yourself", details={"user_id": artist_id})

    def follow_artist(self, artist_id: str) -> Result[Follow]:
        def local() -> Follow:
            follower_id = self.session.require_user_id()
            follow = self.store.add_follow(Follow(follower_id, artist_id))
            follower = self.store.get_user(follower_id)
            notify(
                self.store, artist_id, NotificationType.NEW_FOLLOWER,
                "New follower",
                f"{follower.name if follower else 'Someone'} started following you",
                related_content_id=follower_id,
                related_content_type="USER",
            )
            return follow

        def mirror(_: Any) -> Follow:
            follower_id = self.session.require_user_id()
            if self.store.is_following(follower_id, artist_id):
                return Follow(follower_id, artist_id)
            return local()

        return self.strategy.run(
            "user.follow",
            local,
            remote=lambda: self.gateway.follow(artist_id),
            mirror=mirror,
            precheck=lambda: self._check_follow_target(artist_id),
        )

    def unfollow_artist(self, artist_id: str) -> Result[None]:
        def local() -> None:
            self.store.remove_follow(self.session.require_user_id(), artist_id)

        def mirror(_: Any) -> None:
            if self.store.is_following(self.session.require_user_id(), artist_id):
                local()

        return self.strategy.run(
            "user.unfollow",
            local,
            remote=lambda: self.gateway.unfollow(artist_id),
            mirror=mirror,
            precheck=lambda: self._check_follow_target(artist_id),
        )

    def is_following(self, artist_id: str) -> Result[bool]:
        return self.strategy.run(
            "user.is_following",
            local=lambda: self.store.is_following(self.session.require_user_id(), artist_id),
        )

    def _users(self, user_ids: list[str]) -> list[User]:
        users = (self.store.get_user(user_id) for user_id in user_ids)
        return [user for user in users if user is not None]

    def followers(self, user_id: str) -> Result[list[User]]:
        return self.strategy.run(
            "user.followers", local=lambda: self._users(self.store.follower_ids(user_id))
        )

    def following(self, user_id: str) -> Result[list[User]]:
        return self.strategy.run(
            "user.following", local=lambda: self._users(self.store.following_ids(user_id))
        )

    def follower_count(self, user_id: str) -> Result[int]:
        return self.strategy.run(
            "user.follower_count", local=lambda: len(self.store.follower_ids(user_id))
        )

    def following_count(self, user_id: str) -> Result[int]:
        return self.strategy.run(
            "user.following_count", local=lambda: len(self.store.following_ids(user_id))
        )

    # =========================================================================
    # Listings
    # =========================================================================

    def artists(self) -> Result[list[User]]:
        return self.strategy.run(
            "user.artists", local=lambda: self.store.list_users(UserType.ARTIST)
        )

    def pending_verifications(self) -> Result[list[User]]:
        def local() -> list[User]:
            return [
                user for user in self.store.list_users()
                if user.verification_status is VerificationStatus.PENDING
            ]

        return self.strategy.run(
            "user.pending_verifications", local, precheck=self._require_admin
        )
