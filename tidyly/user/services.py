"""Service layer for user profiles and friend codes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from tidyly.core.constants import (
    CODE_MAX_ATTEMPTS,
    DEFAULT_DISPLAY_NAME,
    FRIEND_CODE_LENGTH,
    USERS_COLLECTION,
)
from tidyly.errors import ConflictError, NotFoundError
from tidyly.utils import generate_unique_code, normalize_code, utc_now

from .models import User, UserPatch

if TYPE_CHECKING:
    from tidyly.core.store import FirestoreStore

logger = logging.getLogger(__name__)


class IdentityDirectory:
    """Looks up and maintains user records.

    The ``friends`` and ``rooms`` lists are read here but only ever written by
    the membership coordinator.
    """

    def __init__(
        self, store: FirestoreStore, code_max_attempts: int = CODE_MAX_ATTEMPTS
    ) -> None:
        """Initialize the directory with a storage client."""
        self.store = store
        self.code_max_attempts = code_max_attempts

    def get_user(self, user_id: str) -> User | None:
        """Fetch a user by their ID."""
        if not user_id:
            return None
        return cast("User | None", self.store.get_by_id(USERS_COLLECTION, user_id))

    def get_user_by_friend_code(self, friend_code: str) -> User | None:
        """Fetch the user owning a friend code."""
        code = normalize_code(friend_code)
        if not code:
            return None
        users = self.store.query_by_equality(USERS_COLLECTION, "friendCode", code)
        return cast(User, users[0]) if users else None

    def get_users(self, user_ids: list[str]) -> list[User]:
        """Fetch several users in the given order, skipping missing ones."""
        results = []
        for user_id in dict.fromkeys(user_ids):
            user = self.get_user(user_id)
            if user is not None:
                results.append(user)
        return results

    def get_friends(self, user_id: str) -> list[User]:
        """Fetch the profiles of a user's friends."""
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return self.get_users(user.get("friends", []))

    def create_user(
        self,
        user_id: str,
        email: str,
        display_name: str,
        photo_url: str | None = None,
    ) -> User:
        """Create a profile with a fresh friend code and no friends or rooms.

        Raises:
            ConflictError: If a profile already exists for ``user_id``.
        """
        if self.get_user(user_id) is not None:
            raise ConflictError("User profile already exists.", code="already_exists")

        friend_code = generate_unique_code(
            FRIEND_CODE_LENGTH,
            lambda code: self.get_user_by_friend_code(code) is not None,
            self.code_max_attempts,
        )
        now = utc_now()
        user: User = {
            "uid": user_id,
            "email": email,
            "displayName": display_name,
            "photoURL": photo_url or None,
            "friendCode": friend_code,
            "friends": [],
            "rooms": [],
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.put(USERS_COLLECTION, user_id, dict(user))
        logger.info(f"Created profile for user {user_id}")
        return user

    def update_user(self, user_id: str, patch: UserPatch) -> None:
        """Merge profile fields into a user and bump ``updatedAt``."""
        patch.validate()
        if self.get_user(user_id) is None:
            raise NotFoundError("User not found.")
        update_data: dict[str, Any] = patch.to_fields()
        update_data["updatedAt"] = utc_now()
        self.store.update_fields(USERS_COLLECTION, user_id, update_data)

    def ensure_user(self, claims: dict[str, Any]) -> User:
        """Return the profile for verified identity claims, creating it once.

        A concurrent session establishment may create the profile between the
        lookup and the write; that conflict counts as success.
        """
        user_id = claims["uid"]
        user = self.get_user(user_id)
        if user is not None:
            return user
        try:
            return self.create_user(
                user_id,
                claims.get("email") or "",
                claims.get("name") or claims.get("displayName") or DEFAULT_DISPLAY_NAME,
                claims.get("picture") or claims.get("photoURL"),
            )
        except ConflictError as e:
            if e.code != "already_exists":
                raise
            user = self.get_user(user_id)
            if user is None:
                raise
            return user
