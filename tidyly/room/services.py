"""Service layer for rooms and invite codes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from tidyly.core.constants import (
    CODE_MAX_ATTEMPTS,
    INVITE_CODE_LENGTH,
    ROOMS_COLLECTION,
    USERS_COLLECTION,
)
from tidyly.errors import NotFoundError, ValidationError
from tidyly.utils import generate_unique_code, normalize_code, utc_now

from .models import Room, RoomPatch, validate_room_name

if TYPE_CHECKING:
    from tidyly.core.store import FirestoreStore
    from tidyly.user.services import IdentityDirectory

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Looks up and maintains room records."""

    def __init__(
        self,
        store: FirestoreStore,
        directory: IdentityDirectory,
        code_max_attempts: int = CODE_MAX_ATTEMPTS,
    ) -> None:
        """Initialize the registry with a storage client and user directory."""
        self.store = store
        self.directory = directory
        self.code_max_attempts = code_max_attempts

    def get_room(self, room_id: str) -> Room | None:
        """Fetch a room by its ID."""
        if not room_id:
            return None
        return cast("Room | None", self.store.get_by_id(ROOMS_COLLECTION, room_id))

    def get_room_by_invite_code(self, invite_code: str) -> Room | None:
        """Fetch the room owning an invite code."""
        code = normalize_code(invite_code)
        if not code:
            return None
        rooms = self.store.query_by_equality(ROOMS_COLLECTION, "inviteCode", code)
        return cast(Room, rooms[0]) if rooms else None

    def get_user_rooms(self, user_id: str) -> list[Room]:
        """Fetch every room listing the user as a member."""
        rooms = self.store.query(
            ROOMS_COLLECTION, [("members", "array_contains", user_id)]
        )
        return cast(list[Room], sorted(rooms, key=lambda r: r.get("createdAt", "")))

    def get_room_members(self, room_id: str) -> dict[str, Any]:
        """Fetch the owner and member profiles of a room."""
        room = self.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found.")
        return {
            "owner": self.directory.get_user(room["ownerId"]),
            "members": self.directory.get_users(room.get("members", [])),
        }

    def create_room(
        self,
        name: str,
        emoji: str,
        owner_id: str,
        description: str | None = None,
    ) -> Room:
        """Create a room owned by ``owner_id`` and add it to the owner's rooms.

        Nothing can reference the room before this returns, so the two writes
        are sequential rather than batched; both complete before success.
        """
        validate_room_name(name)
        if not emoji or not emoji.strip():
            raise ValidationError("Please choose an emoji for the room.", code="invalid_room")
        if self.directory.get_user(owner_id) is None:
            raise NotFoundError("Room owner not found.")

        invite_code = generate_unique_code(
            INVITE_CODE_LENGTH,
            lambda code: self.get_room_by_invite_code(code) is not None,
            self.code_max_attempts,
        )
        room_id = self.store.new_id(ROOMS_COLLECTION)
        now = utc_now()
        room: Room = {
            "id": room_id,
            "name": name.strip(),
            "emoji": emoji.strip(),
            "description": (description or "").strip(),
            "ownerId": owner_id,
            "inviteCode": invite_code,
            "members": [owner_id],
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.put(ROOMS_COLLECTION, room_id, dict(room))
        self.store.update_fields(
            USERS_COLLECTION,
            owner_id,
            {"rooms": self.store.array_union([room_id]), "updatedAt": now},
        )
        logger.info(f"User {owner_id} created room {room_id}")
        return room

    def update_room(self, room_id: str, patch: RoomPatch) -> None:
        """Merge descriptive fields into a room and bump ``updatedAt``."""
        patch.validate()
        if self.get_room(room_id) is None:
            raise NotFoundError("Room not found.")
        update_data: dict[str, Any] = patch.to_fields()
        update_data["updatedAt"] = utc_now()
        self.store.update_fields(ROOMS_COLLECTION, room_id, update_data)
