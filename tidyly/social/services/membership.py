"""Membership coordinator: the only writer of friend and membership lists."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tidyly.core.constants import (
    ROOMS_COLLECTION,
    STATUS_ACCEPTED,
    STATUS_REJECTED,
    USERS_COLLECTION,
)
from tidyly.core.outcomes import reports_outcome, success
from tidyly.core.store import Write
from tidyly.errors import AuthorizationError, NotFoundError
from tidyly.utils import utc_now

from ..models import FRIEND_REQUEST, ROOM_JOIN_REQUEST

if TYPE_CHECKING:
    from tidyly.core.store import FirestoreStore
    from tidyly.core.types import Outcome
    from tidyly.room.models import Room
    from tidyly.room.services import RoomRegistry
    from tidyly.user.services import IdentityDirectory

    from .ledger import RequestLedger

logger = logging.getLogger(__name__)


class MembershipCoordinator:
    """Validates request actions and applies membership changes atomically.

    Every accept, leave and kick is one commit touching the request (when
    there is one) and both membership-holding documents. List fields are
    changed with set-union and set-removal transforms, never overwritten, so
    replaying an operation cannot duplicate or resurrect an entry. Accept and
    reject commits carry a precondition on the request document; a concurrent
    resolution makes the commit fail instead of applying twice.
    """

    def __init__(
        self,
        store: FirestoreStore,
        directory: IdentityDirectory,
        registry: RoomRegistry,
        ledger: RequestLedger,
    ) -> None:
        """Initialize the coordinator with its collaborators."""
        self.store = store
        self.directory = directory
        self.registry = registry
        self.ledger = ledger

    def _membership_write(
        self, collection: str, doc_id: str, field: str, transform: Any, now: str
    ) -> Write:
        return Write(collection, doc_id, {field: transform, "updatedAt": now})

    def _require_room(self, room_id: str) -> Room:
        room = self.registry.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found.")
        return room

    # ------------------------------------------------------------------ friends

    @reports_outcome("accepting friend request")
    def accept_friend_request(
        self, request_id: str, acting_user_id: str | None = None
    ) -> Outcome:
        """Accept a friend request and add each user to the other's friends."""
        request, version = self.ledger.load_pending(FRIEND_REQUEST, request_id)
        sender_id = request["senderId"]
        receiver_id = request["receiverId"]
        if acting_user_id is not None and acting_user_id != receiver_id:
            raise AuthorizationError("Only the recipient can accept this request.")
        if self.directory.get_user(sender_id) is None:
            raise NotFoundError("The user who sent this request no longer exists.")
        if self.directory.get_user(receiver_id) is None:
            raise NotFoundError("User not found.")

        now = utc_now()
        status_write = self.ledger.status_write(
            FRIEND_REQUEST, request_id, STATUS_ACCEPTED, version
        )
        self.store.commit_atomic(
            [
                status_write,
                self._membership_write(
                    USERS_COLLECTION,
                    sender_id,
                    "friends",
                    self.store.array_union([receiver_id]),
                    now,
                ),
                self._membership_write(
                    USERS_COLLECTION,
                    receiver_id,
                    "friends",
                    self.store.array_union([sender_id]),
                    now,
                ),
            ]
        )
        logger.info(f"Friend request {request_id} accepted")
        request.update(status_write.fields)
        return success(
            f"You are now friends with {request.get('senderName', '')}", request
        )

    @reports_outcome("rejecting friend request")
    def reject_friend_request(
        self, request_id: str, acting_user_id: str | None = None
    ) -> Outcome:
        """Reject a friend request. Friend lists are untouched."""
        if acting_user_id is not None:
            request = self.ledger.get_request(FRIEND_REQUEST, request_id)
            if request is not None and request["receiverId"] != acting_user_id:
                raise AuthorizationError("Only the recipient can reject this request.")
        request = self.ledger.set_request_status(
            FRIEND_REQUEST, request_id, STATUS_REJECTED
        )
        logger.info(f"Friend request {request_id} rejected")
        return success("Friend request declined", request)

    # ------------------------------------------------------------------ rooms

    @reports_outcome("accepting room join request")
    def accept_room_join_request(
        self, request_id: str, acting_user_id: str | None = None
    ) -> Outcome:
        """Accept a join request: add the user to the room and the room to the user."""
        request, version = self.ledger.load_pending(ROOM_JOIN_REQUEST, request_id)
        user_id = request["userId"]
        room = self._require_room(request["roomId"])
        if acting_user_id is not None and acting_user_id != room["ownerId"]:
            raise AuthorizationError("Only the room owner can accept join requests.")
        if self.directory.get_user(user_id) is None:
            raise NotFoundError("The user who asked to join no longer exists.")

        now = utc_now()
        status_write = self.ledger.status_write(
            ROOM_JOIN_REQUEST, request_id, STATUS_ACCEPTED, version
        )
        self.store.commit_atomic(
            [
                status_write,
                self._membership_write(
                    ROOMS_COLLECTION,
                    room["id"],
                    "members",
                    self.store.array_union([user_id]),
                    now,
                ),
                self._membership_write(
                    USERS_COLLECTION,
                    user_id,
                    "rooms",
                    self.store.array_union([room["id"]]),
                    now,
                ),
            ]
        )
        logger.info(f"Room join request {request_id} accepted")
        request.update(status_write.fields)
        return success(
            f"{request.get('userName', '')} joined {room.get('name', '')}", request
        )

    @reports_outcome("rejecting room join request")
    def reject_room_join_request(
        self, request_id: str, acting_user_id: str | None = None
    ) -> Outcome:
        """Reject a join request. Membership is untouched."""
        if acting_user_id is not None:
            request = self.ledger.get_request(ROOM_JOIN_REQUEST, request_id)
            if request is not None and request["ownerId"] != acting_user_id:
                raise AuthorizationError("Only the room owner can reject join requests.")
        request = self.ledger.set_request_status(
            ROOM_JOIN_REQUEST, request_id, STATUS_REJECTED
        )
        logger.info(f"Room join request {request_id} rejected")
        return success("Join request declined", request)

    def _remove_membership(self, room_id: str, user_id: str) -> None:
        now = utc_now()
        self.store.commit_atomic(
            [
                self._membership_write(
                    ROOMS_COLLECTION,
                    room_id,
                    "members",
                    self.store.array_remove([user_id]),
                    now,
                ),
                self._membership_write(
                    USERS_COLLECTION,
                    user_id,
                    "rooms",
                    self.store.array_remove([room_id]),
                    now,
                ),
            ]
        )

    @reports_outcome("leaving room")
    def leave_room(self, user_id: str, room_id: str) -> Outcome:
        """Remove a member from a room. The owner cannot leave."""
        room = self._require_room(room_id)
        if user_id == room["ownerId"]:
            raise AuthorizationError(
                "The room owner cannot leave the room.", code="owner_cannot_leave"
            )
        if self.directory.get_user(user_id) is None:
            raise NotFoundError("User not found.")

        self._remove_membership(room_id, user_id)
        logger.info(f"User {user_id} left room {room_id}")
        return success(f"You left {room.get('name', '')}", {"roomId": room_id})

    @reports_outcome("removing room member")
    def remove_member_from_room(
        self, room_id: str, target_user_id: str, acting_user_id: str
    ) -> Outcome:
        """Let the owner remove another member from the room."""
        room = self._require_room(room_id)
        owner_id = room["ownerId"]
        if target_user_id == owner_id:
            raise AuthorizationError(
                "The room owner cannot be removed.", code="cannot_remove_owner"
            )
        if target_user_id == acting_user_id:
            raise AuthorizationError(
                "Use leave to exit a room yourself.", code="cannot_remove_self"
            )
        if acting_user_id != owner_id:
            raise AuthorizationError("Only the room owner can remove members.")
        if self.directory.get_user(target_user_id) is None:
            raise NotFoundError("User not found.")

        self._remove_membership(room_id, target_user_id)
        logger.info(f"User {target_user_id} removed from room {room_id} by owner")
        return success(
            f"Member removed from {room.get('name', '')}",
            {"roomId": room_id, "userId": target_user_id},
        )
