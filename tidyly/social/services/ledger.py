"""Request ledger: pending, accepted and rejected friend and room join requests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from tidyly.core.constants import (
    FRIEND_REQUESTS_COLLECTION,
    ROOM_JOIN_REQUESTS_COLLECTION,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from tidyly.core.outcomes import reports_outcome, success
from tidyly.core.store import Write
from tidyly.errors import NotFoundError, ValidationError
from tidyly.utils import make_request_id, utc_now

from ..models import REQUEST_COLLECTIONS, FriendRequest, RoomJoinRequest

if TYPE_CHECKING:
    from tidyly.core.store import FirestoreStore
    from tidyly.core.types import Outcome
    from tidyly.room.services import RoomRegistry
    from tidyly.user.models import User
    from tidyly.user.services import IdentityDirectory

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (STATUS_ACCEPTED, STATUS_REJECTED)


def _newest_first(requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(requests, key=lambda r: r.get("createdAt", ""), reverse=True)


class RequestLedger:
    """Stores requests and detects duplicates before a new one is written.

    The duplicate lookup and the write that follows are two round trips, so
    two truly concurrent sends for the same pair can both land. Both stay
    acceptable and the second acceptance is a no-op set union.
    """

    def __init__(
        self,
        store: FirestoreStore,
        directory: IdentityDirectory,
        registry: RoomRegistry,
    ) -> None:
        """Initialize the ledger."""
        self.store = store
        self.directory = directory
        self.registry = registry

    @staticmethod
    def _collection(kind: str) -> str:
        try:
            return REQUEST_COLLECTIONS[kind]
        except KeyError:
            raise ValueError(f"Unknown request kind: {kind}") from None

    @reports_outcome("sending friend request")
    def create_friend_request(self, sender: User, receiver_code: str) -> Outcome:
        """Send a friend request to the owner of ``receiver_code``."""
        receiver = self.directory.get_user_by_friend_code(receiver_code)
        if receiver is None:
            raise NotFoundError("Invalid friend code", code="invalid_code")

        sender_id = sender["uid"]
        receiver_id = receiver["uid"]
        if receiver_id == sender_id:
            raise ValidationError(
                "You cannot add yourself as a friend", code="self_request"
            )
        if sender_id in receiver.get("friends", []):
            raise ValidationError("You are already friends", code="already_friends")

        existing = self.store.query_by_equality(
            FRIEND_REQUESTS_COLLECTION,
            "senderId",
            sender_id,
            [("receiverId", "==", receiver_id), ("status", "==", STATUS_PENDING)],
        )
        if existing:
            raise ValidationError("Friend request already sent", code="duplicate_request")

        now = utc_now()
        request_id = make_request_id(sender_id, receiver_id)
        friend_request: FriendRequest = {
            "id": request_id,
            "senderId": sender_id,
            "senderName": sender.get("displayName", ""),
            "senderEmail": sender.get("email", ""),
            "receiverId": receiver_id,
            "receiverName": receiver.get("displayName", ""),
            "receiverEmail": receiver.get("email", ""),
            "status": STATUS_PENDING,
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.put(FRIEND_REQUESTS_COLLECTION, request_id, dict(friend_request))
        logger.info(f"Friend request {request_id} sent")
        return success(
            f"Friend request sent to {receiver.get('displayName', '')}",
            dict(friend_request),
        )

    @reports_outcome("sending room join request")
    def create_room_join_request(self, user: User, invite_code: str) -> Outcome:
        """Ask to join the room owning ``invite_code``."""
        room = self.registry.get_room_by_invite_code(invite_code)
        if room is None:
            raise NotFoundError("Invalid room code", code="invalid_code")

        user_id = user["uid"]
        if user_id in room.get("members", []):
            raise ValidationError(
                "You are already a member of this room", code="already_member"
            )

        existing = self.store.query_by_equality(
            ROOM_JOIN_REQUESTS_COLLECTION,
            "userId",
            user_id,
            [("roomId", "==", room["id"]), ("status", "==", STATUS_PENDING)],
        )
        if existing:
            raise ValidationError("Join request already sent", code="duplicate_request")

        now = utc_now()
        request_id = make_request_id(user_id, room["id"])
        join_request: RoomJoinRequest = {
            "id": request_id,
            "userId": user_id,
            "userName": user.get("displayName", ""),
            "userEmail": user.get("email", ""),
            "roomId": room["id"],
            "roomName": room.get("name", ""),
            "ownerId": room["ownerId"],
            "status": STATUS_PENDING,
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.put(ROOM_JOIN_REQUESTS_COLLECTION, request_id, dict(join_request))
        logger.info(f"Room join request {request_id} sent")
        return success(
            f"Join request sent for {room.get('emoji', '')} {room.get('name', '')}",
            dict(join_request),
        )

    def get_request(self, kind: str, request_id: str) -> dict[str, Any] | None:
        """Fetch a request of either kind by id."""
        return self.store.get_by_id(self._collection(kind), request_id)

    def load_pending(self, kind: str, request_id: str) -> tuple[dict[str, Any], Any]:
        """Fetch a request that must still be pending, with its update time."""
        request, version = self.store.get_versioned(self._collection(kind), request_id)
        if request is None:
            raise NotFoundError("Request not found.")
        status = request.get("status")
        if status != STATUS_PENDING:
            raise ValidationError(
                f"This request was already {status}.", code="already_resolved"
            )
        return request, version

    def status_write(
        self,
        kind: str,
        request_id: str,
        status: str,
        last_update_time: Any = None,
    ) -> Write:
        """Build the write resolving a pending request.

        Only ``accepted`` and ``rejected`` are reachable; nothing returns a
        request to ``pending``.
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Requests can only become {' or '.join(TERMINAL_STATUSES)}.")
        return Write(
            self._collection(kind),
            request_id,
            {"status": status, "updatedAt": utc_now()},
            last_update_time=last_update_time,
        )

    def set_request_status(
        self, kind: str, request_id: str, status: str
    ) -> dict[str, Any]:
        """Resolve a pending request on its own, without membership changes."""
        request, version = self.load_pending(kind, request_id)
        write = self.status_write(kind, request_id, status, version)
        self.store.commit_atomic([write])
        request.update(write.fields)
        return request

    def get_pending_friend_requests(self, user_id: str) -> list[FriendRequest]:
        """Fetch pending friend requests where the user is the receiver."""
        requests = self.store.query_by_equality(
            FRIEND_REQUESTS_COLLECTION,
            "receiverId",
            user_id,
            [("status", "==", STATUS_PENDING)],
        )
        return cast(list[FriendRequest], _newest_first(requests))

    def get_sent_friend_requests(self, user_id: str) -> list[FriendRequest]:
        """Fetch pending friend requests where the user is the sender."""
        requests = self.store.query_by_equality(
            FRIEND_REQUESTS_COLLECTION,
            "senderId",
            user_id,
            [("status", "==", STATUS_PENDING)],
        )
        return cast(list[FriendRequest], _newest_first(requests))

    def get_pending_room_join_requests(self, owner_id: str) -> list[RoomJoinRequest]:
        """Fetch pending join requests for every room the user owns."""
        requests = self.store.query_by_equality(
            ROOM_JOIN_REQUESTS_COLLECTION,
            "ownerId",
            owner_id,
            [("status", "==", STATUS_PENDING)],
        )
        return cast(list[RoomJoinRequest], _newest_first(requests))
