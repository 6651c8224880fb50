"""Data models for friend requests and room join requests."""

from __future__ import annotations

from tidyly.core.constants import (
    FRIEND_REQUESTS_COLLECTION,
    ROOM_JOIN_REQUESTS_COLLECTION,
)
from tidyly.core.types import FirestoreDocument

FRIEND_REQUEST = "friend"
ROOM_JOIN_REQUEST = "room_join"

REQUEST_COLLECTIONS = {
    FRIEND_REQUEST: FRIEND_REQUESTS_COLLECTION,
    ROOM_JOIN_REQUEST: ROOM_JOIN_REQUESTS_COLLECTION,
}


class FriendRequest(FirestoreDocument, total=False):
    """A friend request document in Firestore."""

    id: str
    senderId: str
    senderName: str
    senderEmail: str
    receiverId: str
    receiverName: str
    receiverEmail: str
    status: str


class RoomJoinRequest(FirestoreDocument, total=False):
    """A room join request document in Firestore."""

    id: str
    userId: str
    userName: str
    userEmail: str
    roomId: str
    roomName: str
    ownerId: str
    status: str
