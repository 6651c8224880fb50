"""Change notifier: live feeds of pending requests, rooms and room tasks."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from tidyly.core.constants import (
    FIRESTORE_IN_QUERY_LIMIT,
    FRIEND_REQUESTS_COLLECTION,
    ROOM_JOIN_REQUESTS_COLLECTION,
    ROOMS_COLLECTION,
    STATUS_PENDING,
    TASKS_COLLECTION,
)

if TYPE_CHECKING:
    from tidyly.core.store import Filter, FirestoreStore, Unsubscribe

logger = logging.getLogger(__name__)

Documents = list[dict[str, Any]]


def _newest_first(documents: Documents) -> Documents:
    return sorted(documents, key=lambda d: d.get("createdAt", ""), reverse=True)


def _oldest_first(documents: Documents) -> Documents:
    return sorted(documents, key=lambda d: d.get("createdAt", ""))


class _Subscription:
    """One observer stream, possibly fed by several listeners.

    Emits once every listener has delivered its first snapshot, then on every
    later snapshot. A snapshot older than the last one seen from the same
    listener is dropped so the stream never moves backwards in time. Nothing
    is emitted after cancellation, including callbacks already in flight.

    Each listener calls back on its own watch thread. Handling and
    cancellation run under one lock, so merges and emissions are serialized.
    The lock is reentrant so ``on_change`` may unsubscribe.
    """

    def __init__(
        self,
        on_change: Callable[[Documents], None],
        order: Callable[[Documents], Documents],
        listeners: int = 1,
    ) -> None:
        self.on_change = on_change
        self.order = order
        self.listeners = listeners
        self.active = True
        self.snapshots: dict[int, Documents] = {}
        self.read_times: dict[int, Any] = {}
        self.unsubscribers: list[Unsubscribe] = []
        self._lock = threading.RLock()

    def handler(self, key: int = 0) -> Callable[[Documents, Any], None]:
        def _handle(documents: Documents, read_time: Any) -> None:
            self.handle(key, documents, read_time)

        return _handle

    def handle(self, key: int, documents: Documents, read_time: Any) -> None:
        with self._lock:
            if not self.active:
                return
            last = self.read_times.get(key)
            if read_time is not None and last is not None and read_time < last:
                logger.debug("Dropped out-of-order snapshot")
                return
            if read_time is not None:
                self.read_times[key] = read_time
            self.snapshots[key] = documents
            if len(self.snapshots) < self.listeners:
                return
            merged = [doc for docs in self.snapshots.values() for doc in docs]
            self.on_change(self.order(merged))

    def cancel(self) -> None:
        # Unsubscribe outside the lock: closing a watch waits for its callback thread.
        with self._lock:
            if not self.active:
                return
            self.active = False
            unsubscribers = list(self.unsubscribers)
        for unsubscribe in unsubscribers:
            unsubscribe()


class ChangeNotifier:
    """Pushes live updates to observers such as a notification badge.

    Each ``subscribe_*`` call emits the current result set first and then
    again after every write that affects it, until the returned function is
    called.
    """

    def __init__(self, store: FirestoreStore) -> None:
        """Initialize the notifier with a storage client."""
        self.store = store

    def _listen(
        self,
        collection: str,
        filter_sets: list[list[Filter]],
        on_change: Callable[[Documents], None],
        order: Callable[[Documents], Documents],
    ) -> Unsubscribe:
        subscription = _Subscription(on_change, order, listeners=len(filter_sets))
        try:
            for key, filters in enumerate(filter_sets):
                subscription.unsubscribers.append(
                    self.store.subscribe(collection, filters, subscription.handler(key))
                )
        except Exception:
            subscription.cancel()
            raise
        return subscription.cancel

    def subscribe_pending_friend_requests(
        self, user_id: str, on_change: Callable[[Documents], None]
    ) -> Unsubscribe:
        """Follow pending friend requests received by a user."""
        filters: list[Filter] = [
            ("receiverId", "==", user_id),
            ("status", "==", STATUS_PENDING),
        ]
        return self._listen(
            FRIEND_REQUESTS_COLLECTION, [filters], on_change, _newest_first
        )

    def subscribe_pending_room_join_requests(
        self, owner_id: str, on_change: Callable[[Documents], None]
    ) -> Unsubscribe:
        """Follow pending join requests for rooms owned by a user."""
        filters: list[Filter] = [
            ("ownerId", "==", owner_id),
            ("status", "==", STATUS_PENDING),
        ]
        return self._listen(
            ROOM_JOIN_REQUESTS_COLLECTION, [filters], on_change, _newest_first
        )

    def subscribe_user_rooms(
        self, user_id: str, on_change: Callable[[Documents], None]
    ) -> Unsubscribe:
        """Follow the rooms a user is a member of."""
        filters: list[Filter] = [("members", "array_contains", user_id)]
        return self._listen(ROOMS_COLLECTION, [filters], on_change, _oldest_first)

    def subscribe_room_tasks(
        self, room_id: str, on_change: Callable[[Documents], None]
    ) -> Unsubscribe:
        """Follow the tasks of one room."""
        filters: list[Filter] = [("roomId", "==", room_id)]
        return self._listen(TASKS_COLLECTION, [filters], on_change, _newest_first)

    def subscribe_multiple_room_tasks(
        self, room_ids: list[str], on_change: Callable[[Documents], None]
    ) -> Unsubscribe:
        """Follow the tasks of several rooms as one merged list.

        Room ids are split across listeners so each ``in`` filter stays within
        Firestore's limit.
        """
        unique_ids = list(dict.fromkeys(room_ids))
        if not unique_ids:
            on_change([])
            return lambda: None

        filter_sets: list[list[Filter]] = [
            [("roomId", "in", unique_ids[i : i + FIRESTORE_IN_QUERY_LIMIT])]
            for i in range(0, len(unique_ids), FIRESTORE_IN_QUERY_LIMIT)
        ]
        return self._listen(TASKS_COLLECTION, filter_sets, on_change, _newest_first)
