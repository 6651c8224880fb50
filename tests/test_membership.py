"""Tests for the membership coordinator."""

from __future__ import annotations

import unittest
from typing import Any
from unittest.mock import MagicMock

from google.api_core import exceptions as gcp_exceptions

from tests.conftest import FirestoreTestCase, MockBatch
from tidyly.errors import StorageError
from tidyly.social.services import MembershipCoordinator


class TestFriendAcceptance(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.make_user("alice", "Alice", friend_code="ALICE001")
        self.bob = self.make_user("bob", "Bob", friend_code="ABCDEFGH")
        outcome = self.ledger.create_friend_request(self.alice, "ABCDEFGH")
        assert outcome["data"] is not None
        self.request_id = outcome["data"]["id"]

    def test_accept_makes_friendship_symmetric(self) -> None:
        outcome = self.coordinator.accept_friend_request(self.request_id)

        self.assertTrue(outcome["success"])
        self.assertEqual(outcome["message"], "You are now friends with Alice")
        self.assertEqual(self.user_doc("alice")["friends"], ["bob"])
        self.assertEqual(self.user_doc("bob")["friends"], ["alice"])
        self.assertEqual(
            self.request_doc("friendRequests", self.request_id)["status"], "accepted"
        )
        self.assertEqual(self.ledger.get_pending_friend_requests("bob"), [])

    def test_accept_is_a_single_commit(self) -> None:
        self.coordinator.accept_friend_request(self.request_id)

        self.assertEqual(len(self.batches), 1)
        self.assertEqual(len(self.batches[0].writes), 3)
        self.batches[0].commit.assert_called_once()

    def test_accepting_twice_does_not_duplicate(self) -> None:
        self.coordinator.accept_friend_request(self.request_id)

        outcome = self.coordinator.accept_friend_request(self.request_id)

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "already_resolved")
        self.assertEqual(self.user_doc("alice")["friends"], ["bob"])
        self.assertEqual(self.user_doc("bob")["friends"], ["alice"])

    def test_friends_then_new_request_is_refused(self) -> None:
        self.coordinator.accept_friend_request(self.request_id)

        outcome = self.ledger.create_friend_request(self.alice, "ABCDEFGH")

        self.assertEqual(outcome["error"], "already_friends")

    def test_only_receiver_may_accept(self) -> None:
        outcome = self.coordinator.accept_friend_request(
            self.request_id, acting_user_id="alice"
        )

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "not_authorized")
        self.assertEqual(self.user_doc("bob")["friends"], [])

    def test_reject_leaves_friends_untouched(self) -> None:
        outcome = self.coordinator.reject_friend_request(
            self.request_id, acting_user_id="bob"
        )

        self.assertTrue(outcome["success"])
        self.assertEqual(outcome["message"], "Friend request declined")
        self.assertEqual(self.user_doc("alice")["friends"], [])
        self.assertEqual(self.user_doc("bob")["friends"], [])
        self.assertEqual(
            self.request_doc("friendRequests", self.request_id)["status"], "rejected"
        )

        again = self.coordinator.accept_friend_request(self.request_id)
        self.assertEqual(again["error"], "already_resolved")

    def test_only_receiver_may_reject(self) -> None:
        outcome = self.coordinator.reject_friend_request(
            self.request_id, acting_user_id="alice"
        )

        self.assertEqual(outcome["error"], "not_authorized")
        self.assertEqual(
            self.request_doc("friendRequests", self.request_id)["status"], "pending"
        )

    def test_unknown_request(self) -> None:
        outcome = self.coordinator.accept_friend_request("missing")

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "not_found")

    def test_failed_commit_changes_nothing(self) -> None:
        failing = MockBatch(self.db)
        failing.commit.side_effect = gcp_exceptions.Aborted("contention")
        self.db.batch = MagicMock(return_value=failing)

        outcome = self.coordinator.accept_friend_request(self.request_id)

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "storage_error")
        self.assertEqual(self.user_doc("alice")["friends"], [])
        self.assertEqual(self.user_doc("bob")["friends"], [])
        self.assertEqual(
            self.request_doc("friendRequests", self.request_id)["status"], "pending"
        )


class TestRoomMembership(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.make_user("owner", "Olivia")
        self.guest = self.make_user("guest", "Gus")
        self.room = self.registry.create_room("Home", "🏠", "owner")
        outcome = self.ledger.create_room_join_request(
            self.guest, self.room["inviteCode"]
        )
        assert outcome["data"] is not None
        self.request_id = outcome["data"]["id"]

    def _join(self) -> None:
        outcome = self.coordinator.accept_room_join_request(
            self.request_id, acting_user_id="owner"
        )
        self.assertTrue(outcome["success"])

    def test_accept_join_request(self) -> None:
        outcome = self.coordinator.accept_room_join_request(
            self.request_id, acting_user_id="owner"
        )

        self.assertEqual(outcome["message"], "Gus joined Home")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner", "guest"])
        self.assertEqual(self.user_doc("guest")["rooms"], [self.room["id"]])
        self.assertEqual(
            self.request_doc("roomJoinRequests", self.request_id)["status"],
            "accepted",
        )

    def test_accepting_join_twice_does_not_duplicate(self) -> None:
        self._join()

        outcome = self.coordinator.accept_room_join_request(self.request_id)

        self.assertEqual(outcome["error"], "already_resolved")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner", "guest"])

    def test_only_owner_may_accept(self) -> None:
        outcome = self.coordinator.accept_room_join_request(
            self.request_id, acting_user_id="guest"
        )

        self.assertEqual(outcome["error"], "not_authorized")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])

    def test_reject_join_request(self) -> None:
        outcome = self.coordinator.reject_room_join_request(
            self.request_id, acting_user_id="owner"
        )

        self.assertEqual(outcome["message"], "Join request declined")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])
        self.assertEqual(self.user_doc("guest")["rooms"], [])

    def test_leave_room(self) -> None:
        self._join()

        outcome = self.coordinator.leave_room("guest", self.room["id"])

        self.assertTrue(outcome["success"])
        self.assertEqual(outcome["data"], {"roomId": self.room["id"]})
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])
        self.assertEqual(self.user_doc("guest")["rooms"], [])

    def test_leave_twice_is_harmless(self) -> None:
        self._join()
        self.coordinator.leave_room("guest", self.room["id"])

        outcome = self.coordinator.leave_room("guest", self.room["id"])

        self.assertTrue(outcome["success"])
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])

    def test_owner_cannot_leave(self) -> None:
        outcome = self.coordinator.leave_room("owner", self.room["id"])

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "owner_cannot_leave")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])
        self.assertEqual(self.user_doc("owner")["rooms"], [self.room["id"]])

    def test_leave_unknown_room(self) -> None:
        outcome = self.coordinator.leave_room("guest", "missing")

        self.assertEqual(outcome["error"], "not_found")

    def test_owner_removes_member(self) -> None:
        self._join()

        outcome = self.coordinator.remove_member_from_room(
            self.room["id"], "guest", "owner"
        )

        self.assertTrue(outcome["success"])
        self.assertEqual(
            outcome["data"], {"roomId": self.room["id"], "userId": "guest"}
        )
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])
        self.assertEqual(self.user_doc("guest")["rooms"], [])

    def test_owner_cannot_be_removed(self) -> None:
        self._join()

        for acting in ("owner", "guest"):
            outcome = self.coordinator.remove_member_from_room(
                self.room["id"], "owner", acting
            )
            self.assertEqual(outcome["error"], "cannot_remove_owner")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner", "guest"])

    def test_member_cannot_kick_themselves(self) -> None:
        self._join()

        outcome = self.coordinator.remove_member_from_room(
            self.room["id"], "guest", "guest"
        )

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "cannot_remove_self")
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner", "guest"])
        self.assertEqual(self.user_doc("guest")["rooms"], [self.room["id"]])

    def test_member_cannot_remove_others(self) -> None:
        self._join()
        self.make_user("third", "Theo")

        outcome = self.coordinator.remove_member_from_room(
            self.room["id"], "third", "guest"
        )

        self.assertEqual(outcome["error"], "not_authorized")

    def test_rejoin_after_leaving(self) -> None:
        self._join()
        self.coordinator.leave_room("guest", self.room["id"])

        outcome = self.ledger.create_room_join_request(
            self.user_doc("guest"), self.room["inviteCode"]
        )
        assert outcome["data"] is not None
        self.coordinator.accept_room_join_request(outcome["data"]["id"], "owner")

        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner", "guest"])
        self.assertEqual(self.user_doc("guest")["rooms"], [self.room["id"]])


class TestResolutionPreconditions(FirestoreTestCase):
    """Resolving a request only commits if the request is unchanged since read."""

    def setUp(self) -> None:
        super().setUp()
        self.alice = self.make_user("alice", "Alice", friend_code="ALICE001")
        self.make_user("bob", "Bob", friend_code="ABCDEFGH")
        self.make_user("owner", "Olivia")
        self.room = self.registry.create_room("Home", "🏠", "owner")

        friend = self.ledger.create_friend_request(self.alice, "ABCDEFGH")["data"]
        join = self.ledger.create_room_join_request(
            self.user_doc("alice"), self.room["inviteCode"]
        )["data"]
        assert friend is not None and join is not None
        self.friend_request_id = friend["id"]
        self.join_request_id = join["id"]

        read = self.store.get_versioned

        def versioned_read(collection: str, doc_id: str) -> tuple[Any, Any]:
            data, _ = read(collection, doc_id)
            return data, "2024-05-01T12:00:00Z"

        self.store.get_versioned = versioned_read
        self.db.write_option = MagicMock(return_value="unchanged-since-read")

    def assert_status_write_guarded(self, collection: str, request_id: str) -> None:
        self.assertEqual(len(self.batches), 1)
        op, ref, data = self.batches[0].writes[0]
        self.assertEqual(ref._path, [collection, request_id])
        self.assertIn("status", data)
        self.assertEqual(self.batches[0].options[0], "unchanged-since-read")
        self.assertTrue(all(o is None for o in self.batches[0].options[1:]))
        self.db.write_option.assert_called_once_with(
            last_update_time="2024-05-01T12:00:00Z"
        )

    def test_accept_friend_request_is_guarded(self) -> None:
        outcome = self.coordinator.accept_friend_request(self.friend_request_id)

        self.assertTrue(outcome["success"])
        self.assert_status_write_guarded("friendRequests", self.friend_request_id)

    def test_reject_friend_request_is_guarded(self) -> None:
        outcome = self.coordinator.reject_friend_request(self.friend_request_id)

        self.assertTrue(outcome["success"])
        self.assert_status_write_guarded("friendRequests", self.friend_request_id)

    def test_accept_room_join_request_is_guarded(self) -> None:
        outcome = self.coordinator.accept_room_join_request(self.join_request_id)

        self.assertTrue(outcome["success"])
        self.assert_status_write_guarded("roomJoinRequests", self.join_request_id)

    def test_reject_room_join_request_is_guarded(self) -> None:
        outcome = self.coordinator.reject_room_join_request(self.join_request_id)

        self.assertTrue(outcome["success"])
        self.assert_status_write_guarded("roomJoinRequests", self.join_request_id)

    def test_request_changed_since_read_applies_nothing(self) -> None:
        stale = MockBatch(self.db)
        stale.commit.side_effect = gcp_exceptions.FailedPrecondition(
            "update time does not match"
        )
        self.db.batch = MagicMock(return_value=stale)

        friend = self.coordinator.accept_friend_request(self.friend_request_id)
        join = self.coordinator.accept_room_join_request(self.join_request_id)

        for outcome in (friend, join):
            self.assertFalse(outcome["success"])
            self.assertEqual(outcome["error"], "storage_error")
        self.assertEqual(stale.options[0], "unchanged-since-read")
        self.assertEqual(self.user_doc("alice")["friends"], [])
        self.assertEqual(self.user_doc("bob")["friends"], [])
        self.assertEqual(self.user_doc("alice")["rooms"], [])
        self.assertEqual(self.room_doc(self.room["id"])["members"], ["owner"])
        self.assertEqual(
            self.request_doc("friendRequests", self.friend_request_id)["status"],
            "pending",
        )
        self.assertEqual(
            self.request_doc("roomJoinRequests", self.join_request_id)["status"],
            "pending",
        )


class TestStorageFailures(unittest.TestCase):
    def test_unavailable_store_reports_retryable_failure(self) -> None:
        store = MagicMock()
        ledger = MagicMock()
        registry = MagicMock()
        registry.get_room.side_effect = StorageError()
        coordinator = MembershipCoordinator(store, MagicMock(), registry, ledger)

        outcome = coordinator.leave_room("guest", "room1")

        self.assertFalse(outcome["success"])
        self.assertEqual(outcome["error"], "storage_error")
        store.commit_atomic.assert_not_called()


if __name__ == "__main__":
    unittest.main()
