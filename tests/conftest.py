"""Common utilities for tests."""

from __future__ import annotations

import unittest
import unittest.mock
from typing import Any, Iterator, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

from tidyly import build_services


class _ArrayTransform:
    """Sentinel for an array field transform, resolved on update."""

    def __init__(self, values: list[Any]) -> None:
        self.values = list(values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def apply(self, current: list[Any]) -> list[Any]:
        raise NotImplementedError


class MockArrayUnion(_ArrayTransform):
    def apply(self, current: list[Any]) -> list[Any]:
        return current + [v for v in self.values if v not in current]


class MockArrayRemove(_ArrayTransform):
    def apply(self, current: list[Any]) -> list[Any]:
        return [v for v in current if v not in self.values]


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


def _accept_filter_keyword(cls: type) -> None:
    """Let ``cls.where`` take ``filter=FieldFilter(...)`` like the real client."""
    if hasattr(cls, "_positional_where"):
        return
    cls._positional_where = cls.where

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = (
                filter.field_path,
                filter.op_string,
                filter.value,
            )
        return self._positional_where(field_path, op_string, value)

    cls.where = where


def _resolve_transforms(current: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    resolved = {}
    for field, value in data.items():
        if isinstance(value, _ArrayTransform):
            existing = current.get(field)
            value = value.apply(existing if isinstance(existing, list) else [])
        resolved[field] = value
    return resolved


def patch_mockfirestore() -> None:
    """Teach mockfirestore about FieldFilter, write options and array transforms."""
    _accept_filter_keyword(CollectionReference)
    _accept_filter_keyword(Query)

    if not hasattr(MockFirestore, "write_option"):
        # Preconditions are recorded by MockBatch, not enforced.
        MockFirestore.write_option = staticmethod(lambda **kwargs: kwargs)

    if not hasattr(DocumentReference, "_plain_update"):
        DocumentReference._plain_update = DocumentReference.update

        def update(self: Any, data: dict[str, Any]) -> Any:
            current = self.get().to_dict() or {}
            return self._plain_update(_resolve_transforms(current, data))

        DocumentReference.update = update


class MockBatch:
    """Records writes and their options; applies them in order on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[str, Any, Any]] = []
        self.options: list[Any] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._apply)

    def set(self, ref: Any, data: Any) -> None:
        self.writes.append(("set", ref, data))
        self.options.append(None)

    def update(self, ref: Any, data: Any, option: Any = None) -> None:
        self.writes.append(("update", ref, data))
        self.options.append(option)

    def _apply(self) -> None:
        for op, ref, data in self.writes:
            getattr(ref, op)(data)


def mock_firestore_module() -> unittest.mock.MagicMock:
    """Build a stand-in for ``firebase_admin.firestore`` using the mock transforms."""
    module = unittest.mock.MagicMock()
    module.FieldFilter = MockFieldFilter
    module.ArrayUnion = MockArrayUnion
    module.ArrayRemove = MockArrayRemove
    return module


class FirestoreTestCase(unittest.TestCase):
    """Wires the services around a MockFirestore database."""

    def setUp(self) -> None:
        """Set up a mock database and the service graph."""
        patch_mockfirestore()
        self.db = MockFirestore()
        self.batches: list[MockBatch] = []
        self.db.batch = self._new_batch

        patcher = unittest.mock.patch(
            "tidyly.core.store.firestore", new=mock_firestore_module()
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        self.services = build_services(self.db)
        self.store = self.services["store"]
        self.directory = self.services["directory"]
        self.registry = self.services["registry"]
        self.ledger = self.services["ledger"]
        self.coordinator = self.services["coordinator"]

    def _new_batch(self) -> MockBatch:
        batch = MockBatch(self.db)
        self.batches.append(batch)
        return batch

    def make_user(
        self, uid: str, name: str, friend_code: Optional[str] = None
    ) -> dict[str, Any]:
        """Create a profile, optionally pinning its friend code."""
        self.directory.create_user(uid, f"{uid}@example.com", name)
        if friend_code:
            self.db.collection("users").document(uid).update(
                {"friendCode": friend_code}
            )
        return self.user_doc(uid)

    def user_doc(self, uid: str) -> dict[str, Any]:
        return self.db.collection("users").document(uid).get().to_dict()

    def room_doc(self, room_id: str) -> dict[str, Any]:
        return self.db.collection("rooms").document(room_id).get().to_dict()

    def request_doc(self, collection: str, request_id: str) -> dict[str, Any]:
        return self.db.collection(collection).document(request_id).get().to_dict()
