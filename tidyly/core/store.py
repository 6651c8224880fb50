"""Storage client wrapping a Firestore database handle."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, cast

from firebase_admin import firestore
from google.api_core import exceptions as gcp_exceptions

from tidyly.errors import StorageError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

Filter = tuple[str, str, Any]
SnapshotHandler = Callable[[list[dict[str, Any]], Any], None]
Unsubscribe = Callable[[], None]

WRITE_UPDATE = "update"
WRITE_SET = "set"


@dataclass
class Write:
    """One document write inside an atomic commit.

    When ``last_update_time`` is set the write only applies if the document
    has not changed since it was read; otherwise the whole commit is rejected.
    """

    collection: str
    doc_id: str
    fields: dict[str, Any]
    op: str = WRITE_UPDATE
    last_update_time: Optional[Any] = None


@contextlib.contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Re-raise Firestore failures as retryable StorageErrors."""
    try:
        yield
    except (gcp_exceptions.GoogleAPICallError, gcp_exceptions.RetryError) as e:
        logger.error(f"Firestore error while {action}: {e}")
        raise StorageError() from e


class FirestoreStore:
    """The document store operations the social core relies on.

    One instance is created at startup around a Firestore client and passed to
    every service that needs it.
    """

    def __init__(self, db: Client) -> None:
        """Initialize the store with a Firestore client."""
        self.db = db

    def _query(self, collection: str, filters: list[Filter]) -> Any:
        query: Any = self.db.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=firestore.FieldFilter(field, op, value))
        return query

    def get_by_id(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document by id, or None if it does not exist."""
        data, _ = self.get_versioned(collection, doc_id)
        return data

    def get_versioned(
        self, collection: str, doc_id: str
    ) -> tuple[dict[str, Any] | None, Any]:
        """Fetch a document together with its last update time."""
        with _storage_errors(f"reading {collection}/{doc_id}"):
            doc = cast(
                "DocumentSnapshot", self.db.collection(collection).document(doc_id).get()
            )
        if not doc.exists:
            return None, None
        data = doc.to_dict()
        if data is None:
            return None, None
        return dict(data), getattr(doc, "update_time", None)

    def query(self, collection: str, filters: list[Filter]) -> list[dict[str, Any]]:
        """Return every document matching all of the given filters."""
        with _storage_errors(f"querying {collection}"):
            docs = list(self._query(collection, filters).stream())
        return [dict(data) for doc in docs if (data := doc.to_dict()) is not None]

    def query_by_equality(
        self,
        collection: str,
        field: str,
        value: Any,
        extra_filters: list[Filter] | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents whose ``field`` equals ``value``."""
        filters: list[Filter] = [(field, "==", value)]
        filters.extend(extra_filters or [])
        return self.query(collection, filters)

    def new_id(self, collection: str) -> str:
        """Allocate a fresh document id in a collection."""
        return str(self.db.collection(collection).document().id)

    def put(self, collection: str, doc_id: str, document: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        with _storage_errors(f"writing {collection}/{doc_id}"):
            self.db.collection(collection).document(doc_id).set(document)

    def update_fields(
        self, collection: str, doc_id: str, fields: dict[str, Any]
    ) -> None:
        """Merge fields into an existing document."""
        with _storage_errors(f"updating {collection}/{doc_id}"):
            self.db.collection(collection).document(doc_id).update(fields)

    def commit_atomic(self, writes: list[Write]) -> None:
        """Apply all writes as one unit: every write is visible or none is."""
        batch = self.db.batch()
        for write in writes:
            ref = self.db.collection(write.collection).document(write.doc_id)
            if write.op == WRITE_SET:
                batch.set(ref, write.fields)
            elif write.last_update_time is not None:
                option = self.db.write_option(last_update_time=write.last_update_time)
                batch.update(ref, write.fields, option=option)
            else:
                batch.update(ref, write.fields)
        with _storage_errors(f"committing {len(writes)} writes"):
            batch.commit()

    @staticmethod
    def array_union(values: list[Any]) -> Any:
        """Field transform adding values to an array without duplicates."""
        return firestore.ArrayUnion(values)

    @staticmethod
    def array_remove(values: list[Any]) -> Any:
        """Field transform removing every occurrence of values from an array."""
        return firestore.ArrayRemove(values)

    def subscribe(
        self, collection: str, filters: list[Filter], on_snapshot: SnapshotHandler
    ) -> Unsubscribe:
        """Listen to a query; ``on_snapshot(documents, read_time)`` runs on each change.

        Firestore delivers the current result set first, then every change.
        """

        def _callback(docs: list[Any], changes: Any, read_time: Any) -> None:
            documents = [
                dict(data) for doc in docs if (data := doc.to_dict()) is not None
            ]
            on_snapshot(documents, read_time)

        with _storage_errors(f"subscribing to {collection}"):
            watch = self._query(collection, filters).on_snapshot(_callback)
        return cast(Unsubscribe, watch.unsubscribe)
