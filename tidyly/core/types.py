"""Core data types for the tidyly application."""

from typing import Any, Dict, Optional, TypedDict  # noqa: UP035


class _FirestoreDocumentBase(TypedDict):
    createdAt: str


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    updatedAt: str


class Outcome(TypedDict):
    """Discriminated result of a mutating operation."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]]  # noqa: UP006
    error: Optional[str]
