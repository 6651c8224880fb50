"""Core module for the tidyly application."""

from .types import FirestoreDocument, Outcome

__all__ = ["FirestoreDocument", "Outcome"]
