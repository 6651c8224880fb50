"""Data models for the user blueprint."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional

from tidyly.core.types import FirestoreDocument
from tidyly.errors import ValidationError

MAX_DISPLAY_NAME_LENGTH = 80


class User(FirestoreDocument, total=False):
    """A user document in Firestore."""

    uid: str
    email: str
    displayName: str
    photoURL: Optional[str]
    friendCode: str
    friends: list[str]
    rooms: list[str]


@dataclass
class UserPatch:
    """Profile fields a caller may change. ``None`` leaves a field untouched.

    Membership fields (``friends``, ``rooms``) and the friend code are not
    patchable; they change only through the membership workflows.
    """

    displayName: Optional[str] = None
    email: Optional[str] = None
    photoURL: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPatch:
        """Build a patch from request data, rejecting unknown fields."""
        if not isinstance(data, dict):
            raise ValidationError("Expected an object of fields.", code="invalid_patch")
        allowed = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(unknown)}.", code="invalid_patch"
            )
        patch = cls(**data)
        patch.validate()
        return patch

    def validate(self) -> None:
        """Check every provided value against the user schema."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{f.name} must be a string.", code="invalid_patch")
        if self.displayName is not None:
            name = self.displayName.strip()
            if not name:
                raise ValidationError("Display name cannot be empty.", code="invalid_patch")
            if len(name) > MAX_DISPLAY_NAME_LENGTH:
                raise ValidationError("Display name is too long.", code="invalid_patch")
        if self.email is not None and "@" not in self.email:
            raise ValidationError("Email address is invalid.", code="invalid_patch")

    def to_fields(self) -> dict[str, Any]:
        """Return only the fields that were provided."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                result[f.name] = value.strip() if f.name == "displayName" else value
        return result
