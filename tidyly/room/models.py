"""Data models for the room blueprint."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional

from tidyly.core.types import FirestoreDocument
from tidyly.errors import ValidationError

MAX_ROOM_NAME_LENGTH = 60
MAX_DESCRIPTION_LENGTH = 500


class Room(FirestoreDocument, total=False):
    """A room document in Firestore."""

    id: str
    name: str
    emoji: str
    description: str
    ownerId: str
    inviteCode: str
    members: list[str]


@dataclass
class RoomPatch:
    """Room fields an owner may change. ``None`` leaves a field untouched.

    ``members``, ``ownerId`` and ``inviteCode`` are not patchable.
    """

    name: Optional[str] = None
    emoji: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoomPatch:
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
        """Check every provided value against the room schema."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{f.name} must be a string.", code="invalid_patch")
        if self.name is not None:
            validate_room_name(self.name)
        if self.emoji is not None and not self.emoji.strip():
            raise ValidationError("Emoji cannot be empty.", code="invalid_patch")
        if self.description is not None and len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError("Description is too long.", code="invalid_patch")

    def to_fields(self) -> dict[str, Any]:
        """Return only the fields that were provided."""
        return {
            f.name: getattr(self, f.name).strip()
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


def validate_room_name(name: str) -> None:
    """Raise ValidationError unless the name is non-blank and short enough."""
    if not name or not name.strip():
        raise ValidationError("Room name cannot be empty.", code="invalid_room")
    if len(name.strip()) > MAX_ROOM_NAME_LENGTH:
        raise ValidationError("Room name is too long.", code="invalid_room")
