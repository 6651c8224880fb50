"""Utility functions for the application."""

from __future__ import annotations

import datetime
import secrets
from typing import Callable

from .core.constants import CODE_ALPHABET, CODE_MAX_ATTEMPTS
from .errors import ConflictError


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def epoch_millis() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(datetime.datetime.now(datetime.timezone.utc).timestamp() * 1000)


def generate_code(length: int = 8) -> str:
    """Generate a random upper-case alphanumeric code."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_unique_code(
    length: int,
    is_taken: Callable[[str], bool],
    max_attempts: int = CODE_MAX_ATTEMPTS,
) -> str:
    """Generate a code that ``is_taken`` reports as free.

    Raises:
        ConflictError: If every attempt collided with an existing code.
    """
    for _ in range(max_attempts):
        code = generate_code(length)
        if not is_taken(code):
            return code
    raise ConflictError(
        f"Could not allocate a unique code after {max_attempts} attempts.",
        code="code_exhausted",
    )


def normalize_code(code: str | None) -> str:
    """Normalize user-entered codes for lookup."""
    return (code or "").strip().upper()


def make_request_id(*parts: str) -> str:
    """Build a request id from its parties, a timestamp and a random suffix."""
    return "_".join([*parts, str(epoch_millis()), secrets.token_hex(3)])
