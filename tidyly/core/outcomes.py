"""Helpers for reporting service results as Outcome dictionaries."""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from tidyly.errors import AppError, StorageError

from .types import Outcome

logger = logging.getLogger(__name__)


def success(message: str, data: dict[str, Any] | None = None) -> Outcome:
    """Build a successful outcome."""
    return {"success": True, "message": message, "data": data, "error": None}


def failure(error: AppError) -> Outcome:
    """Build a failed outcome from an application error."""
    return {
        "success": False,
        "message": error.message,
        "data": None,
        "error": error.code,
    }


def reports_outcome(action: str) -> Callable[..., Callable[..., Outcome]]:
    """Convert application errors raised by a service call into a failed Outcome.

    Domain failures (validation, authorization, missing records) are expected
    and logged as warnings. Storage failures are logged as errors; callers may
    retry the whole operation.
    """

    def decorator(func: Callable[..., Outcome]) -> Callable[..., Outcome]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Outcome:
            try:
                return func(*args, **kwargs)
            except StorageError as e:
                logger.error(f"Error {action}: {e.message}")
                return failure(e)
            except AppError as e:
                logger.warning(f"Refused {action}: {e.message}")
                return failure(e)

        return wrapper

    return decorator
