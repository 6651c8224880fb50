"""JSON responses for service outcomes."""

from __future__ import annotations

from typing import Any

from flask import jsonify

from .core.types import Outcome

ERROR_STATUS = {
    "not_found": 404,
    "invalid_code": 404,
    "not_authorized": 403,
    "owner_cannot_leave": 403,
    "cannot_remove_owner": 403,
    "cannot_remove_self": 403,
    "already_exists": 409,
    "code_exhausted": 409,
    "conflict": 409,
    "storage_error": 503,
}


def outcome_response(outcome: Outcome, success_status: int = 200) -> Any:
    """Render an outcome as JSON with a matching HTTP status."""
    if outcome["success"]:
        return jsonify(outcome), success_status
    return jsonify(outcome), ERROR_STATUS.get(outcome["error"] or "", 400)


def form_error_response(form: Any) -> Any:
    """Render form validation errors in the outcome shape."""
    messages = [msg for errors in form.errors.values() for msg in errors]
    return (
        jsonify(
            {
                "success": False,
                "message": messages[0] if messages else "Invalid request.",
                "data": None,
                "error": "invalid_form",
                "errors": form.errors,
            }
        ),
        400,
    )
