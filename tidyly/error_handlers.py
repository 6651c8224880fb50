from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .core.outcomes import failure
from .errors import AppError, NotFoundError, StorageError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_body(message, code):
    return {"success": False, "message": message, "data": None, "error": code}


@error_handlers_bp.app_errorhandler(StorageError)
def handle_storage_error(error):
    """Handles data store failures. The client may retry the request."""
    current_app.logger.error(f"Storage Error: {error.message}")
    return jsonify(failure(error)), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors raised outside the outcome-reporting services."""
    current_app.logger.warning(f"Application Error: {error.message}")
    return jsonify(failure(error)), error.status_code


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify(_error_body("Not found.", NotFoundError.code)), 404


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests using the wrong HTTP method."""
    return jsonify(_error_body("Method not allowed.", "method_not_allowed")), 405


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return jsonify(_error_body("An unexpected error occurred.", "internal_error")), 500


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or invalid form submission.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return (
        jsonify(
            _error_body(
                "Your session may have expired. Please try your action again.",
                "csrf_error",
            )
        ),
        400,
    )
