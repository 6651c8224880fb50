"""Decorators for the auth blueprint."""

from functools import wraps

from flask import g, jsonify


def login_required(f):
    """Reject the request with 401 unless a user profile is loaded.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get("user") is None:
            return (
                jsonify(
                    {
                        "success": False,
                        "message": "Please sign in first.",
                        "data": None,
                        "error": "unauthenticated",
                    }
                ),
                401,
            )
        return f(*args, **kwargs)

    return decorated_function
