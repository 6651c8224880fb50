"""Routes for the auth blueprint.

Sign up, sign in and password resets happen in the Firebase client SDK. The
client sends the resulting ID token here to open a server-side session.
"""

from firebase_admin import auth
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from tidyly.core.outcomes import success
from tidyly.extensions import csrf, get_service

from . import bp


@bp.route("/session_login", methods=["POST"])
@csrf.exempt
def session_login():
    """Verify a Firebase ID token, make sure a profile exists, and open a session."""
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    if not id_token:
        return (
            jsonify(
                {
                    "success": False,
                    "message": "Missing ID token.",
                    "data": None,
                    "error": "invalid_token",
                }
            ),
            400,
        )

    try:
        decoded_token = auth.verify_id_token(id_token)
    except (ValueError, auth.InvalidIdTokenError) as e:
        current_app.logger.warning(f"Rejected ID token during session login: {e}")
        return (
            jsonify(
                {
                    "success": False,
                    "message": "Invalid token.",
                    "data": None,
                    "error": "invalid_token",
                }
            ),
            401,
        )

    user = get_service("directory").ensure_user(decoded_token)
    session.clear()
    session["user_id"] = user["uid"]
    current_app.logger.info(f"Session opened for user {user['uid']}")
    return jsonify(
        success("Signed in.", {"user": dict(user), "csrfToken": generate_csrf()})
    )


@bp.route("/csrf", methods=["GET"])
def csrf_token():
    """Issue a CSRF token for the current session.

    State-changing requests send it back in the ``X-CSRFToken`` header.
    """
    return jsonify(success("CSRF token issued.", {"csrfToken": generate_csrf()}))


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session. The client signs out of Firebase itself."""
    session.clear()
    return jsonify(success("You have been logged out."))
