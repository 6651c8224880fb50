"""Routes for the user blueprint."""

from flask import g, jsonify, request

from tidyly.auth.decorators import login_required
from tidyly.core.outcomes import success
from tidyly.extensions import get_service

from . import bp
from .models import UserPatch


@bp.route("/me", methods=["GET"])
@login_required
def profile():
    """Return the signed-in user's profile, including their friend code."""
    return jsonify(success("Profile loaded.", dict(g.user)))


@bp.route("/me", methods=["PATCH"])
@login_required
def edit_profile():
    """Update display name, email or photo of the signed-in user."""
    directory = get_service("directory")
    patch = UserPatch.from_dict(request.get_json(silent=True) or {})
    directory.update_user(g.user["uid"], patch)
    return jsonify(success("Profile updated.", dict(directory.get_user(g.user["uid"]))))


@bp.route("/friends", methods=["GET"])
@login_required
def friends():
    """List the profiles of the signed-in user's friends."""
    friend_profiles = get_service("directory").get_friends(g.user["uid"])
    return jsonify(success("Friends loaded.", {"friends": friend_profiles}))
