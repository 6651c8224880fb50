"""Routes for the room blueprint."""

from flask import g, jsonify, request

from tidyly.auth.decorators import login_required
from tidyly.core.outcomes import success
from tidyly.errors import AuthorizationError, NotFoundError
from tidyly.extensions import get_service
from tidyly.responses import form_error_response, outcome_response

from . import bp
from .forms import RoomForm
from .models import RoomPatch


def _get_member_room(room_id):
    """Fetch a room the signed-in user belongs to."""
    room = get_service("registry").get_room(room_id)
    if room is None:
        raise NotFoundError("Room not found.")
    if g.user["uid"] not in room.get("members", []):
        raise AuthorizationError("You are not a member of this room.")
    return room


@bp.route("/", methods=["GET"])
@login_required
def view_rooms():
    """List the rooms the signed-in user belongs to."""
    rooms = get_service("registry").get_user_rooms(g.user["uid"])
    return jsonify(success("Rooms loaded.", {"rooms": rooms}))


@bp.route("/", methods=["POST"])
@login_required
def create_room():
    """Create a room owned by the signed-in user."""
    form = RoomForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    room = get_service("registry").create_room(
        form.name.data,
        form.emoji.data,
        g.user["uid"],
        form.description.data,
    )
    return jsonify(success(f"{room['emoji']} {room['name']} created.", dict(room))), 201


@bp.route("/<string:room_id>", methods=["GET"])
@login_required
def view_room(room_id):
    """Return one room, including its invite code."""
    room = _get_member_room(room_id)
    return jsonify(success("Room loaded.", dict(room)))


@bp.route("/<string:room_id>", methods=["PATCH"])
@login_required
def edit_room(room_id):
    """Update the name, emoji or description of a room the user owns."""
    registry = get_service("registry")
    room = _get_member_room(room_id)
    if room["ownerId"] != g.user["uid"]:
        raise AuthorizationError("Only the room owner can edit the room.")
    patch = RoomPatch.from_dict(request.get_json(silent=True) or {})
    registry.update_room(room_id, patch)
    return jsonify(success("Room updated.", dict(registry.get_room(room_id))))


@bp.route("/<string:room_id>/members", methods=["GET"])
@login_required
def room_members(room_id):
    """Return the owner and member profiles of a room."""
    _get_member_room(room_id)
    members = get_service("registry").get_room_members(room_id)
    return jsonify(success("Members loaded.", members))


@bp.route("/<string:room_id>/leave", methods=["POST"])
@login_required
def leave_room(room_id):
    """Leave a room."""
    outcome = get_service("coordinator").leave_room(g.user["uid"], room_id)
    return outcome_response(outcome)


@bp.route("/<string:room_id>/members/<string:user_id>/remove", methods=["POST"])
@login_required
def remove_member(room_id, user_id):
    """Remove another member from a room the signed-in user owns."""
    outcome = get_service("coordinator").remove_member_from_room(
        room_id, user_id, g.user["uid"]
    )
    return outcome_response(outcome)
