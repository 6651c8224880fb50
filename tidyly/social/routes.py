"""Routes for the social blueprint."""

from flask import g, jsonify

from tidyly.auth.decorators import login_required
from tidyly.core.outcomes import success
from tidyly.extensions import get_service
from tidyly.responses import form_error_response, outcome_response

from . import bp
from .forms import FriendCodeForm, InviteCodeForm


@bp.route("/friend-requests", methods=["GET"])
@login_required
def friend_requests():
    """List incoming and outgoing pending friend requests."""
    ledger = get_service("ledger")
    user_id = g.user["uid"]
    return jsonify(
        success(
            "Friend requests loaded.",
            {
                "received": ledger.get_pending_friend_requests(user_id),
                "sent": ledger.get_sent_friend_requests(user_id),
            },
        )
    )


@bp.route("/friend-requests", methods=["POST"])
@login_required
def send_friend_request():
    """Send a friend request to the owner of a friend code."""
    form = FriendCodeForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    outcome = get_service("ledger").create_friend_request(g.user, form.code.data)
    return outcome_response(outcome, success_status=201)


@bp.route("/friend-requests/<string:request_id>/accept", methods=["POST"])
@login_required
def accept_friend_request(request_id):
    """Accept a friend request sent to the signed-in user."""
    outcome = get_service("coordinator").accept_friend_request(
        request_id, acting_user_id=g.user["uid"]
    )
    return outcome_response(outcome)


@bp.route("/friend-requests/<string:request_id>/reject", methods=["POST"])
@login_required
def reject_friend_request(request_id):
    """Decline a friend request sent to the signed-in user."""
    outcome = get_service("coordinator").reject_friend_request(
        request_id, acting_user_id=g.user["uid"]
    )
    return outcome_response(outcome)


@bp.route("/join-requests", methods=["GET"])
@login_required
def join_requests():
    """List pending join requests for rooms the signed-in user owns."""
    requests = get_service("ledger").get_pending_room_join_requests(g.user["uid"])
    return jsonify(success("Join requests loaded.", {"requests": requests}))


@bp.route("/join-requests", methods=["POST"])
@login_required
def send_join_request():
    """Ask to join the room owning an invite code."""
    form = InviteCodeForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    outcome = get_service("ledger").create_room_join_request(g.user, form.code.data)
    return outcome_response(outcome, success_status=201)


@bp.route("/join-requests/<string:request_id>/accept", methods=["POST"])
@login_required
def accept_join_request(request_id):
    """Accept a join request for a room the signed-in user owns."""
    outcome = get_service("coordinator").accept_room_join_request(
        request_id, acting_user_id=g.user["uid"]
    )
    return outcome_response(outcome)


@bp.route("/join-requests/<string:request_id>/reject", methods=["POST"])
@login_required
def reject_join_request(request_id):
    """Decline a join request for a room the signed-in user owns."""
    outcome = get_service("coordinator").reject_room_join_request(
        request_id, acting_user_id=g.user["uid"]
    )
    return outcome_response(outcome)
