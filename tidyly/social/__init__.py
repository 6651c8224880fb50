"""The social blueprint: friend requests and room join requests."""

from flask import Blueprint

bp = Blueprint("social", __name__, url_prefix="/social")

from . import routes  # noqa: E402

__all__ = ["routes"]
