"""The room blueprint."""

from flask import Blueprint

bp = Blueprint("room", __name__, url_prefix="/rooms")

from . import routes  # noqa: E402

__all__ = ["routes"]
