"""Flask extensions and service lookup for the application."""

from typing import Any

from flask import current_app
from flask_wtf.csrf import CSRFProtect

csrf = CSRFProtect()

EXTENSION_KEY = "tidyly"


def get_service(name: str) -> Any:
    """Return one of the services built by ``create_app``."""
    return current_app.extensions[EXTENSION_KEY][name]
