"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import CODE_MAX_ATTEMPTS
from .core.store import FirestoreStore
from .errors import StorageError
from .extensions import EXTENSION_KEY, csrf, get_service
from .room.services import RoomRegistry
from .social.services import ChangeNotifier, MembershipCoordinator, RequestLedger
from .user.services import IdentityDirectory


def build_services(db, code_max_attempts=CODE_MAX_ATTEMPTS):
    """Wire the social core around one Firestore client."""
    store = FirestoreStore(db)
    directory = IdentityDirectory(store, code_max_attempts)
    registry = RoomRegistry(store, directory, code_max_attempts)
    ledger = RequestLedger(store, directory, registry)
    return {
        "store": store,
        "directory": directory,
        "registry": registry,
        "ledger": ledger,
        "coordinator": MembershipCoordinator(store, directory, registry, ledger),
        "notifier": ChangeNotifier(store),
    }


def _load_credentials(app):
    """Return Firebase credentials and project id, or ``(None, None)``.

    Looks at ``FIREBASE_CREDENTIALS_JSON``, then ``firebase_credentials.json``
    beside the package, then application default credentials.
    """
    local_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
    )
    sources = [("FIREBASE_CREDENTIALS_JSON", os.environ.get("FIREBASE_CREDENTIALS_JSON"))]
    if os.path.exists(local_path):
        with open(local_path, "r") as f:
            sources.append((local_path, f.read()))

    for source, raw in sources:
        if not raw:
            continue
        try:
            info = json.loads(raw)
            return credentials.Certificate(info), info.get("project_id")
        except ValueError as e:
            app.logger.error(f"Ignoring Firebase credentials from {source}: {e}")

    try:
        return credentials.ApplicationDefault(), os.environ.get("FIREBASE_PROJECT_ID")
    except Exception as e:
        app.logger.error(f"No usable Firebase credentials: {e}")
        return None, None


def _initialize_firebase(app):
    """Initialize the Firebase Admin SDK once per process."""
    if firebase_admin._apps:
        return
    cred, project_id = _load_credentials(app)
    if cred is None:
        return
    firebase_admin.initialize_app(cred, {"projectId": project_id} if project_id else None)


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        CODE_MAX_ATTEMPTS=int(os.environ.get("CODE_MAX_ATTEMPTS") or CODE_MAX_ATTEMPTS),
        FIRESTORE_CLIENT=None,
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _initialize_firebase(app)

    db = app.config.get("FIRESTORE_CLIENT")
    if db is None:
        db = firestore.client()
    app.extensions[EXTENSION_KEY] = build_services(db, app.config["CODE_MAX_ATTEMPTS"])

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import user as user_bp

    app.register_blueprint(user_bp.bp)

    from . import room as room_bp

    app.register_blueprint(room_bp.bp)

    from . import social as social_bp

    app.register_blueprint(social_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the profile from Firestore into g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            g.user = get_service("directory").get_user(user_id)
        except StorageError as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            return
        if g.user is None:
            # User ID in session but no user in DB. Clear the session.
            session.clear()
            current_app.logger.warning(
                f"User {user_id} in session but not found in Firestore."
            )

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
