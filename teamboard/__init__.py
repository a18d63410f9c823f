"""
Team board Flask application factory.

Provides ``create_app``, which assembles the team board service: the data
store adapter selected by ``DATA_STORE_BACKEND``, the task and profile
repositories, the shared task store and the optimistic board layered on
top of it.

Blueprints:
  * **api_bp** -- task, comment and sub-task endpoints at ``/api``.
  * **views_bp** -- read-only board views at ``/api/views``.
  * **team_bp** -- team member administration at ``/api/profiles``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

from config import get_config

db = SQLAlchemy()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _ensure_sqlite_db_parent_exists(database_uri: str) -> None:
    """Create parent directories for file-based SQLite URIs when missing."""
    sqlite_prefix = "sqlite:///"
    if not database_uri.startswith(sqlite_prefix):
        return

    sqlite_path = database_uri[len(sqlite_prefix) :].split("?", 1)[0]
    if sqlite_path == ":memory:":
        return

    db_parent = Path(sqlite_path).parent
    db_parent.mkdir(parents=True, exist_ok=True)


def _build_data_store(app: Flask):
    """Instantiate the adapter named by ``DATA_STORE_BACKEND``."""
    backend = app.config.get("DATA_STORE_BACKEND", "sql")

    if backend == "rest":
        from .auth import request_access_token
        from .datastore.rest import RestDataStore

        return RestDataStore(
            app.config["SUPABASE_URL"],
            app.config["SUPABASE_KEY"],
            timeout=app.config.get("DATA_STORE_TIMEOUT", 10),
            token_provider=request_access_token,
        )

    if backend == "sql":
        from . import models  # noqa: F401  (registers the tables)
        from .datastore.sql import SqlDataStore

        _ensure_sqlite_db_parent_exists(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db.init_app(app)
        with app.app_context():
            db.create_all()
            logger.info("Team board database tables created")
        return SqlDataStore(app)

    raise ValueError(f"Unknown DATA_STORE_BACKEND '{backend}'")


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the team board application.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``). When
            *None*, the value is read from the ``FLASK_ENV`` environment
            variable, defaulting to ``"development"``.

    Returns:
        A fully configured Flask application instance ready to serve requests.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    logger.info(
        "Creating team board app with config: %s (backend=%s)",
        config_class.__name__,
        app.config["DATA_STORE_BACKEND"],
    )

    os.makedirs(app.instance_path, exist_ok=True)

    from .extension import init_services

    init_services(app, _build_data_store(app))

    from .cli import register_commands
    from .routes import register_error_handlers
    from .routes.api import api_bp
    from .routes.team import team_bp
    from .routes.views import views_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(views_bp, url_prefix="/api/views")
    app.register_blueprint(team_bp, url_prefix="/api/profiles")
    register_error_handlers(app)
    register_commands(app)

    return app
