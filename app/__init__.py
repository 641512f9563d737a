"""
App factory: create_app()

- Loads config (env, platform flag defaults)
- Sets up logging
- Wires DI container (snapshot store, dev overrides, flags gate, audit, API client factory)
- Registers middleware (request IDs, timing)
- Registers blueprints from routes/*
- Installs global error handlers
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional

import requests
from flask import Flask, jsonify

from app.config import Settings, load_settings
from app.logging_setup import configure_logging
from app.container import Container
from app import middleware


def _register_blueprints(app: Flask) -> None:
    # Lazy imports to avoid circulars
    from routes.health_routes import bp as health_bp
    from routes.flag_routes import bp as flag_bp
    from routes.admin_flag_routes import bp as admin_flags_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(flag_bp)
    app.register_blueprint(admin_flags_bp)


def _install_error_handlers(app: Flask) -> None:
    @app.errorhandler(400)
    def bad_request(err):
        app.logger.warning(f"400: {err}")
        return jsonify({"error": "bad_request", "message": getattr(err, "description", None)}), 400

    @app.errorhandler(404)
    def not_found(err):
        return jsonify({"error": "not_found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(err):
        return jsonify({"error": "method_not_allowed"}), 405

    @app.errorhandler(500)
    def server_error(err):
        app.logger.exception("Unhandled server error")
        return jsonify({"error": "server_error"}), 500


def create_app(
    config_override: Dict[str, Any] | None = None,
    session_factory: Optional[Callable[[], requests.Session]] = None,
) -> Flask:
    # Settings & logging
    settings: Settings = load_settings(config_override)
    configure_logging(settings)

    app = Flask(__name__, static_folder=None)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["SETTINGS"] = settings

    # Dependency container (stores, flags gate, API client factory)
    container = Container(settings, session_factory=session_factory)
    app.container = container  # type: ignore[attr-defined]

    # Middleware
    middleware.install_request_id(app)
    middleware.install_timing(app)

    # Blueprints
    _register_blueprints(app)

    # Error handlers
    _install_error_handlers(app)

    logging.getLogger("FlagsApi").info(
        f"App started ENV={settings.ENV} API={settings.API_BASE_URL} "
        f"dev_overrides={'on' if settings.FF_DEV_OVERRIDES else 'off'}"
    )

    @app.get("/")
    def root():
        return {"ok": True, "env": settings.ENV}

    return app
