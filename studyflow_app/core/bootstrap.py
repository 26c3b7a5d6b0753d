"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import logging

from flask import Flask, jsonify

from ..extensions import db, login_manager
from .error_handlers import NotAuthenticatedError, register_error_handlers
from .logging_config import setup_logging
from .module_registry import register_default_modules
from .repository import SqlAlchemyStudyRepository


def configure_logging(app: Flask) -> None:
    """Configure the package logger and ``app.logger`` if it has no handlers."""

    setup_logging(
        app,
        log_level=app.config.get("LOG_LEVEL", "INFO"),
        log_dir=app.config.get("LOG_DIR"),
        log_to_file=app.config.get("LOG_TO_FILE", False),
    )

    if app.logger.handlers:
        return

    app.logger.setLevel(logging.DEBUG if app.debug else logging.INFO)
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    app.logger.addHandler(handler)
    app.logger.propagate = False
    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)
    login_manager.init_app(app)
    app.extensions.setdefault("study_repository", SqlAlchemyStudyRepository())


def register_auth_handlers(app: Flask) -> None:
    """Flask-Login user loading and JSON 401 responses."""

    @login_manager.user_loader
    def load_user(user_id: str):
        from ..models import User

        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        error = NotAuthenticatedError()
        return jsonify({"data": None, "error": error.to_dict()}), error.status_code


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints with the app."""

    register_default_modules(app)


def initialize_database(app: Flask) -> None:
    """Create database tables."""

    from .. import models  # noqa: F401

    db.create_all()
    app.logger.debug("Database tables ensured.")


__all__ = [
    "configure_logging",
    "register_extensions",
    "register_auth_handlers",
    "register_error_handlers",
    "register_blueprints",
    "initialize_database",
]
