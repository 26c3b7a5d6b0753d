"""Configuration lookup that works with and without a Flask app context."""

from typing import Any

from flask import current_app, has_app_context

from ..config import Config

_MISSING = object()


def get_setting(key: str, default: Any = None) -> Any:
    """Read ``key`` from the active app config, falling back to ``Config``."""
    if has_app_context():
        value = current_app.config.get(key, _MISSING)
        if value is not _MISSING:
            return value
    return getattr(Config, key, default)
