"""Application-wide extensions.

Extension instances live here so blueprints, services and models can import
them without circular dependencies on the application factory.
"""

from flask_login import LoginManager

from .db_instance import db

login_manager = LoginManager()
login_manager.session_protection = "basic"

__all__ = ["db", "login_manager"]
