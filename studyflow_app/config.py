# File: studyflow_app/config.py
# Application configuration, loaded from environment variables (and .env when present).

import os
from dotenv import load_dotenv

load_dotenv()

# Project root: this file lives in studyflow_app/, so go up one level.
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

DATABASE_PATH = os.path.join(BASE_DIR, "database", "studyflow.db")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Configuration for the StudyFlow application."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Development fallback, set SECRET_KEY in production
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Timezone used for "today" when the user has none configured
    SYSTEM_TIMEZONE = os.environ.get('SYSTEM_TIMEZONE', 'UTC')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(BASE_DIR, 'logs')
    LOG_TO_FILE = _env_flag('LOG_TO_FILE', False)

    # Study suggestions
    SUGGESTION_LIMIT = int(os.environ.get('SUGGESTION_LIMIT', 3))
    SUGGESTION_MAX_OVERDUE_TASKS = 3
    SUGGESTION_MAX_URGENT_TASKS = 2
    SUGGESTION_MAX_TODAY_REVIEWS = 2

    # Review session drills
    TYPING_CLOSE_THRESHOLD = 0.7
    REVIEW_SESSION_DEFAULT_STAGES = os.environ.get(
        'REVIEW_SESSION_DEFAULT_STAGES', 'flip,multiple_choice,typing,matching'
    )

    @classmethod
    def init_app(cls, app):
        """Create the directories the configuration points at."""
        if app.config.get('SQLALCHEMY_DATABASE_URI', '').startswith(f'sqlite:///{BASE_DIR}'):
            os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)
        if app.config.get('LOG_TO_FILE'):
            os.makedirs(app.config['LOG_DIR'], exist_ok=True)
