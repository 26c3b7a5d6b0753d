from flask import Blueprint

srs_bp = Blueprint('srs', __name__)

module_metadata = {
    'name': 'Spaced Repetition',
    'icon': 'brain',
    'category': 'Study',
    'url_prefix': '/api/srs',
    'enabled': True
}

from .routes import api  # noqa: E402,F401
