from flask import Blueprint

review_session_bp = Blueprint('review_session', __name__)

module_metadata = {
    'name': 'Review Session',
    'icon': 'layers',
    'category': 'Study',
    'url_prefix': '/api/review-session',
    'enabled': True
}

from .routes import api  # noqa: E402,F401
