from flask import Blueprint

suggestions_bp = Blueprint('suggestions', __name__)

module_metadata = {
    'name': 'Smart Suggestions',
    'icon': 'lightbulb',
    'category': 'Study',
    'url_prefix': '/api/suggestions',
    'enabled': True
}

from .routes import api  # noqa: E402,F401
