from flask import request
from flask_login import login_required, current_user

from studyflow_app.core.error_handlers import ValidationError
from studyflow_app.core.results import json_result
from .. import suggestions_bp
from ..logics.ranker import format_suggestion_reason
from ..schemas import SmartSuggestion
from ..services.suggestion_service import SuggestionService


def _serialize_suggestions(suggestions):
    payload = []
    for suggestion in suggestions:
        item = suggestion.to_dict()
        item['display_reason'] = format_suggestion_reason(suggestion.reason)
        payload.append(item)
    return payload


@suggestions_bp.route('/', methods=['GET'])
@login_required
def list_suggestions():
    """Ranked suggestions. Query: ?limit=n (default SUGGESTION_LIMIT)."""
    limit = request.args.get('limit')
    if limit is not None:
        try:
            limit = int(limit)
        except ValueError:
            raise ValidationError('limit must be an integer', errors={'limit': limit})

    result = SuggestionService().get_next_best_tasks(limit=limit, user_id=current_user.user_id)
    return json_result(result, _serialize_suggestions)


@suggestions_bp.route('/accept', methods=['POST'])
@login_required
def accept_suggestion():
    """Input: a suggestion as returned by GET /."""
    suggestion = SmartSuggestion.from_dict(request.get_json(silent=True))
    result = SuggestionService().accept_suggestion(suggestion, user_id=current_user.user_id)
    return json_result(result, lambda task: task.to_dict())


@suggestions_bp.route('/study-session', methods=['POST'])
@login_required
def create_study_session():
    """Input: {"deck_id": int}"""
    data = request.get_json(silent=True)
    deck_id = data.get('deck_id') if isinstance(data, dict) else None
    if isinstance(deck_id, bool) or not isinstance(deck_id, int):
        raise ValidationError('deck_id is required', errors={'deck_id': deck_id})

    result = SuggestionService().create_study_session(deck_id, user_id=current_user.user_id)
    return json_result(result, lambda task: task.to_dict())
