from flask import request
from flask_login import login_required, current_user

from studyflow_app.core.error_handlers import ValidationError
from studyflow_app.core.repository import get_repository
from studyflow_app.core.results import json_result
from studyflow_app.utils.time_utils import format_due_time
from .. import srs_bp
from ..services.srs_service import SrsService


def _service() -> SrsService:
    return SrsService(repository=get_repository())


def _serialize_reviews(reviews):
    return [review.to_dict() for review in reviews]


@srs_bp.route('/due-cards', methods=['GET'])
@login_required
def due_cards():
    """Cards due now with a short due label, earliest first."""
    service = _service()
    result = service.get_due_flashcards(current_user.user_id)
    now = service.now_for(current_user.user_id)

    def serialize(cards):
        payload = []
        for card in cards:
            item = card.to_dict()
            item['due_label'] = format_due_time(card.state.next_review, now)
            payload.append(item)
        return payload

    return json_result(result, serialize)


@srs_bp.route('/due-reviews', methods=['GET'])
@login_required
def due_reviews():
    return json_result(_service().get_due_reviews(current_user.user_id), _serialize_reviews)


@srs_bp.route('/overdue-reviews', methods=['GET'])
@login_required
def overdue_reviews():
    return json_result(_service().get_overdue_reviews(current_user.user_id), _serialize_reviews)


@srs_bp.route('/today-reviews', methods=['GET'])
@login_required
def today_reviews():
    return json_result(_service().get_today_reviews(current_user.user_id), _serialize_reviews)


@srs_bp.route('/decks/<int:deck_id>/stats', methods=['GET'])
@login_required
def deck_stats(deck_id):
    return json_result(_service().get_deck_stats(deck_id, current_user.user_id), lambda stats: stats.to_dict())


@srs_bp.route('/cards/<int:card_id>/study', methods=['POST'])
@login_required
def study_card(card_id):
    """
    Apply a quality rating.
    Input: {"quality": int (1-5)}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'quality' not in data:
        raise ValidationError('quality is required', errors={'quality': 'missing'})

    result = _service().study_flashcard(card_id, data['quality'], current_user.user_id)
    return json_result(result, lambda card: card.to_dict())
