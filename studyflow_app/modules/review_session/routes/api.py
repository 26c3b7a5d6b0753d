from flask import request
from flask_login import login_required, current_user

from studyflow_app.core.error_handlers import ValidationError
from studyflow_app.core.results import json_result
from .. import review_session_bp
from ..schemas import Adjudicate, AnswerCard, ChooseOption, Commit, Flip, MatchPair, SubmitTyped
from ..services.session_registry import ReviewSessionService


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _answer_event(data: dict):
    """Map an answer payload to its event: {grade} | {choice} | {typed} | {match}."""
    if 'grade' in data:
        grade = data['grade']
        if grade not in ('correct', 'wrong'):
            raise ValidationError("grade must be 'correct' or 'wrong'", errors={'grade': grade})
        return AnswerCard(correct=grade == 'correct')
    if 'choice' in data:
        return ChooseOption(option=str(data['choice']))
    if 'typed' in data:
        return SubmitTyped(text=str(data['typed'] or ''))
    if 'match' in data:
        match = data['match'] if isinstance(data['match'], dict) else {}
        card_id, right_card_id = match.get('card_id'), match.get('right_card_id')
        if not isinstance(card_id, int) or not isinstance(right_card_id, int):
            raise ValidationError('match needs card_id and right_card_id', errors={'match': match})
        return MatchPair(card_id=card_id, right_card_id=right_card_id)
    raise ValidationError('Answer payload needs one of grade, choice, typed or match')


@review_session_bp.route('/start', methods=['POST'])
@login_required
def start_session():
    """Input: {"deck_id": int, "stages": [str]?, "shuffle": bool?}"""
    data = _json_body()
    deck_id = data.get('deck_id')
    if isinstance(deck_id, bool) or not isinstance(deck_id, int):
        raise ValidationError('deck_id is required', errors={'deck_id': deck_id})

    result = ReviewSessionService().start(
        deck_id,
        stages=data.get('stages'),
        shuffle=bool(data.get('shuffle', False)),
        user_id=current_user.user_id,
    )
    return json_result(result, lambda session: session.snapshot())


@review_session_bp.route('/state', methods=['GET'])
@login_required
def session_state():
    result = ReviewSessionService().current(current_user.user_id)
    return json_result(result, lambda session: session.snapshot())


@review_session_bp.route('/flip', methods=['POST'])
@login_required
def flip_card():
    return json_result(ReviewSessionService().dispatch(Flip(), current_user.user_id))


@review_session_bp.route('/answer', methods=['POST'])
@login_required
def answer_card():
    event = _answer_event(_json_body())
    return json_result(ReviewSessionService().dispatch(event, current_user.user_id))


@review_session_bp.route('/adjudicate', methods=['POST'])
@login_required
def adjudicate_answer():
    """Input: {"accepted": bool}"""
    data = _json_body()
    if not isinstance(data.get('accepted'), bool):
        raise ValidationError('accepted must be a boolean', errors={'accepted': data.get('accepted')})
    return json_result(ReviewSessionService().dispatch(Adjudicate(accepted=data['accepted']), current_user.user_id))


@review_session_bp.route('/commit', methods=['POST'])
@login_required
def commit_answer():
    return json_result(ReviewSessionService().dispatch(Commit(), current_user.user_id))


@review_session_bp.route('/cancel', methods=['POST'])
@login_required
def cancel_session():
    return json_result(ReviewSessionService().cancel(current_user.user_id))
