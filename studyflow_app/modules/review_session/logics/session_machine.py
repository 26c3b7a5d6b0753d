"""
Review Session - explicit state machine for a guided practice drill.

States: Idle -> Active(stage, working deck, card index) -> Complete
                                  \\-> Cancelled

Every change goes through ``dispatch(event)``. Answering only reveals
feedback; ``Commit`` applies it:
- correct: the card leaves the working deck
- wrong:   the card moves to the end of the working deck
- empty working deck: the next stage starts from the full card set
A round ends once every card in the working deck at its start has been
answered; the next round starts over the cards still left.

The drill never touches persisted scheduling state.
"""

import logging
import random
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

from studyflow_app.core.error_handlers import SessionStateError, ValidationError
from ..schemas import (
    Active,
    Adjudicate,
    AnswerCard,
    AnswerGrade,
    Cancel,
    Cancelled,
    CardResult,
    ChooseOption,
    Commit,
    Complete,
    DrillCard,
    Feedback,
    Flip,
    Idle,
    MatchPair,
    SessionSummary,
    Stage,
    StartSession,
    SubmitTyped,
    parse_stages,
)
from . import matching_logic, mcq_logic, typing_logic

logger = logging.getLogger(__name__)


class ReviewSession:
    """A single user's drill over a fixed card set."""

    def __init__(self, rng: Optional[random.Random] = None,
                 close_threshold: float = typing_logic.DEFAULT_CLOSE_THRESHOLD):
        self.rng = rng or random.Random()
        self.close_threshold = close_threshold
        self.state = Idle()
        self._reset_bookkeeping()

    def _reset_bookkeeping(self) -> None:
        self.cards: Dict[int, DrillCard] = {}
        self.card_order: Tuple[int, ...] = ()
        self.stages: List[Stage] = []
        self.shuffle = False
        self.results: Dict[Tuple[int, Stage], CardResult] = {}
        self.correct_count = 0
        self.close_count = 0
        self.wrong_count = 0
        self.missed_cards: Set[int] = set()
        self.round_count = 0
        self.stages_completed = 0
        # Cards in the working deck when the current round began, and commits since
        self._round_size = 0
        self._round_answers = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def phase(self):
        return self.state.phase

    def dispatch(self, event):
        """Apply one event and return the new state."""
        handler = self._HANDLERS.get(type(event))
        if handler is None:
            raise ValidationError(f'Unknown event {type(event).__name__}')
        self.state = handler(self, event)
        return self.state

    def result_for(self, card_id: int, stage: Stage) -> CardResult:
        return self.results.get((card_id, stage), CardResult.PENDING)

    def current_card(self) -> Optional[DrillCard]:
        if isinstance(self.state, Active):
            return self.cards[self.state.current_card_id]
        return None

    def summary(self) -> SessionSummary:
        return SessionSummary(
            correct=self.correct_count,
            close=self.close_count,
            wrong=self.wrong_count,
            cards_missed=len(self.missed_cards),
            rounds=self.round_count,
            stages_completed=self.stages_completed,
            total_cards=len(self.card_order),
        )

    def snapshot(self) -> dict:
        """JSON-ready view of the session for the current state."""
        data = self.state.to_dict()
        card = self.current_card()
        if card is not None:
            data['current_card'] = {
                'card_id': card.card_id,
                'front': card.front,
                # The answer stays hidden until the card is flipped or answered
                'back': card.back if (self.state.flipped or self.state.feedback) else None,
            }
            data['round'] = self.round_count
            data['stages'] = [stage.value for stage in self.stages]
            data['progress'] = {
                'remaining': len(self.state.working_deck),
                'total': len(self.card_order),
            }
        return data

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_active(self, event_name: str) -> Active:
        if not isinstance(self.state, Active):
            raise SessionStateError(
                f'{event_name} is not allowed while the session is {self.state.phase.value}',
                state=self.state.phase.value,
            )
        return self.state

    def _require_answerable(self, event_name: str, stages: Sequence[Stage]) -> Active:
        state = self._require_active(event_name)
        if state.feedback is not None:
            raise SessionStateError(f'{event_name} before the previous answer was committed',
                                    state=state.phase.value)
        if state.stage not in stages:
            raise SessionStateError(
                f'{event_name} is not allowed in the {state.stage.value} stage',
                state=state.phase.value,
            )
        return state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _on_start(self, event: StartSession):
        if not isinstance(self.state, Idle):
            raise SessionStateError('Session already started', state=self.state.phase.value)

        cards = list(event.cards)
        if not cards:
            raise ValidationError('A review session needs at least one card', errors={'cards': 'empty'})
        card_ids = [card.card_id for card in cards]
        if len(set(card_ids)) != len(card_ids):
            raise ValidationError('Duplicate cards in session', errors={'cards': 'duplicate'})

        self.stages = parse_stages(list(event.stages))
        self.cards = {card.card_id: card for card in cards}
        self.card_order = tuple(card_ids)
        self.shuffle = bool(event.shuffle)
        self.results = {
            (card_id, stage): CardResult.PENDING for card_id in card_ids for stage in self.stages
        }
        self.round_count = 1

        logger.info(f"Review session started: {len(cards)} cards, stages={[s.value for s in self.stages]}")
        return self._enter_stage(0)

    def _enter_stage(self, stage_index: int) -> Active:
        deck = list(self.card_order)
        if self.shuffle:
            self.rng.shuffle(deck)
        stage = self.stages[stage_index]
        self._begin_round(len(deck))
        state = Active(stage_index=stage_index, stage=stage, working_deck=tuple(deck))
        if stage == Stage.MATCHING:
            state = replace(state, board=self._board_for(state.working_deck))
        return self._present(state)

    def _present(self, state: Active) -> Active:
        """Reset per-card transient state for the card now at ``card_index``."""
        choices: Tuple[str, ...] = ()
        if state.stage == Stage.MULTIPLE_CHOICE:
            card = self.cards[state.current_card_id]
            pool = [self.cards[card_id].back for card_id in self.card_order if card_id != card.card_id]
            choices = tuple(mcq_logic.build_choices(card.back, pool, self.rng))
        return replace(state, flipped=False, feedback=None, choices=choices)

    def _board_for(self, deck: Sequence[int]):
        return matching_logic.build_board([self.cards[card_id] for card_id in deck], self.rng)

    def _on_flip(self, event: Flip):
        state = self._require_answerable('flip', (Stage.FLIP,))
        return replace(state, flipped=not state.flipped)

    def _reveal(self, state: Active, card_id: int, grade: AnswerGrade, given: Optional[str]) -> Active:
        if grade == AnswerGrade.CORRECT:
            self.correct_count += 1
        elif grade == AnswerGrade.CLOSE:
            self.close_count += 1
        else:
            self.wrong_count += 1
        feedback = Feedback(card_id=card_id, grade=grade, expected=self.cards[card_id].back, given=given)
        return replace(state, feedback=feedback, flipped=True)

    def _on_answer(self, event: AnswerCard):
        state = self._require_answerable('answer', (Stage.FLIP, Stage.MATCHING))
        if state.stage == Stage.FLIP and not state.flipped:
            raise SessionStateError('Flip the card before grading it', state=state.phase.value)
        grade = AnswerGrade.CORRECT if event.correct else AnswerGrade.WRONG
        return self._reveal(state, state.current_card_id, grade, None)

    def _on_choose(self, event: ChooseOption):
        state = self._require_answerable('choose', (Stage.MULTIPLE_CHOICE,))
        if event.option not in state.choices:
            raise ValidationError('Option is not one of the presented choices', errors={'option': event.option})
        card = self.cards[state.current_card_id]
        correct = mcq_logic.is_correct_choice(event.option, card.back)
        grade = AnswerGrade.CORRECT if correct else AnswerGrade.WRONG
        return self._reveal(state, card.card_id, grade, event.option)

    def _on_submit_typed(self, event: SubmitTyped):
        state = self._require_answerable('submit_typed', (Stage.TYPING,))
        card = self.cards[state.current_card_id]
        grade = typing_logic.evaluate_typed_answer(event.text, card.back, self.close_threshold)
        return self._reveal(state, card.card_id, grade, event.text)

    def _on_match(self, event: MatchPair):
        state = self._require_answerable('match', (Stage.MATCHING,))
        for card_id in (event.card_id, event.right_card_id):
            if card_id not in state.working_deck:
                raise ValidationError(f'Card {card_id} is not on the board', errors={'card_id': card_id})
        correct = matching_logic.check_match(self.cards, event.card_id, event.right_card_id)
        grade = AnswerGrade.CORRECT if correct else AnswerGrade.WRONG
        return self._reveal(state, event.card_id, grade, self.cards[event.right_card_id].back)

    def _on_adjudicate(self, event: Adjudicate):
        state = self._require_active('adjudicate')
        if state.feedback is None or not state.feedback.needs_adjudication:
            raise SessionStateError('Only a close answer awaiting a decision can be adjudicated',
                                    state=state.phase.value)
        return replace(state, feedback=replace(state.feedback, accepted=bool(event.accepted)))

    def _on_commit(self, event: Commit):
        state = self._require_active('commit')
        feedback = state.feedback
        if feedback is None:
            raise SessionStateError('Nothing to commit', state=state.phase.value)
        if feedback.needs_adjudication:
            raise SessionStateError('Close answer must be adjudicated before commit', state=state.phase.value)

        deck = list(state.working_deck)
        position = deck.index(feedback.card_id)
        card_index = state.card_index

        if feedback.is_correct:
            self.results[(feedback.card_id, state.stage)] = CardResult.CORRECT
            deck.pop(position)
            if not deck:
                return self._advance_stage(state)
            if position < card_index:
                card_index -= 1
        else:
            self.results[(feedback.card_id, state.stage)] = CardResult.WRONG
            self.missed_cards.add(feedback.card_id)
            deck.append(deck.pop(position))
            if position < card_index:
                card_index -= 1

        if card_index >= len(deck):
            card_index = 0

        self._round_answers += 1
        if self._round_answers >= self._round_size:
            # Every card of the round has been answered once
            self.round_count += 1
            self._begin_round(len(deck))

        next_state = replace(state, working_deck=tuple(deck), card_index=card_index)
        if state.stage == Stage.MATCHING:
            next_state = replace(next_state, board=self._board_for(next_state.working_deck))
        return self._present(next_state)

    def _advance_stage(self, state: Active):
        self.stages_completed += 1
        next_index = state.stage_index + 1
        if next_index >= len(self.stages):
            summary = self.summary()
            logger.info(f"Review session complete: {summary.to_dict()}")
            self._discard()
            return Complete(summary=summary)

        self.round_count += 1
        return self._enter_stage(next_index)

    def _begin_round(self, size: int) -> None:
        self._round_size = size
        self._round_answers = 0

    def _on_cancel(self, event: Cancel):
        self._require_active('cancel')
        logger.info("Review session cancelled")
        self._discard()
        return Cancelled()

    def _discard(self) -> None:
        self._reset_bookkeeping()

    _HANDLERS = {
        StartSession: _on_start,
        Flip: _on_flip,
        AnswerCard: _on_answer,
        ChooseOption: _on_choose,
        SubmitTyped: _on_submit_typed,
        MatchPair: _on_match,
        Adjudicate: _on_adjudicate,
        Commit: _on_commit,
        Cancel: _on_cancel,
    }
