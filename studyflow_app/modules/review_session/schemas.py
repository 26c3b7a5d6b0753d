# File: studyflow_app/modules/review_session/schemas.py
"""
Review session data: stages, results, the states of the session machine
and the events it accepts. Sessions live in memory only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from studyflow_app.core.error_handlers import ValidationError


class Stage(str, Enum):
    FLIP = 'flip'
    MULTIPLE_CHOICE = 'multiple_choice'
    TYPING = 'typing'
    MATCHING = 'matching'


class CardResult(str, Enum):
    PENDING = 'pending'
    CORRECT = 'correct'
    WRONG = 'wrong'


class AnswerGrade(str, Enum):
    CORRECT = 'correct'
    CLOSE = 'close'
    WRONG = 'wrong'


class SessionPhase(str, Enum):
    IDLE = 'idle'
    ACTIVE = 'active'
    COMPLETE = 'complete'
    CANCELLED = 'cancelled'


def parse_stages(values: Sequence[Any]) -> List[Stage]:
    """Ordered, non-empty, duplicate-free list of stages."""
    if isinstance(values, str):
        values = [value.strip() for value in values.split(',') if value.strip()]
    if not values:
        raise ValidationError('At least one stage is required', errors={'stages': 'empty'})

    stages = []
    for value in values:
        try:
            stage = Stage(value)
        except ValueError:
            raise ValidationError(f'Unknown stage {value!r}', errors={'stages': value})
        if stage in stages:
            raise ValidationError(f'Stage {stage.value!r} listed twice', errors={'stages': stage.value})
        stages.append(stage)
    return stages


@dataclass(frozen=True)
class DrillCard:
    card_id: int
    front: str
    back: str

    @classmethod
    def from_card(cls, card) -> 'DrillCard':
        return cls(card_id=card.card_id, front=card.front, back=card.back)

    def to_dict(self) -> Dict[str, Any]:
        return {'card_id': self.card_id, 'front': self.front, 'back': self.back}


@dataclass(frozen=True)
class MatchingBoard:
    left: List[Dict[str, Any]] = field(default_factory=list)
    right: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'left': list(self.left), 'right': list(self.right)}


@dataclass(frozen=True)
class Feedback:
    """Revealed result of an answer, waiting for commit."""
    card_id: int
    grade: AnswerGrade
    expected: str
    given: Optional[str] = None
    accepted: Optional[bool] = None

    @property
    def needs_adjudication(self) -> bool:
        return self.grade == AnswerGrade.CLOSE and self.accepted is None

    @property
    def is_correct(self) -> bool:
        if self.grade == AnswerGrade.CLOSE:
            return bool(self.accepted)
        return self.grade == AnswerGrade.CORRECT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'card_id': self.card_id,
            'grade': self.grade.value,
            'expected': self.expected,
            'given': self.given,
            'accepted': self.accepted,
            'needs_adjudication': self.needs_adjudication,
        }


@dataclass(frozen=True)
class SessionSummary:
    correct: int
    close: int
    wrong: int
    cards_missed: int
    rounds: int
    stages_completed: int
    total_cards: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'correct': self.correct,
            'close': self.close,
            'wrong': self.wrong,
            'cards_missed': self.cards_missed,
            'rounds': self.rounds,
            'stages_completed': self.stages_completed,
            'total_cards': self.total_cards,
        }


# ── States ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Idle:
    phase = SessionPhase.IDLE

    def to_dict(self) -> Dict[str, Any]:
        return {'phase': self.phase.value}


@dataclass(frozen=True)
class Active:
    """
    One stage in progress. ``working_deck`` holds the card ids still
    needing a correct answer in this stage.
    """
    stage_index: int
    stage: Stage
    working_deck: Tuple[int, ...]
    card_index: int = 0
    flipped: bool = False
    feedback: Optional[Feedback] = None
    choices: Tuple[str, ...] = ()
    board: Optional[MatchingBoard] = None

    phase = SessionPhase.ACTIVE

    @property
    def current_card_id(self) -> int:
        return self.working_deck[self.card_index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase.value,
            'stage': self.stage.value,
            'stage_index': self.stage_index,
            'working_deck': list(self.working_deck),
            'card_index': self.card_index,
            'current_card_id': self.current_card_id,
            'flipped': self.flipped,
            'feedback': self.feedback.to_dict() if self.feedback else None,
            'choices': list(self.choices),
            'board': self.board.to_dict() if self.board else None,
        }


@dataclass(frozen=True)
class Complete:
    summary: SessionSummary

    phase = SessionPhase.COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        return {'phase': self.phase.value, 'summary': self.summary.to_dict()}


@dataclass(frozen=True)
class Cancelled:
    phase = SessionPhase.CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        return {'phase': self.phase.value}


# ── Events ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StartSession:
    cards: Sequence[DrillCard]
    stages: Sequence[Stage]
    shuffle: bool = False


@dataclass(frozen=True)
class Flip:
    pass


@dataclass(frozen=True)
class AnswerCard:
    """Self-graded answer (flip and matching stages)."""
    correct: bool


@dataclass(frozen=True)
class ChooseOption:
    option: str


@dataclass(frozen=True)
class SubmitTyped:
    text: str


@dataclass(frozen=True)
class MatchPair:
    card_id: int
    right_card_id: int


@dataclass(frozen=True)
class Adjudicate:
    accepted: bool


@dataclass(frozen=True)
class Commit:
    pass


@dataclass(frozen=True)
class Cancel:
    pass
