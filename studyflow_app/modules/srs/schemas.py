# File: studyflow_app/modules/srs/schemas.py
import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from studyflow_app.core.error_handlers import MalformedCardStateError


class SrsConstants:
    """Constants for the SM-2 scheduler."""
    DEFAULT_EASE_FACTOR = 2.5
    MIN_EASE_FACTOR = 1.3
    FAILURE_EASE_PENALTY = 0.2
    FIRST_INTERVAL_DAYS = 1
    SECOND_INTERVAL_DAYS = 6
    PASSING_QUALITY = 3
    MIN_QUALITY = 1
    MAX_QUALITY = 5


class Priority(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}


@dataclass(frozen=True)
class ReviewState:
    """Per-card scheduling state."""
    ease_factor: float
    interval: int
    repetitions: int
    next_review: datetime.datetime

    @classmethod
    def initial(cls, now: datetime.datetime) -> 'ReviewState':
        return cls(
            ease_factor=SrsConstants.DEFAULT_EASE_FACTOR,
            interval=SrsConstants.FIRST_INTERVAL_DAYS,
            repetitions=0,
            next_review=now,
        )

    def validate(self, card_id: Any = None) -> 'ReviewState':
        """Raise MalformedCardStateError when the state breaks its invariants."""
        if self.next_review is None:
            raise MalformedCardStateError('Review state has no next_review', card_id)
        if self.ease_factor is None or self.ease_factor < SrsConstants.MIN_EASE_FACTOR:
            raise MalformedCardStateError(
                f'Ease factor {self.ease_factor!r} is below {SrsConstants.MIN_EASE_FACTOR}', card_id
            )
        if self.interval is None or self.interval < 1:
            raise MalformedCardStateError(f'Interval {self.interval!r} must be at least 1 day', card_id)
        if self.repetitions is None or self.repetitions < 0:
            raise MalformedCardStateError(f'Repetitions {self.repetitions!r} must not be negative', card_id)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ease_factor': self.ease_factor,
            'interval': self.interval,
            'repetitions': self.repetitions,
            'next_review': self.next_review.isoformat() if self.next_review else None,
        }


@dataclass(frozen=True)
class Card:
    """A flashcard as seen by the scheduling engine."""
    card_id: int
    user_id: int
    front: str
    back: str
    state: ReviewState
    deck_id: Optional[int] = None
    deck_name: Optional[str] = None

    def with_state(self, state: ReviewState) -> 'Card':
        return replace(self, state=state)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'card_id': self.card_id,
            'deck_id': self.deck_id,
            'deck_name': self.deck_name,
            'front': self.front,
            'back': self.back,
        }
        data.update(self.state.to_dict())
        return data


@dataclass(frozen=True)
class ReviewRecord:
    """Append-only review log entry."""
    card_id: int
    quality: int
    review_time: datetime.datetime


@dataclass(frozen=True)
class DueReview:
    """Per-deck aggregate of cards falling in one due window."""
    deck_id: int
    deck_name: str
    due_count: int
    total_cards: int
    priority: Priority

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deck_id': self.deck_id,
            'deck_name': self.deck_name,
            'due_count': self.due_count,
            'total_cards': self.total_cards,
            'priority': self.priority.value,
        }


@dataclass(frozen=True)
class DueClassification:
    """The three due windows computed from one card load."""
    due_now: List[DueReview] = field(default_factory=list)
    overdue: List[DueReview] = field(default_factory=list)
    due_today: List[DueReview] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'due_now': [review.to_dict() for review in self.due_now],
            'overdue': [review.to_dict() for review in self.overdue],
            'due_today': [review.to_dict() for review in self.due_today],
        }


@dataclass(frozen=True)
class DeckStats:
    deck_id: int
    total_cards: int
    due_cards: int
    new_cards: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deck_id': self.deck_id,
            'total_cards': self.total_cards,
            'due_cards': self.due_cards,
            'new_cards': self.new_cards,
        }
