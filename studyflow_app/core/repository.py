# File: studyflow_app/core/repository.py
"""
Study Repository
================
Data-access contract consumed by the scheduling, classification and
suggestion services. Services only talk to this interface; the
SQLAlchemy implementation below is the one the app wires in.

* **Pure data in / data out** - rows are converted to plain dataclasses,
  no ORM objects leak into the engine.
* **Failures are DataAccessError** - any store failure is wrapped with
  its original message after the session is rolled back.
"""

from __future__ import annotations

import datetime
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..db_instance import db
from ..utils.time_utils import ensure_aware, to_utc
from .error_handlers import DataAccessError, NotFoundError

logger = logging.getLogger(__name__)


# ── Task DTOs ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class TaskFilter:
    """Selection for ``load_pending_tasks``. Bounds are half-open: [due_from, due_before)."""

    statuses: Sequence[str] = ('pending',)
    priorities: Optional[Sequence[str]] = None
    due_from: Optional[datetime.datetime] = None
    due_before: Optional[datetime.datetime] = None


@dataclass(frozen=True)
class TaskRecord:
    task_id: int
    user_id: int
    title: str
    priority: str
    status: str
    task_type: str = 'quick_task'
    description: Optional[str] = None
    due_date: Optional[datetime.datetime] = None
    estimated_duration: Optional[int] = None
    linked_type: str = 'none'
    linked_id: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'task_id': self.task_id,
            'title': self.title,
            'description': self.description,
            'task_type': self.task_type,
            'priority': self.priority,
            'status': self.status,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'estimated_duration': self.estimated_duration,
            'linked_type': self.linked_type,
            'linked_id': self.linked_id,
            'tags': list(self.tags),
            'notes': self.notes,
        }


@dataclass(frozen=True)
class TaskDraft:
    """Everything needed to create a task; built when a suggestion is accepted."""

    title: str
    task_type: str = 'quick_task'
    priority: str = 'medium'
    description: Optional[str] = None
    due_date: Optional[datetime.datetime] = None
    estimated_duration: Optional[int] = None
    linked_type: str = 'none'
    linked_id: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None


# ── Contract ────────────────────────────────────────────────────────


class StudyRepository(ABC):
    """Data-access operations required by the study engine."""

    @abstractmethod
    def load_cards_for_user(self, user_id: int) -> list:
        """All cards owned by the user, each carrying its ReviewState."""

    @abstractmethod
    def load_cards_for_deck(self, deck_id: int, user_id: Optional[int] = None) -> list:
        """Cards of one deck, optionally restricted to an owner."""

    @abstractmethod
    def load_card(self, card_id: int, user_id: int):
        """One card owned by the user. Raises NotFoundError when missing."""

    @abstractmethod
    def save_review_state(self, card_id: int, state) -> None:
        """Persist the state computed by the scheduler."""

    @abstractmethod
    def append_review_log(self, card_id: int, user_id: int, quality: int,
                          review_time: datetime.datetime) -> None:
        """Append a review log entry. Callers treat failures as non-fatal."""

    @abstractmethod
    def load_pending_tasks(self, user_id: int, task_filter: TaskFilter) -> List[TaskRecord]:
        """Tasks matching the filter, unordered."""

    @abstractmethod
    def create_task(self, user_id: int, draft: TaskDraft) -> TaskRecord:
        """Persist a new task and return it with its id."""

    @abstractmethod
    def load_user_timezone(self, user_id: int) -> Optional[str]:
        """The user's timezone name, or None for an unknown user."""


# ── SQLAlchemy implementation ───────────────────────────────────────


class SqlAlchemyStudyRepository(StudyRepository):
    """StudyRepository over the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def _fail(self, exc: SQLAlchemyError, operation: str) -> DataAccessError:
        self.session.rollback()
        logger.error(f"Data access failed during {operation}: {exc}")
        return DataAccessError.wrap(exc, operation)

    @staticmethod
    def _to_card(row):
        from ..modules.srs.schemas import Card, ReviewState

        return Card(
            card_id=row.card_id,
            user_id=row.user_id,
            deck_id=row.deck_id,
            deck_name=row.deck.name if row.deck is not None else None,
            front=row.front,
            back=row.back,
            state=ReviewState(
                ease_factor=row.ease_factor,
                interval=row.interval,
                repetitions=row.repetitions,
                next_review=ensure_aware(row.next_review),
            ),
        )

    @staticmethod
    def _to_task(row) -> TaskRecord:
        return TaskRecord(
            task_id=row.task_id,
            user_id=row.user_id,
            title=row.title,
            description=row.description,
            task_type=row.task_type,
            priority=row.priority,
            status=row.status,
            due_date=ensure_aware(row.due_date),
            estimated_duration=row.estimated_duration,
            linked_type=row.linked_type or 'none',
            linked_id=row.linked_id,
            tags=list(row.tags or []),
            notes=row.notes,
        )

    def load_cards_for_user(self, user_id: int) -> list:
        from ..models import Flashcard

        try:
            rows = Flashcard.query.filter_by(user_id=user_id).order_by(Flashcard.card_id).all()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'load_cards_for_user') from exc
        return [self._to_card(row) for row in rows]

    def load_cards_for_deck(self, deck_id: int, user_id: Optional[int] = None) -> list:
        from ..models import Flashcard

        try:
            query = Flashcard.query.filter_by(deck_id=deck_id)
            if user_id is not None:
                query = query.filter_by(user_id=user_id)
            rows = query.order_by(Flashcard.card_id).all()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'load_cards_for_deck') from exc
        return [self._to_card(row) for row in rows]

    def load_card(self, card_id: int, user_id: int):
        from ..models import Flashcard

        try:
            row = Flashcard.query.filter_by(card_id=card_id, user_id=user_id).first()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'load_card') from exc
        if row is None:
            raise NotFoundError(f'Flashcard {card_id} not found', resource='flashcard')
        return self._to_card(row)

    def save_review_state(self, card_id: int, state) -> None:
        from ..models import Flashcard

        try:
            row = self.session.get(Flashcard, card_id)
            if row is None:
                raise NotFoundError(f'Flashcard {card_id} not found', resource='flashcard')
            row.ease_factor = state.ease_factor
            row.interval = state.interval
            row.repetitions = state.repetitions
            row.next_review = to_utc(state.next_review)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'save_review_state') from exc

    def append_review_log(self, card_id: int, user_id: int, quality: int,
                          review_time: datetime.datetime) -> None:
        from ..models import ReviewLog

        try:
            self.session.add(ReviewLog(
                card_id=card_id,
                user_id=user_id,
                quality=quality,
                review_time=to_utc(review_time),
            ))
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'append_review_log') from exc

    def load_pending_tasks(self, user_id: int, task_filter: TaskFilter) -> List[TaskRecord]:
        from ..models import Task

        try:
            query = Task.query.filter(Task.user_id == user_id)
            if task_filter.statuses:
                query = query.filter(Task.status.in_(list(task_filter.statuses)))
            if task_filter.priorities:
                query = query.filter(Task.priority.in_(list(task_filter.priorities)))
            if task_filter.due_from is not None:
                query = query.filter(Task.due_date >= to_utc(task_filter.due_from))
            if task_filter.due_before is not None:
                query = query.filter(Task.due_date < to_utc(task_filter.due_before))
            rows = query.order_by(Task.task_id).all()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'load_pending_tasks') from exc
        return [self._to_task(row) for row in rows]

    def create_task(self, user_id: int, draft: TaskDraft) -> TaskRecord:
        from ..models import Task

        try:
            row = Task(
                user_id=user_id,
                title=draft.title,
                description=draft.description,
                task_type=draft.task_type,
                priority=draft.priority,
                status=Task.STATUS_PENDING,
                due_date=to_utc(draft.due_date),
                estimated_duration=draft.estimated_duration,
                linked_type=draft.linked_type,
                linked_id=draft.linked_id,
                tags=list(draft.tags),
                notes=draft.notes,
            )
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'create_task') from exc
        return self._to_task(row)

    def load_user_timezone(self, user_id: int) -> Optional[str]:
        from ..models import User

        try:
            user = self.session.get(User, user_id)
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'load_user_timezone') from exc
        return user.timezone if user is not None else None


def get_repository() -> StudyRepository:
    """Repository registered on the current app, SQLAlchemy by default."""
    from flask import current_app, has_app_context

    if has_app_context():
        repository = current_app.extensions.get('study_repository')
        if repository is not None:
            return repository
    return SqlAlchemyStudyRepository()
