import datetime
import itertools

import pytest

from studyflow_app import create_app, db
from studyflow_app.config import Config
from studyflow_app.core.error_handlers import DataAccessError, NotFoundError
from studyflow_app.core.repository import StudyRepository, TaskRecord
from studyflow_app.modules.review_session.services.session_registry import registry
from studyflow_app.modules.srs.schemas import Card, ReviewState

UTC = datetime.timezone.utc


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    LOG_TO_FILE = False
    SYSTEM_TIMEZONE = 'UTC'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
    registry.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def login_client(client, user_id):
    with client.session_transaction() as session:
        session['_user_id'] = str(user_id)
        session['_fresh'] = True


def make_card(card_id, next_review, deck_id=1, deck_name='Deck', user_id=1,
              ease_factor=2.5, interval=1, repetitions=0, front=None, back=None):
    return Card(
        card_id=card_id,
        user_id=user_id,
        deck_id=deck_id,
        deck_name=deck_name,
        front=front or f'front {card_id}',
        back=back or f'back {card_id}',
        state=ReviewState(
            ease_factor=ease_factor,
            interval=interval,
            repetitions=repetitions,
            next_review=next_review,
        ),
    )


class InMemoryStudyRepository(StudyRepository):
    """Dict-backed repository with switches for failure injection."""

    def __init__(self, cards=None, tasks=None):
        self.cards = {card.card_id: card for card in (cards or [])}
        self.tasks = list(tasks or [])
        self.review_logs = []
        self.saved_states = []
        self._task_ids = itertools.count(1000)
        self.fail_loads = False
        self.fail_saves = False
        self.fail_logs = False
        self.fail_tasks = False
        self.timezones = {}

    def _check(self, flag, operation):
        if flag:
            raise DataAccessError(f'store unavailable during {operation}', operation=operation)

    def load_cards_for_user(self, user_id):
        self._check(self.fail_loads, 'load_cards_for_user')
        return [card for card in self.cards.values() if card.user_id == user_id]

    def load_cards_for_deck(self, deck_id, user_id=None):
        self._check(self.fail_loads, 'load_cards_for_deck')
        return [
            card for card in self.cards.values()
            if card.deck_id == deck_id and (user_id is None or card.user_id == user_id)
        ]

    def load_card(self, card_id, user_id):
        self._check(self.fail_loads, 'load_card')
        card = self.cards.get(card_id)
        if card is None or card.user_id != user_id:
            raise NotFoundError(f'Flashcard {card_id} not found', resource='flashcard')
        return card

    def save_review_state(self, card_id, state):
        self._check(self.fail_saves, 'save_review_state')
        self.cards[card_id] = self.cards[card_id].with_state(state)
        self.saved_states.append((card_id, state))

    def append_review_log(self, card_id, user_id, quality, review_time):
        self._check(self.fail_logs, 'append_review_log')
        self.review_logs.append((card_id, user_id, quality, review_time))

    def load_pending_tasks(self, user_id, task_filter):
        self._check(self.fail_tasks, 'load_pending_tasks')
        selected = []
        for task in self.tasks:
            if task.user_id != user_id or task.status not in task_filter.statuses:
                continue
            if task_filter.priorities and task.priority not in task_filter.priorities:
                continue
            if task_filter.due_from is not None and (task.due_date is None or task.due_date < task_filter.due_from):
                continue
            if task_filter.due_before is not None and (task.due_date is None or task.due_date >= task_filter.due_before):
                continue
            selected.append(task)
        return selected

    def create_task(self, user_id, draft):
        self._check(self.fail_tasks, 'create_task')
        task = TaskRecord(
            task_id=next(self._task_ids),
            user_id=user_id,
            title=draft.title,
            description=draft.description,
            task_type=draft.task_type,
            priority=draft.priority,
            status='pending',
            due_date=draft.due_date,
            estimated_duration=draft.estimated_duration,
            linked_type=draft.linked_type,
            linked_id=draft.linked_id,
            tags=list(draft.tags),
            notes=draft.notes,
        )
        self.tasks.append(task)
        return task

    def load_user_timezone(self, user_id):
        self._check(self.fail_loads, 'load_user_timezone')
        return self.timezones.get(user_id)


def make_task(task_id, due_date, priority='medium', status='pending', user_id=1,
              title=None, estimated_duration=None):
    return TaskRecord(
        task_id=task_id,
        user_id=user_id,
        title=title or f'Task {task_id}',
        priority=priority,
        status=status,
        due_date=due_date,
        estimated_duration=estimated_duration,
    )


def fixed_clock(now):
    """Clock that ignores the timezone name and always returns ``now``."""
    return lambda _tz_name=None: now


@pytest.fixture
def memory_repo():
    return InMemoryStudyRepository()
