import datetime
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from studyflow_app.core.error_handlers import DataAccessError, NotFoundError
from studyflow_app.core.repository import SqlAlchemyStudyRepository, TaskDraft, TaskFilter
from studyflow_app.models import Deck, Flashcard, ReviewLog, Task, User, db
from studyflow_app.modules.srs.schemas import ReviewState
from studyflow_app.modules.srs.services.srs_service import SrsService

UTC = datetime.timezone.utc
NOW = datetime.datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


@pytest.fixture
def seeded(app):
    user = User(username='alice', email='alice@example.com')
    user.set_password('password')
    db.session.add(user)
    db.session.commit()

    deck = Deck(user_id=user.user_id, name='Biology')
    db.session.add(deck)
    db.session.commit()

    card = Flashcard(user_id=user.user_id, deck_id=deck.deck_id, front='cell', back='unit of life',
                     next_review=NOW)
    loose = Flashcard(user_id=user.user_id, front='loose', back='no deck', next_review=NOW)
    db.session.add_all([card, loose])
    db.session.commit()
    return {'user_id': user.user_id, 'deck_id': deck.deck_id, 'card_id': card.card_id}


class TestCards:

    def test_load_cards_for_user(self, seeded):
        cards = SqlAlchemyStudyRepository().load_cards_for_user(seeded['user_id'])
        assert len(cards) == 2
        first = cards[0]
        assert first.deck_name == 'Biology'
        assert first.state.ease_factor == 2.5
        assert first.state.interval == 1
        assert first.state.repetitions == 0
        assert first.state.next_review == NOW
        assert first.state.next_review.tzinfo is not None
        assert cards[1].deck_id is None

    def test_load_cards_for_deck(self, seeded):
        cards = SqlAlchemyStudyRepository().load_cards_for_deck(seeded['deck_id'], seeded['user_id'])
        assert [card.card_id for card in cards] == [seeded['card_id']]

    def test_load_card_of_other_user(self, seeded):
        with pytest.raises(NotFoundError):
            SqlAlchemyStudyRepository().load_card(seeded['card_id'], seeded['user_id'] + 1)

    def test_save_and_reload_state(self, seeded):
        repo = SqlAlchemyStudyRepository()
        state = ReviewState(ease_factor=2.6, interval=6, repetitions=2,
                            next_review=NOW + datetime.timedelta(days=6))
        repo.save_review_state(seeded['card_id'], state)

        reloaded = repo.load_card(seeded['card_id'], seeded['user_id']).state
        assert reloaded == state

    def test_append_review_log(self, seeded):
        SqlAlchemyStudyRepository().append_review_log(seeded['card_id'], seeded['user_id'], 4, NOW)
        log = ReviewLog.query.one()
        assert log.quality == 4
        assert log.card_id == seeded['card_id']

    def test_store_error_is_wrapped(self, seeded):
        repo = SqlAlchemyStudyRepository()
        error = OperationalError('SELECT', {}, Exception('database is locked'))
        with mock.patch.object(Flashcard, 'query') as query:
            query.filter_by.side_effect = error
            with pytest.raises(DataAccessError) as excinfo:
                repo.load_cards_for_user(seeded['user_id'])
        assert 'database is locked' in excinfo.value.message
        assert excinfo.value.details == {'operation': 'load_cards_for_user'}


class TestTasks:

    def test_create_and_filter_tasks(self, seeded):
        repo = SqlAlchemyStudyRepository()
        user_id = seeded['user_id']
        created = repo.create_task(user_id, TaskDraft(
            title='Review Biology',
            task_type='study_session',
            priority='high',
            due_date=NOW + datetime.timedelta(hours=2),
            linked_type='deck',
            linked_id=seeded['deck_id'],
            tags=['srs'],
        ))
        db.session.add(Task(user_id=user_id, title='Done', priority='urgent', status='completed',
                            due_date=NOW))
        db.session.commit()

        assert created.task_id is not None
        assert created.tags == ['srs']

        window = TaskFilter(priorities=('high', 'urgent'), due_from=NOW,
                            due_before=NOW + datetime.timedelta(hours=24))
        tasks = repo.load_pending_tasks(user_id, window)
        assert [task.task_id for task in tasks] == [created.task_id]
        assert tasks[0].due_date == NOW + datetime.timedelta(hours=2)

        assert repo.load_pending_tasks(user_id, TaskFilter(due_before=NOW)) == []


class TestUserTimezone:

    def test_load_user_timezone(self, seeded):
        user = db.session.get(User, seeded['user_id'])
        user.timezone = 'Asia/Tokyo'
        db.session.commit()

        repo = SqlAlchemyStudyRepository()
        assert repo.load_user_timezone(seeded['user_id']) == 'Asia/Tokyo'
        assert repo.load_user_timezone(seeded['user_id'] + 100) is None

    def test_service_clock_outside_request(self, seeded):
        user = db.session.get(User, seeded['user_id'])
        user.timezone = 'Asia/Tokyo'
        db.session.commit()

        now = SrsService(repository=SqlAlchemyStudyRepository()).now_for(seeded['user_id'])

        assert now.tzinfo.zone == 'Asia/Tokyo'
