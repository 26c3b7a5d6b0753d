import datetime

import pytest

from conftest import InMemoryStudyRepository, fixed_clock, make_card, make_task
from studyflow_app.core.error_handlers import DataAccessError, NotAuthenticatedError, NotFoundError, ValidationError
from studyflow_app.modules.srs.schemas import Priority
from studyflow_app.modules.suggestions.schemas import SmartSuggestion
from studyflow_app.modules.suggestions.services.suggestion_service import SuggestionService
from studyflow_app.modules.suggestions.signals import suggestion_accepted

UTC = datetime.timezone.utc
NOW = datetime.datetime(2026, 3, 10, 14, 0, tzinfo=UTC)
HOUR = datetime.timedelta(hours=1)
DAY = datetime.timedelta(days=1)


def build_service(cards=(), tasks=(), now=NOW):
    repo = InMemoryStudyRepository(cards=list(cards), tasks=list(tasks))
    return SuggestionService(repository=repo, clock=fixed_clock(now)), repo


class TestGetNextBestTasks:

    def test_all_sources(self, app):
        cards = [
            make_card(1, NOW - 3 * DAY, deck_id=1, deck_name='Biology'),
            make_card(2, NOW + 5 * DAY, deck_id=1, deck_name='Biology'),
            make_card(3, NOW.replace(hour=20), deck_id=2, deck_name='French'),
            make_card(4, NOW + 5 * DAY, deck_id=2, deck_name='French'),
            make_card(5, NOW + 5 * DAY, deck_id=2, deck_name='French'),
            make_card(6, NOW + 5 * DAY, deck_id=2, deck_name='French'),
        ]
        tasks = [
            make_task(10, NOW - 2 * HOUR),
            make_task(20, NOW + 3 * HOUR, priority='high'),
            make_task(30, NOW + 3 * HOUR, priority='low'),
        ]
        service, _ = build_service(cards, tasks)

        result = service.get_next_best_tasks(limit=10, user_id=1)

        assert result.error is None
        assert [s.id for s in result.data] == [
            'srs-overdue-1', 'overdue-task-10', 'high-priority-20', 'srs-today-2',
        ]
        assert result.data[3].priority == Priority.MEDIUM

    def test_default_limit_from_config(self, app):
        tasks = [make_task(i, NOW - i * HOUR) for i in range(1, 6)]
        service, _ = build_service(tasks=tasks)
        result = service.get_next_best_tasks(user_id=1)
        # at most three overdue tasks are considered, oldest first
        assert [s.id for s in result.data] == ['overdue-task-5', 'overdue-task-4', 'overdue-task-3']

    def test_fallback_when_nothing_due(self, app):
        service, _ = build_service(now=NOW.replace(hour=9))
        result = service.get_next_best_tasks(limit=3, user_id=1)
        assert [s.id for s in result.data] == ['general-study']
        assert result.data[0].priority == Priority.HIGH

    def test_invalid_limit_raises(self, app):
        service, _ = build_service()
        with pytest.raises(ValidationError):
            service.get_next_best_tasks(limit=0, user_id=1)

    def test_store_failure(self, app):
        service, repo = build_service()
        repo.fail_tasks = True
        result = service.get_next_best_tasks(user_id=1)
        assert isinstance(result.error, DataAccessError)

    def test_not_authenticated(self, app):
        service, _ = build_service()
        result = service.get_next_best_tasks()
        assert isinstance(result.error, NotAuthenticatedError)


class TestAcceptSuggestion:

    def test_srs_suggestion_becomes_study_session(self, app):
        cards = [make_card(1, NOW - 3 * DAY, deck_id=1, deck_name='Biology')]
        service, repo = build_service(cards)
        suggestion = service.get_next_best_tasks(limit=1, user_id=1).data[0]
        received = []

        def listener(sender, **kwargs):
            received.append(kwargs)

        suggestion_accepted.connect(listener)
        try:
            result = service.accept_suggestion(suggestion, user_id=1)
        finally:
            suggestion_accepted.disconnect(listener)

        task = result.data
        assert task.title == 'Review Biology'
        assert task.task_type == 'study_session'
        assert task.priority == 'high'
        assert task.linked_type == 'deck'
        assert task.linked_id == 1
        assert task.tags == ['srs', 'overdue', 'high-priority']
        assert task.notes == 'Smart suggestion: Overdue SRS reviews are critical for retention'
        assert received == [{'user_id': 1, 'suggestion_id': 'srs-overdue-1', 'task_id': task.task_id}]
        assert repo.tasks[-1] == task

    def test_task_suggestion_becomes_quick_task(self, app):
        service, _ = build_service(tasks=[make_task(10, NOW - HOUR)])
        suggestion = service.get_next_best_tasks(limit=1, user_id=1).data[0]
        task = service.accept_suggestion(suggestion, user_id=1).data
        assert task.task_type == 'quick_task'
        assert task.linked_type == 'none'
        assert task.linked_id is None

    def test_accept_round_trips_through_json(self, app):
        service, _ = build_service()
        suggestion = service.get_next_best_tasks(user_id=1).data[0]
        rebuilt = SmartSuggestion.from_dict(suggestion.to_dict())
        assert rebuilt == suggestion

    def test_rebuild_rejects_non_object_metadata(self, app):
        service, _ = build_service()
        payload = service.get_next_best_tasks(user_id=1).data[0].to_dict()
        payload['metadata'] = [1, 2]
        with pytest.raises(ValidationError):
            SmartSuggestion.from_dict(payload)

    def test_create_failure(self, app):
        service, repo = build_service()
        suggestion = service.get_next_best_tasks(user_id=1).data[0]
        repo.fail_tasks = True
        result = service.accept_suggestion(suggestion, user_id=1)
        assert isinstance(result.error, DataAccessError)


class TestCreateStudySession:

    def test_from_due_deck(self, app):
        cards = [
            make_card(1, NOW - HOUR, deck_id=3, deck_name='Chemistry'),
            make_card(2, NOW + DAY, deck_id=3, deck_name='Chemistry'),
            make_card(3, NOW + DAY, deck_id=3, deck_name='Chemistry'),
        ]
        service, _ = build_service(cards)

        task = service.create_study_session(3, user_id=1).data

        assert task.title == 'Review Chemistry'
        assert task.description == '1 cards due for review'
        assert task.priority == 'medium'
        assert task.estimated_duration == 15
        assert task.linked_type == 'deck'
        assert task.linked_id == 3

    def test_deck_without_due_cards(self, app):
        service, _ = build_service([make_card(1, NOW + DAY, deck_id=3)])
        result = service.create_study_session(3, user_id=1)
        assert isinstance(result.error, NotFoundError)
