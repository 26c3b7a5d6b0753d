"""
Tests for the SRS service

Tests cover:
- Persisting a review and the best-effort review log
- card_reviewed signal emission
- ServiceResult failures for auth, missing cards and store errors
- Fail-fast on invalid quality and malformed state
"""

import datetime
from unittest import mock

import pytest
import pytz

from conftest import InMemoryStudyRepository, fixed_clock, make_card
from studyflow_app.core.error_handlers import (
    DataAccessError,
    InvalidQualityError,
    MalformedCardStateError,
    NotAuthenticatedError,
    NotFoundError,
)
from studyflow_app.modules.srs.interface import SrsInterface
from studyflow_app.modules.srs.schemas import Priority
from studyflow_app.modules.srs.services.srs_service import SrsService
from studyflow_app.modules.srs.signals import card_reviewed

UTC = datetime.timezone.utc
NOW = datetime.datetime(2026, 3, 10, 15, 0, tzinfo=UTC)
DAY = datetime.timedelta(days=1)


def service_with(cards, **repo_flags):
    repo = InMemoryStudyRepository(cards=cards)
    for flag, value in repo_flags.items():
        setattr(repo, flag, value)
    return SrsService(repository=repo, clock=fixed_clock(NOW)), repo


class TestStudyFlashcard:

    def test_persists_state_and_logs_review(self, app):
        service, repo = service_with([make_card(1, NOW - DAY)])

        result = service.study_flashcard(1, 5, user_id=1)

        assert result.error is None
        assert result.data.state.repetitions == 1
        assert result.data.state.next_review == NOW + DAY
        assert repo.cards[1].state == result.data.state
        assert repo.review_logs == [(1, 1, 5, NOW)]

    def test_emits_card_reviewed(self, app):
        service, _ = service_with([make_card(1, NOW)])
        received = []

        def listener(sender, **kwargs):
            received.append(kwargs)

        card_reviewed.connect(listener)
        try:
            service.study_flashcard(1, 2, user_id=1)
        finally:
            card_reviewed.disconnect(listener)

        assert len(received) == 1
        assert received[0]['card_id'] == 1
        assert received[0]['quality'] == 2
        assert received[0]['state']['repetitions'] == 0

    def test_log_failure_keeps_state(self, app):
        service, repo = service_with([make_card(1, NOW)], fail_logs=True)

        result = service.study_flashcard(1, 4, user_id=1)

        assert result.error is None
        assert repo.saved_states
        assert repo.review_logs == []

    def test_save_failure_is_returned(self, app):
        service, repo = service_with([make_card(1, NOW)], fail_saves=True)

        result = service.study_flashcard(1, 4, user_id=1)

        assert result.data is None
        assert isinstance(result.error, DataAccessError)
        assert 'store unavailable' in result.error.message
        assert repo.review_logs == []

    def test_missing_card_not_found(self, app):
        service, _ = service_with([make_card(1, NOW, user_id=2)])
        result = service.study_flashcard(1, 4, user_id=1)
        assert isinstance(result.error, NotFoundError)

    def test_not_authenticated(self, app):
        service, _ = service_with([make_card(1, NOW)])
        result = service.study_flashcard(1, 4)
        assert isinstance(result.error, NotAuthenticatedError)
        assert result.status_code == 401

    def test_invalid_quality_raises(self, app):
        service, repo = service_with([make_card(1, NOW)])
        with pytest.raises(InvalidQualityError):
            service.study_flashcard(1, 7, user_id=1)
        assert repo.saved_states == []

    def test_malformed_state_raises(self, app):
        service, _ = service_with([make_card(1, NOW, ease_factor=0.9)])
        with pytest.raises(MalformedCardStateError):
            service.study_flashcard(1, 4, user_id=1)


class TestDueQueries:

    def cards(self):
        return [
            make_card(1, NOW - 3 * DAY, deck_id=1, deck_name='Biology'),
            make_card(2, NOW - 1 * datetime.timedelta(hours=2), deck_id=1, deck_name='Biology'),
            make_card(3, NOW + 5 * DAY, deck_id=1, deck_name='Biology', repetitions=3),
            make_card(4, NOW.replace(hour=20), deck_id=2, deck_name='French'),
            make_card(5, NOW + 2 * DAY, deck_id=2, deck_name='French', repetitions=1),
        ]

    def test_due_flashcards(self, app):
        service, _ = service_with(self.cards())
        result = service.get_due_flashcards(user_id=1)
        assert [card.card_id for card in result.data] == [1, 2]

    def test_due_reviews(self, app):
        service, _ = service_with(self.cards())
        reviews = service.get_due_reviews(user_id=1).data
        assert len(reviews) == 1
        assert reviews[0].deck_name == 'Biology'
        assert reviews[0].due_count == 2
        assert reviews[0].priority == Priority.HIGH

    def test_overdue_reviews(self, app):
        service, _ = service_with(self.cards())
        reviews = service.get_overdue_reviews(user_id=1).data
        assert [(r.deck_id, r.due_count, r.priority) for r in reviews] == [(1, 1, Priority.HIGH)]

    def test_today_reviews(self, app):
        service, _ = service_with(self.cards())
        reviews = service.get_today_reviews(user_id=1).data
        assert [(r.deck_id, r.due_count) for r in reviews] == [(2, 1), (1, 1)]

    def test_classify(self, app):
        service, _ = service_with(self.cards())
        classification = service.classify(user_id=1).data
        assert len(classification.due_now) == 1
        assert len(classification.overdue) == 1
        assert len(classification.due_today) == 2

    def test_empty_is_not_an_error(self, app):
        service, _ = service_with([])
        result = service.get_due_reviews(user_id=1)
        assert result.error is None
        assert result.data == []

    def test_load_failure(self, app):
        service, _ = service_with(self.cards(), fail_loads=True)
        result = service.get_due_reviews(user_id=1)
        assert isinstance(result.error, DataAccessError)
        assert result.data is None

    def test_deck_stats(self, app):
        service, _ = service_with(self.cards())
        stats = service.get_deck_stats(1, user_id=1).data
        assert stats.total_cards == 3
        assert stats.due_cards == 2
        assert stats.new_cards == 2

    def test_deck_due_review_without_due_cards(self, app):
        service, _ = service_with(self.cards())
        result = service.get_deck_due_review(2, user_id=1)
        assert isinstance(result.error, NotFoundError)


class TestSrsInterface:

    def test_service_shares_repository(self, app):
        repo = InMemoryStudyRepository(cards=[make_card(1, NOW - DAY)])
        service = SrsInterface.service(repository=repo, clock=fixed_clock(NOW))
        assert service.get_due_flashcards(user_id=1).data[0].card_id == 1

    def test_pure_helpers(self):
        classification = SrsInterface.classify_cards([make_card(1, NOW - 2 * DAY)], NOW)
        assert classification.overdue[0].priority == Priority.HIGH
        assert SrsInterface.review_priority(1, 4) == Priority.MEDIUM
        assert NotFoundError in SrsInterface.RECOVERABLE_ERRORS


class TestUserClock:

    def recording_service(self, repo):
        received = []

        def clock(tz_name=None):
            received.append(tz_name)
            return NOW

        return SrsService(repository=repo, clock=clock), received

    def test_explicit_user_uses_stored_timezone(self, app):
        repo = InMemoryStudyRepository()
        repo.timezones[5] = 'Asia/Tokyo'
        service, received = self.recording_service(repo)

        service.now_for(5)

        assert received == ['Asia/Tokyo']

    def test_unknown_user_falls_back_to_system_timezone(self, app):
        service, received = self.recording_service(InMemoryStudyRepository())
        service.now_for(99)
        assert received == [None]

    def test_today_window_follows_stored_timezone(self, app):
        # 15:00 UTC is already 00:00 the next day in Tokyo, so 10:00 UTC tomorrow is due today
        repo = InMemoryStudyRepository(cards=[
            make_card(1, datetime.datetime(2026, 3, 11, 10, 0, tzinfo=UTC), deck_id=1),
        ])
        repo.timezones[1] = 'Asia/Tokyo'
        service = SrsService(repository=repo, clock=lambda tz_name=None: NOW.astimezone(pytz.timezone(tz_name)))

        reviews = service.get_today_reviews(user_id=1).data

        assert [(r.deck_id, r.due_count) for r in reviews] == [(1, 1)]

    def test_timezone_lookup_failure_is_returned(self, app):
        repo = InMemoryStudyRepository(cards=[make_card(1, NOW)])
        repo.load_user_timezone = mock.Mock(side_effect=DataAccessError('store unavailable'))
        service = SrsService(repository=repo)
        result = service.get_deck_stats(1, user_id=1)
        assert isinstance(result.error, DataAccessError)
