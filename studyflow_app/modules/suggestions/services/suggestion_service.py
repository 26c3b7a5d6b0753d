import datetime
import logging
from typing import Callable, List, Optional

from studyflow_app.core.auth_context import resolve_user_id
from studyflow_app.core.repository import StudyRepository, TaskDraft, TaskFilter, TaskRecord, get_repository
from studyflow_app.core.results import ServiceResult
from studyflow_app.core.settings import get_setting
from studyflow_app.modules.srs.interface import SrsInterface
from studyflow_app.modules.srs.schemas import DueReview, Priority
from ..logics import ranker
from ..schemas import SmartSuggestion, SuggestionSources, SuggestionType
from ..signals import suggestion_accepted

logger = logging.getLogger(__name__)


class SuggestionService:
    """Loads candidate sources, ranks them and turns accepted suggestions into tasks."""

    def __init__(
        self,
        repository: Optional[StudyRepository] = None,
        clock: Optional[Callable[[Optional[str]], datetime.datetime]] = None,
    ):
        self.repository = repository or get_repository()
        self.srs = SrsInterface.service(repository=self.repository, clock=clock)

    def _load_sources(self, user_id: int, now: datetime.datetime) -> SuggestionSources:
        cards = self.repository.load_cards_for_user(user_id)
        classification = SrsInterface.classify_cards(cards, now)

        overdue_tasks = self.repository.load_pending_tasks(
            user_id, TaskFilter(due_before=now)
        )
        urgent_tasks = self.repository.load_pending_tasks(
            user_id,
            TaskFilter(
                priorities=ranker.URGENT_PRIORITIES,
                due_from=now,
                due_before=now + ranker.URGENT_WINDOW,
            ),
        )
        return SuggestionSources(
            overdue_reviews=classification.overdue,
            overdue_tasks=ranker.select_overdue_tasks(
                overdue_tasks, now, get_setting('SUGGESTION_MAX_OVERDUE_TASKS', ranker.MAX_OVERDUE_TASKS)
            ),
            urgent_tasks=ranker.select_urgent_tasks(
                urgent_tasks, now, get_setting('SUGGESTION_MAX_URGENT_TASKS', ranker.MAX_URGENT_TASKS)
            ),
            today_reviews=classification.due_today,
        )

    def get_next_best_tasks(self, limit: Optional[int] = None,
                            user_id: Optional[int] = None) -> ServiceResult[List[SmartSuggestion]]:
        """
        Ranked suggestions for the user, at most ``limit`` of them.

        Raises:
            ValidationError: limit is not an integer >= 1
        """
        if limit is None:
            limit = get_setting('SUGGESTION_LIMIT', ranker.DEFAULT_LIMIT)
        ranker.validate_limit(limit)

        try:
            user_id = resolve_user_id(user_id)
            now = self.srs.now_for(user_id)
            sources = self._load_sources(user_id, now)
        except SrsInterface.RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        suggestions = ranker.build_suggestions(
            sources,
            now,
            limit=limit,
            max_today_reviews=get_setting('SUGGESTION_MAX_TODAY_REVIEWS', ranker.MAX_TODAY_REVIEWS),
        )
        return ServiceResult.ok(suggestions)

    @staticmethod
    def draft_from_suggestion(suggestion: SmartSuggestion) -> TaskDraft:
        deck_id = suggestion.metadata.deck_id
        return TaskDraft(
            title=suggestion.title,
            description=suggestion.description,
            task_type='study_session' if suggestion.type == SuggestionType.SRS_REVIEW else 'quick_task',
            priority=suggestion.priority.value,
            estimated_duration=suggestion.estimated_duration,
            linked_type='deck' if deck_id else 'none',
            linked_id=deck_id,
            tags=list(suggestion.metadata.tags),
            notes=f'Smart suggestion: {suggestion.reason}',
        )

    @staticmethod
    def draft_from_due_review(review: DueReview) -> TaskDraft:
        return TaskDraft(
            title=f'Review {review.deck_name}',
            description=f'{review.due_count} cards due for review',
            task_type='study_session',
            priority='high' if review.priority == Priority.HIGH else 'medium',
            estimated_duration=ranker.review_duration(review.due_count),
            linked_type='deck',
            linked_id=review.deck_id,
            tags=['srs', 'review', 'flashcards'],
        )

    def accept_suggestion(self, suggestion: SmartSuggestion,
                          user_id: Optional[int] = None) -> ServiceResult[TaskRecord]:
        """Create a task from a suggestion the user accepted."""
        try:
            user_id = resolve_user_id(user_id)
            task = self.repository.create_task(user_id, self.draft_from_suggestion(suggestion))
        except SrsInterface.RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        logger.info(f"User {user_id} accepted suggestion {suggestion.id} -> task {task.task_id}")
        suggestion_accepted.send(self, user_id=user_id, suggestion_id=suggestion.id, task_id=task.task_id)
        return ServiceResult.ok(task)

    def create_study_session(self, deck_id: int, user_id: Optional[int] = None) -> ServiceResult[TaskRecord]:
        """Create a study-session task for a deck that currently has due cards."""
        try:
            user_id = resolve_user_id(user_id)
        except SrsInterface.RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        review = self.srs.get_deck_due_review(deck_id, user_id)
        if review.error is not None:
            return ServiceResult.fail(review.error)

        try:
            task = self.repository.create_task(user_id, self.draft_from_due_review(review.data))
        except SrsInterface.RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        logger.info(f"User {user_id} scheduled a study session for deck {deck_id} -> task {task.task_id}")
        return ServiceResult.ok(task)
