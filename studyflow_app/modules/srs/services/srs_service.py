import datetime
import logging
from typing import Callable, List, Optional

from studyflow_app.core.auth_context import resolve_user_id, resolve_user_timezone
from studyflow_app.core.error_handlers import (
    DataAccessError,
    NotAuthenticatedError,
    NotFoundError,
)
from studyflow_app.core.repository import StudyRepository, get_repository
from studyflow_app.core.results import ServiceResult
from studyflow_app.utils.time_utils import local_now
from ..logics import due_classifier
from ..logics.scheduling import compute_next_state, validate_quality
from ..schemas import Card, DeckStats, DueClassification, DueReview
from ..signals import card_reviewed

logger = logging.getLogger(__name__)

# Expected failures come back as ServiceResult.fail, anything else propagates
RECOVERABLE_ERRORS = (NotAuthenticatedError, NotFoundError, DataAccessError)


class SrsService:
    """
    Orchestrator for the quality-rating study flow and due queries.
    Loads through the repository, calls the pure scheduling and
    classification logic, persists and emits signals.
    """

    def __init__(
        self,
        repository: Optional[StudyRepository] = None,
        clock: Optional[Callable[[Optional[str]], datetime.datetime]] = None,
    ):
        self.repository = repository or get_repository()
        self._clock = clock or local_now

    def now_for(self, user_id: int) -> datetime.datetime:
        """
        Current time on the user's wall clock.

        The logged-in request user supplies the timezone when it is the
        same user; otherwise it is read from the store. Unknown users fall
        back to SYSTEM_TIMEZONE.
        """
        tz_name = resolve_user_timezone(user_id)
        if tz_name is None:
            tz_name = self.repository.load_user_timezone(user_id)
        return self._clock(tz_name)

    def study_flashcard(self, card_id: int, quality: int,
                        user_id: Optional[int] = None) -> ServiceResult[Card]:
        """
        Apply a quality rating to a card and persist the new state.

        The review log append is best-effort: a failure there is logged and
        the already persisted state stands.

        Raises:
            InvalidQualityError: quality outside 1..5
            MalformedCardStateError: the stored state breaks its invariants
        """
        validate_quality(quality)

        try:
            user_id = resolve_user_id(user_id)
            card = self.repository.load_card(card_id, user_id)
            card.state.validate(card_id)

            now = self.now_for(user_id)
            new_state = compute_next_state(card.state, quality, now)
            self.repository.save_review_state(card_id, new_state)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        logger.debug(
            f"Card {card_id} reviewed by user {user_id}: q={quality} "
            f"interval={new_state.interval} ef={new_state.ease_factor:.2f}"
        )

        try:
            self.repository.append_review_log(card_id, user_id, quality, now)
        except DataAccessError as exc:
            logger.warning(f"Review log append failed for card {card_id}: {exc.message}")

        card_reviewed.send(
            self,
            user_id=user_id,
            card_id=card_id,
            quality=quality,
            state=new_state.to_dict(),
        )
        return ServiceResult.ok(card.with_state(new_state))

    def _user_cards(self, user_id: Optional[int]):
        """The user's cards and the user's current wall-clock time."""
        user_id = resolve_user_id(user_id)
        return self.repository.load_cards_for_user(user_id), self.now_for(user_id)

    def get_due_flashcards(self, user_id: Optional[int] = None) -> ServiceResult[List[Card]]:
        """Cards due now, earliest first."""
        try:
            cards, now = self._user_cards(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)
        return ServiceResult.ok(due_classifier.due_cards(cards, now))

    def get_due_reviews(self, user_id: Optional[int] = None) -> ServiceResult[List[DueReview]]:
        try:
            cards, now = self._user_cards(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)
        return ServiceResult.ok(due_classifier.due_now_reviews(cards, now))

    def get_overdue_reviews(self, user_id: Optional[int] = None) -> ServiceResult[List[DueReview]]:
        try:
            cards, now = self._user_cards(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)
        return ServiceResult.ok(due_classifier.overdue_reviews(cards, now))

    def get_today_reviews(self, user_id: Optional[int] = None) -> ServiceResult[List[DueReview]]:
        try:
            cards, now = self._user_cards(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)
        return ServiceResult.ok(due_classifier.today_reviews(cards, now))

    def classify(self, user_id: Optional[int] = None) -> ServiceResult[DueClassification]:
        """All three due windows from one card load."""
        try:
            cards, now = self._user_cards(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)
        return ServiceResult.ok(due_classifier.classify(cards, now))

    def get_deck_stats(self, deck_id: int, user_id: Optional[int] = None) -> ServiceResult[DeckStats]:
        try:
            user_id = resolve_user_id(user_id)
            cards = self.repository.load_cards_for_deck(deck_id, user_id)
            now = self.now_for(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        return ServiceResult.ok(DeckStats(
            deck_id=deck_id,
            total_cards=len(cards),
            due_cards=sum(1 for card in cards if due_classifier.is_due(card.state.next_review, now)),
            new_cards=sum(1 for card in cards if card.state.repetitions == 0),
        ))

    def get_deck_due_review(self, deck_id: int, user_id: Optional[int] = None) -> ServiceResult[DueReview]:
        """
        Current DueReview for one deck, used to build a study session task.
        A deck with no cards due now is reported as NotFound.
        """
        try:
            user_id = resolve_user_id(user_id)
            cards = self.repository.load_cards_for_deck(deck_id, user_id)
            now = self.now_for(user_id)
        except RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        reviews = due_classifier.due_now_reviews(cards, now)
        if not reviews:
            return ServiceResult.fail(NotFoundError(f'No cards due in deck {deck_id}', resource='deck'))
        return ServiceResult.ok(reviews[0])
