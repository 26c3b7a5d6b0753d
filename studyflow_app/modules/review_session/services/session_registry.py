import logging
import threading
from typing import Dict, Optional

from studyflow_app.core.auth_context import resolve_user_id
from studyflow_app.core.error_handlers import NotFoundError
from studyflow_app.core.repository import StudyRepository, get_repository
from studyflow_app.core.results import ServiceResult
from studyflow_app.core.settings import get_setting
from studyflow_app.modules.srs.interface import SrsInterface
from ..logics.session_machine import ReviewSession
from ..schemas import Cancel, Cancelled, Complete, DrillCard, StartSession, parse_stages

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    In-process store of running review sessions, one per user.
    Sessions are never persisted; a restart drops them.
    """

    def __init__(self):
        self._sessions: Dict[int, ReviewSession] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> Optional[ReviewSession]:
        with self._lock:
            return self._sessions.get(user_id)

    def put(self, user_id: int, session: ReviewSession) -> None:
        with self._lock:
            self._sessions[user_id] = session

    def discard(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


registry = SessionRegistry()


class ReviewSessionService:
    """Starts sessions from a deck and routes events to the user's session."""

    def __init__(self, repository: Optional[StudyRepository] = None,
                 session_registry: Optional[SessionRegistry] = None):
        self.repository = repository or get_repository()
        self.registry = session_registry or registry

    def start(self, deck_id: int, stages=None, shuffle: bool = False,
              user_id: Optional[int] = None) -> ServiceResult[ReviewSession]:
        """
        Start a drill over every card of a deck, replacing any running session.

        Raises:
            ValidationError: bad stage list
        """
        stage_list = parse_stages(
            stages if stages is not None else get_setting('REVIEW_SESSION_DEFAULT_STAGES')
        )

        try:
            user_id = resolve_user_id(user_id)
            cards = self.repository.load_cards_for_deck(deck_id, user_id)
        except SrsInterface.RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        if not cards:
            return ServiceResult.fail(NotFoundError(f'Deck {deck_id} has no cards', resource='deck'))

        session = ReviewSession(close_threshold=get_setting('TYPING_CLOSE_THRESHOLD', 0.7))
        session.dispatch(StartSession(
            cards=[DrillCard.from_card(card) for card in cards],
            stages=stage_list,
            shuffle=shuffle,
        ))
        self.registry.put(user_id, session)
        return ServiceResult.ok(session)

    def current(self, user_id: Optional[int] = None) -> ServiceResult[ReviewSession]:
        try:
            user_id = resolve_user_id(user_id)
        except SrsInterface.RECOVERABLE_ERRORS as exc:
            return ServiceResult.fail(exc)

        session = self.registry.get(user_id)
        if session is None:
            return ServiceResult.fail(NotFoundError('No review session in progress', resource='review_session'))
        return ServiceResult.ok(session)

    def dispatch(self, event, user_id: Optional[int] = None) -> ServiceResult[dict]:
        """
        Apply an event to the user's session and return its snapshot.
        Finished sessions leave the registry.

        Raises:
            SessionStateError: event not allowed in the current state
            ValidationError: malformed event payload
        """
        result = self.current(user_id)
        if result.error is not None:
            return ServiceResult.fail(result.error)

        session = result.data
        state = session.dispatch(event)
        snapshot = session.snapshot()
        if isinstance(state, (Complete, Cancelled)):
            self.registry.discard(resolve_user_id(user_id))
        return ServiceResult.ok(snapshot)

    def cancel(self, user_id: Optional[int] = None) -> ServiceResult[dict]:
        return self.dispatch(Cancel(), user_id)
