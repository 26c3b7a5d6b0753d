# File: studyflow_app/modules/srs/interface.py
from .logics import due_classifier
from .logics.scheduling import compute_next_state, validate_quality
from .services.srs_service import RECOVERABLE_ERRORS, SrsService


class SrsInterface:
    """Public API of the SRS module for other modules."""

    # Errors a service call reports through ServiceResult instead of raising
    RECOVERABLE_ERRORS = RECOVERABLE_ERRORS

    @staticmethod
    def service(repository=None, clock=None) -> SrsService:
        return SrsService(repository=repository, clock=clock)

    classify_cards = staticmethod(due_classifier.classify)
    compute_next_state = staticmethod(compute_next_state)
    validate_quality = staticmethod(validate_quality)
    review_priority = staticmethod(due_classifier.review_priority)
