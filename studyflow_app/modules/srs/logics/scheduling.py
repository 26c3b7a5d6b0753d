"""
Scheduling Algorithm - Pure SM-2 state transitions

No database access: the next ReviewState is computed only from the prior
state, the quality rating and the caller's wall-clock "now".
"""

import datetime
import math
from typing import Any

from studyflow_app.core.error_handlers import InvalidQualityError
from ..schemas import ReviewState, SrsConstants


def validate_quality(quality: Any) -> int:
    """
    Reject anything that is not an integer rating in 1..5.

    Raises:
        InvalidQualityError: quality is out of range or not an integer.
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    if not SrsConstants.MIN_QUALITY <= quality <= SrsConstants.MAX_QUALITY:
        raise InvalidQualityError(quality)
    return quality


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def adjust_ease_factor(ease_factor: float, quality: int) -> float:
    """SM-2 EF formula: EF' = EF + (0.1 - (5-q) * (0.08 + (5-q)*0.02)), floored at 1.3."""
    miss = SrsConstants.MAX_QUALITY - quality
    new_ef = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(SrsConstants.MIN_EASE_FACTOR, new_ef)


def compute_next_state(prior: ReviewState, quality: int, now: datetime.datetime) -> ReviewState:
    """
    Compute the card's state after a review.

    Args:
        prior: State before the review
        quality: Recall rating (1-5); values below 3 count as forgotten
        now: Caller's current time, the base for next_review

    Returns:
        New ReviewState with next_review = now + interval days
    """
    validate_quality(quality)

    if quality >= SrsConstants.PASSING_QUALITY:
        repetitions = prior.repetitions + 1
        if repetitions == 1:
            interval = SrsConstants.FIRST_INTERVAL_DAYS
        elif repetitions == 2:
            interval = SrsConstants.SECOND_INTERVAL_DAYS
        else:
            interval = round_half_up(prior.interval * prior.ease_factor)
        ease_factor = adjust_ease_factor(prior.ease_factor, quality)
    else:
        repetitions = 0
        interval = SrsConstants.FIRST_INTERVAL_DAYS
        ease_factor = max(
            SrsConstants.MIN_EASE_FACTOR,
            prior.ease_factor - SrsConstants.FAILURE_EASE_PENALTY
        )

    return ReviewState(
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        next_review=now + datetime.timedelta(days=interval),
    )


def quality_to_description(quality: int) -> str:
    """Button label for a quality rating."""
    descriptions = {
        1: "Again",
        2: "Hard",
        3: "Good",
        4: "Easy",
        5: "Perfect"
    }
    return descriptions.get(quality, "Unknown")


def is_correct(quality: int) -> bool:
    """Determine if quality represents a remembered card."""
    return quality >= SrsConstants.PASSING_QUALITY
