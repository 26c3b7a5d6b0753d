"""
Due Classifier - buckets cards into due windows and ranks decks.

Windows relative to a reference instant ``now``:
- due now:   next_review <= now
- overdue:   next_review <= now - 1 day  (subset of due now)
- due today: start_of_day(now) <= next_review < start_of_day(now) + 1 day

Pure functions; the caller loads the cards.
"""

import datetime
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from studyflow_app.utils.time_utils import end_of_day, ensure_aware, start_of_day
from ..schemas import Card, DueClassification, DueReview, Priority

OVERDUE_AFTER = datetime.timedelta(days=1)


def review_priority(due_count: int, total_cards: int) -> Priority:
    """
    Priority from the share of a deck's cards that are due.
    >= 50% is high, >= 25% is medium, anything less is low.
    """
    if total_cards <= 0:
        raise ValueError("total_cards must be positive to compute a priority")
    # Integer comparison keeps the boundaries exact
    if due_count * 2 >= total_cards:
        return Priority.HIGH
    if due_count * 4 >= total_cards:
        return Priority.MEDIUM
    return Priority.LOW


def is_due(next_review: datetime.datetime, now: datetime.datetime) -> bool:
    return ensure_aware(next_review) <= ensure_aware(now)


def is_overdue(next_review: datetime.datetime, now: datetime.datetime) -> bool:
    return ensure_aware(next_review) <= ensure_aware(now) - OVERDUE_AFTER


def today_window(now: datetime.datetime) -> Tuple[datetime.datetime, datetime.datetime]:
    now = ensure_aware(now)
    return start_of_day(now), end_of_day(now)


def is_due_today(next_review: datetime.datetime, now: datetime.datetime) -> bool:
    start, end = today_window(now)
    return start <= ensure_aware(next_review) < end


def group_by_deck(cards: Iterable[Card]) -> "OrderedDict[int, List[Card]]":
    """Cards keyed by deck in first-seen order; cards without a deck are skipped."""
    decks: "OrderedDict[int, List[Card]]" = OrderedDict()
    for card in cards:
        if card.deck_id is None:
            continue
        decks.setdefault(card.deck_id, []).append(card)
    return decks


def sort_due_reviews(reviews: List[DueReview]) -> List[DueReview]:
    """Priority rank descending, ties by due count descending (stable otherwise)."""
    return sorted(reviews, key=lambda review: (-review.priority.rank, -review.due_count))


def _summarize(
    decks: Dict[int, List[Card]],
    predicate: Callable[[Card], bool],
    forced_priority: Optional[Priority] = None,
) -> List[DueReview]:
    reviews = []
    for deck_id, deck_cards in decks.items():
        total_cards = len(deck_cards)
        if total_cards == 0:
            continue
        due_count = sum(1 for card in deck_cards if predicate(card))
        if due_count == 0:
            continue
        priority = forced_priority or review_priority(due_count, total_cards)
        reviews.append(DueReview(
            deck_id=deck_id,
            deck_name=deck_cards[0].deck_name or '',
            due_count=due_count,
            total_cards=total_cards,
            priority=priority,
        ))
    return sort_due_reviews(reviews)


def due_now_reviews(cards: Iterable[Card], now: datetime.datetime) -> List[DueReview]:
    return _summarize(group_by_deck(cards), lambda card: is_due(card.state.next_review, now))


def overdue_reviews(cards: Iterable[Card], now: datetime.datetime) -> List[DueReview]:
    """Overdue decks are always high priority."""
    return _summarize(
        group_by_deck(cards),
        lambda card: is_overdue(card.state.next_review, now),
        forced_priority=Priority.HIGH,
    )


def today_reviews(cards: Iterable[Card], now: datetime.datetime) -> List[DueReview]:
    start, end = today_window(now)
    return _summarize(
        group_by_deck(cards),
        lambda card: start <= ensure_aware(card.state.next_review) < end,
    )


def classify(cards: Iterable[Card], now: datetime.datetime) -> DueClassification:
    """All three windows from a single pass over the card list."""
    cards = list(cards)
    return DueClassification(
        due_now=due_now_reviews(cards, now),
        overdue=overdue_reviews(cards, now),
        due_today=today_reviews(cards, now),
    )


def due_cards(cards: Iterable[Card], now: datetime.datetime) -> List[Card]:
    """Cards due now, earliest next_review first."""
    due = [card for card in cards if is_due(card.state.next_review, now)]
    return sorted(due, key=lambda card: ensure_aware(card.state.next_review))
