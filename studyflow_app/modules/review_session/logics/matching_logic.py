# Matching stage logic: a board of terms and shuffled definitions

import random
from typing import Dict, Optional, Sequence

from ..schemas import DrillCard, MatchingBoard


def build_board(cards: Sequence[DrillCard], rng: Optional[random.Random] = None) -> MatchingBoard:
    """
    Left column keeps the deck order, right column is shuffled.

    Returns:
        MatchingBoard(left=[{'card_id': 1, 'text': 'apple'}, ...],
                      right=[{'card_id': 7, 'text': 'pomme'}, ...])
    """
    rng = rng or random.Random()
    left = [{'card_id': card.card_id, 'text': card.front} for card in cards]
    right = [{'card_id': card.card_id, 'text': card.back} for card in cards]
    rng.shuffle(right)
    return MatchingBoard(left=left, right=right)


def check_match(cards_by_id: Dict[int, DrillCard], left_card_id: int, right_card_id: int) -> bool:
    """A pair matches when the chosen definition is the left card's answer."""
    left = cards_by_id[left_card_id]
    right = cards_by_id[right_card_id]
    return left.card_id == right.card_id or left.back == right.back
