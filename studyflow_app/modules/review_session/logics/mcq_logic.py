"""
Multiple-choice option generation.
Pure logic - the candidate pool is the answers of the other cards in the session.
"""

import random
from typing import Iterable, List, Optional

from .typing_logic import normalize_answer

DISTRACTOR_COUNT = 3
PLACEHOLDER_OPTIONS = ('None of the above', 'Not listed', 'No answer')


def select_distractors(correct_answer: str, candidate_pool: Iterable[str],
                       amount: int = DISTRACTOR_COUNT,
                       rng: Optional[random.Random] = None) -> List[str]:
    """Up to ``amount`` distinct wrong answers drawn from the pool."""
    rng = rng or random.Random()
    correct_key = normalize_answer(correct_answer)

    seen = {correct_key}
    unique = []
    for candidate in candidate_pool:
        if not candidate:
            continue
        key = normalize_answer(candidate)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(candidate)

    if len(unique) <= amount:
        return unique
    return rng.sample(unique, amount)


def build_choices(correct_answer: str, candidate_pool: Iterable[str],
                  rng: Optional[random.Random] = None) -> List[str]:
    """
    One correct option plus three distractors, shuffled.
    Missing distractors are padded with placeholder options.
    """
    rng = rng or random.Random()
    options = select_distractors(correct_answer, candidate_pool, DISTRACTOR_COUNT, rng)

    taken = {normalize_answer(option) for option in options}
    taken.add(normalize_answer(correct_answer))
    for placeholder in PLACEHOLDER_OPTIONS:
        if len(options) >= DISTRACTOR_COUNT:
            break
        if normalize_answer(placeholder) not in taken:
            options.append(placeholder)

    options.append(correct_answer)
    rng.shuffle(options)
    return options


def is_correct_choice(choice: str, correct_answer: str) -> bool:
    return choice == correct_answer
