"""
Pure logic for typed answers - normalization and grading.
No Database access, no Flask.
"""

import re
from typing import List

from ..schemas import AnswerGrade

DEFAULT_CLOSE_THRESHOLD = 0.7

_PUNCTUATION = re.compile(r'[^\w\s]', re.UNICODE)


def normalize_answer(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    if not text:
        return ''
    text = _PUNCTUATION.sub('', str(text).lower())
    return ' '.join(text.split())


def _words_overlap(typed: str, expected: str) -> bool:
    return typed == expected or typed in expected or expected in typed


def matched_word_ratio(typed: str, expected: str) -> float:
    """Share of the expected words that some typed word equals or overlaps."""
    expected_words: List[str] = normalize_answer(expected).split()
    typed_words: List[str] = normalize_answer(typed).split()
    if not expected_words or not typed_words:
        return 0.0

    matched = sum(
        1 for word in expected_words
        if any(_words_overlap(candidate, word) for candidate in typed_words)
    )
    return matched / len(expected_words)


def evaluate_typed_answer(typed: str, expected: str,
                          threshold: float = DEFAULT_CLOSE_THRESHOLD) -> AnswerGrade:
    """
    correct: exact match after normalization
    close:   at least ``threshold`` of the expected words matched; the user decides
    wrong:   anything else
    """
    normalized_typed = normalize_answer(typed)
    if not normalized_typed:
        return AnswerGrade.WRONG
    if normalized_typed == normalize_answer(expected):
        return AnswerGrade.CORRECT
    if matched_word_ratio(typed, expected) >= threshold:
        return AnswerGrade.CLOSE
    return AnswerGrade.WRONG
