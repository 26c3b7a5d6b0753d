import pytest

from studyflow_app.modules.review_session.logics.typing_logic import (
    evaluate_typed_answer,
    matched_word_ratio,
    normalize_answer,
)
from studyflow_app.modules.review_session.schemas import AnswerGrade


class TestNormalize:

    @pytest.mark.parametrize('raw, expected', [
        ('  Hello,   World! ', 'hello world'),
        ("It's", 'its'),
        ('', ''),
        (None, ''),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_answer(raw) == expected


class TestEvaluate:

    def test_exact_match_after_normalization(self):
        assert evaluate_typed_answer('The Cat.', 'the cat') == AnswerGrade.CORRECT

    def test_close_at_threshold(self):
        # 7 of 10 words present
        expected = 'one two three four five six seven eight nine ten'
        typed = 'one two three four five six seven'
        assert matched_word_ratio(typed, expected) == pytest.approx(0.7)
        assert evaluate_typed_answer(typed, expected) == AnswerGrade.CLOSE

    def test_below_threshold_is_wrong(self):
        expected = 'one two three four five six seven eight nine ten'
        typed = 'one two three four five six'
        assert evaluate_typed_answer(typed, expected) == AnswerGrade.WRONG

    def test_substring_overlap_counts(self):
        assert evaluate_typed_answer('photosynth', 'photosynthesis') == AnswerGrade.CLOSE

    def test_empty_answer_is_wrong(self):
        assert evaluate_typed_answer('   ', 'anything') == AnswerGrade.WRONG

    def test_custom_threshold(self):
        assert evaluate_typed_answer('red', 'red blue', threshold=0.5) == AnswerGrade.CLOSE
        assert evaluate_typed_answer('red', 'red blue', threshold=0.7) == AnswerGrade.WRONG
