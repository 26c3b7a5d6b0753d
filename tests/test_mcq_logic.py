import random

from studyflow_app.modules.review_session.logics.mcq_logic import (
    PLACEHOLDER_OPTIONS,
    build_choices,
    is_correct_choice,
    select_distractors,
)


class TestSelectDistractors:

    def test_excludes_correct_and_duplicates(self):
        pool = ['Apple', 'apple!', 'pear', 'pear', 'plum', '']
        distractors = select_distractors('apple', pool, rng=random.Random(3))
        assert sorted(distractors) == ['pear', 'plum']

    def test_caps_at_three(self):
        pool = [f'answer {i}' for i in range(10)]
        distractors = select_distractors('correct', pool, rng=random.Random(3))
        assert len(distractors) == 3
        assert len(set(distractors)) == 3


class TestBuildChoices:

    def test_four_options_with_correct(self):
        pool = ['b', 'c', 'd', 'e', 'f']
        choices = build_choices('a', pool, rng=random.Random(11))
        assert len(choices) == 4
        assert choices.count('a') == 1

    def test_pads_with_placeholders(self):
        choices = build_choices('a', ['b'], rng=random.Random(11))
        assert len(choices) == 4
        assert 'a' in choices and 'b' in choices
        assert sum(1 for choice in choices if choice in PLACEHOLDER_OPTIONS) == 2

    def test_no_other_answers(self):
        choices = build_choices('a', [], rng=random.Random(11))
        assert sorted(choices) == sorted(['a'] + list(PLACEHOLDER_OPTIONS))

    def test_placeholder_not_duplicating_correct(self):
        choices = build_choices('Not listed', [], rng=random.Random(2))
        assert choices.count('Not listed') == 1
        assert len(choices) == 3

    def test_is_correct_choice(self):
        assert is_correct_choice('a', 'a')
        assert not is_correct_choice('b', 'a')
