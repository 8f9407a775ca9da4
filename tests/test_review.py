"""Tests for display ordering and the shuffle-aware review."""
from __future__ import annotations

import random

from course_player.models import (
    MultipleChoiceQuestion,
    QuizDefinition,
    ShuffleMapping,
    TrueFalseQuestion,
)
from course_player.review import (
    build_review,
    correct_answer_for,
    display_definition,
    new_shuffle,
    resolve_order,
)


class TestResolveOrder:
    def test_no_shuffle_is_identity(self, sample_quiz):
        order = resolve_order(sample_quiz, None)
        assert [(o.original_index, o.shuffled_index) for o in order] == [(0, 0), (1, 1), (2, 2)]

    def test_by_id(self, sample_quiz):
        shuffle = ShuffleMapping(("q-capital", "q-planet", "q-water"))
        order = resolve_order(sample_quiz, shuffle)
        assert [o.original_index for o in order] == [2, 0, 1]
        assert [o.shuffled_index for o in order] == [0, 1, 2]

    def test_by_index_for_id_less_questions(self):
        quiz = QuizDefinition(questions=(TrueFalseQuestion("a"), TrueFalseQuestion("b")))
        order = resolve_order(quiz, ShuffleMapping((1, 0)))
        assert [o.question.text for o in order] == ["b", "a"]

    def test_unknown_and_duplicate_entries_skipped(self, sample_quiz):
        shuffle = ShuffleMapping(("q-water", "ghost", "q-water", 99))
        order = resolve_order(sample_quiz, shuffle)
        # unmentioned questions are appended in original order
        assert [o.original_index for o in order] == [1, 0, 2]

    def test_display_definition(self, sample_quiz):
        shown = display_definition(sample_quiz, ShuffleMapping(("q-water", "q-capital", "q-planet")))
        assert [q.id for q in shown.questions] == ["q-water", "q-capital", "q-planet"]


class TestNewShuffle:
    def test_permutation_of_keys(self, sample_quiz):
        shuffle = new_shuffle(sample_quiz, random.Random(7))
        assert sorted(shuffle.question_order) == ["q-capital", "q-planet", "q-water"]

    def test_indices_for_id_less(self):
        quiz = QuizDefinition(questions=(TrueFalseQuestion("a"), TrueFalseQuestion("b")))
        assert sorted(new_shuffle(quiz, random.Random(1)).question_order) == [0, 1]


class TestBuildReview:
    def test_shuffled_answers_graded_against_original_questions(self, sample_quiz):
        # display order [2, 0, 1]: capital, planet, water
        shuffle = ShuffleMapping(("q-capital", "q-planet", "q-water"))
        answers = {0: "paris", 1: 1, 2: False}
        items = build_review(sample_quiz, answers, shuffle)

        assert [i.question.id for i in items] == ["q-capital", "q-planet", "q-water"]
        assert [i.user_answer for i in items] == ["paris", 1, False]
        assert [i.is_correct for i in items] == [True, True, False]
        assert [i.original_index for i in items] == [2, 0, 1]

    def test_unanswered_question(self, sample_quiz):
        items = build_review(sample_quiz, {0: 1})
        assert items[1].user_answer is None
        assert not items[1].is_correct

    def test_item_dict_includes_correct_answer(self, sample_quiz):
        item = build_review(sample_quiz, {0: 0})[0]
        d = item.to_dict()
        assert d["correct_answer"] == 1
        assert d["is_correct"] is False
        assert d["explanation"].startswith("Jupiter")


class TestCorrectAnswerFor:
    def test_values(self, mixed_quiz):
        values = [correct_answer_for(q) for q in mixed_quiz.questions]
        assert values == [1, True, ["4", "four"], ["red", "blue", "yellow"], [[0, 1], [1, 0]], None]

    def test_multiple_choice(self):
        assert correct_answer_for(MultipleChoiceQuestion("q", correct_option=2)) == 2
