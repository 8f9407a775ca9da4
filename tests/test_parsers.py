"""Tests for course file parsing."""
from __future__ import annotations

import json

import pytest

from course_player.config import Settings
from course_player.models import (
    EssayQuestion,
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from course_player.parsers.course_parser import (
    parse_course,
    parse_course_file,
    parse_lesson,
    parse_question,
)


class TestParseQuestion:
    def test_multiple_choice(self):
        q = parse_question({"id": "q1", "type": "multiple-choice", "text": "Pick",
                            "options": ["a", "b"], "correctOption": 1, "points": 3})
        assert isinstance(q, MultipleChoiceQuestion)
        assert q.correct_option == 1
        assert q.points == 3

    def test_snake_case_type(self):
        q = parse_question({"type": "true_false", "text": "T?", "correct_answer": "false"})
        assert isinstance(q, TrueFalseQuestion)
        assert q.correct_answer is False

    def test_legacy_shape(self):
        q = parse_question({"question": "Old style?", "options": ["x", "y"], "correctAnswer": 0})
        assert isinstance(q, MultipleChoiceQuestion)
        assert q.text == "Old style?"
        assert q.correct_option == 0
        assert q.id is None

    def test_fill_blank_from_single_string(self):
        q = parse_question({"type": "fill-blank", "text": "x", "correctAnswer": "Paris, paris"})
        assert isinstance(q, FillBlankQuestion)
        assert q.correct_answers == ["Paris", "paris"]

    def test_short_answer(self):
        q = parse_question({"type": "short_answer", "text": "x",
                            "correctKeywords": ["cell"], "caseSensitive": True})
        assert isinstance(q, ShortAnswerQuestion)
        assert q.case_sensitive

    def test_matching_pairs(self):
        q = parse_question({
            "type": "matching", "text": "m", "leftItems": ["a", "b"], "rightItems": ["1", "2"],
            "correctMatches": [{"leftIndex": 0, "rightIndex": 1}, [1, 0]],
        })
        assert isinstance(q, MatchingQuestion)
        assert q.correct_matches == [(0, 1), (1, 0)]

    def test_essay_default_when_untyped(self):
        q = parse_question({"text": "Discuss", "wordLimit": "300"})
        assert isinstance(q, EssayQuestion)
        assert q.word_limit == 300

    def test_points_at_least_one(self):
        assert parse_question({"type": "essay", "text": "x", "points": 0}).points == 1

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            parse_question({"type": "hotspot", "text": "x"})


class TestParseLesson:
    def test_quiz_from_row_questions(self):
        lesson = parse_lesson({
            "id": 7, "title": "Row",
            "quiz_questions": [{"type": "true-false", "text": "t", "correctAnswer": True}],
        })
        assert lesson.id == "7"
        assert len(lesson.quiz.questions) == 1

    def test_no_questions_no_quiz(self):
        assert parse_lesson({"id": "a", "quiz": {"questions": []}}).quiz is None

    def test_disabled_quiz_dropped(self):
        lesson = parse_lesson({"id": "a", "quiz": {
            "enabled": False, "questions": [{"type": "essay", "text": "x"}]}})
        assert lesson.quiz is None

    def test_default_max_attempts(self):
        lesson = parse_lesson({"id": "a", "quiz": {"questions": [{"type": "essay", "text": "x"}]}},
                              max_attempts=5)
        assert lesson.quiz.max_attempts == 5


class TestParseCourse:
    def test_authoring_shape(self, course_json):
        course = parse_course(course_json, source_file="astro.json")
        assert course.id == "course-1"
        assert course.minimum_quiz_score == 70
        assert [l.id for l in course.lessons] == ["intro", "planets"]
        planets = course.lessons[1]
        assert planets.is_required
        assert planets.quiz.max_attempts == 2
        assert planets.quiz.total_points == 4
        assert course.lessons[0].quiz is None

    def test_minimum_score_default(self):
        course = parse_course({"id": "c", "lessons": []}, minimum_quiz_score=60)
        assert course.minimum_quiz_score == 60

    def test_direct_setting_wins(self):
        course = parse_course({"id": "c", "settings": {
            "minimumQuizScore": 80, "certificate": {"minimumQuizScore": 40}}})
        assert course.minimum_quiz_score == 80

    def test_parse_file(self, tmp_path, course_json):
        path = tmp_path / "astro.json"
        path.write_text(json.dumps(course_json))
        course = parse_course_file(path)
        assert course.source_file == "astro.json"
        assert course.get_lesson("planets").quiz.questions[2].correct_answers == ["Paris"]

    def test_sample_course_parses(self):
        path = Settings().data_dir / "sample_course.json"
        course = parse_course_file(path)
        assert course.minimum_quiz_score == 70
        solar = course.get_lesson("solar-system")
        assert solar.quiz.shuffle_questions
        assert solar.quiz.total_points == 5
        assert isinstance(course.get_lesson("stars").quiz.questions[1], EssayQuestion)
