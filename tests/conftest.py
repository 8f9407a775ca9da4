"""Shared test fixtures."""
from __future__ import annotations

import pytest

from course_player.db import Database
from course_player.models import (
    Course,
    EssayQuestion,
    FillBlankQuestion,
    Lesson,
    MatchingQuestion,
    MultipleChoiceQuestion,
    QuizDefinition,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def sample_questions():
    """One question of each auto-graded type, ids that never look like indices."""
    return [
        MultipleChoiceQuestion(
            "Which planet is largest?", id="q-planet",
            options=["Mars", "Jupiter", "Venus"], correct_option=1,
            explanation="Jupiter is more than twice as massive as the rest combined.",
        ),
        TrueFalseQuestion("Water boils at 100C at sea level.", id="q-water", correct_answer=True),
        FillBlankQuestion("The capital of France is ___.", id="q-capital", correct_answers=["Paris"]),
    ]


@pytest.fixture
def sample_quiz(sample_questions):
    return QuizDefinition(questions=tuple(sample_questions), max_attempts=3)


@pytest.fixture
def mixed_quiz():
    """Every question type, including an essay and a two-point question."""
    return QuizDefinition(questions=(
        MultipleChoiceQuestion("Pick B", id="mc", options=["A", "B"], correct_option=1),
        TrueFalseQuestion("Sky is blue", id="tf", correct_answer=True),
        FillBlankQuestion("2 + 2 = ___", id="fb", correct_answers=["4", "four"]),
        ShortAnswerQuestion("Name a primary colour", id="sa",
                            correct_keywords=["red", "blue", "yellow"], points=2),
        MatchingQuestion("Match", id="mt", left_items=["cat", "dog"], right_items=["bark", "meow"],
                         correct_matches=[(0, 1), (1, 0)]),
        EssayQuestion("Discuss", id="es", word_limit=200),
    ))


@pytest.fixture
def sample_course(sample_quiz):
    return Course(
        id="course-1",
        title="Astronomy Basics",
        lessons=[
            Lesson("intro", "Introduction"),
            Lesson("planets", "Planets", quiz=sample_quiz, is_required=True),
            Lesson("stars", "Stars", quiz=sample_quiz, is_required=True),
            Lesson("extra", "Further Reading"),
        ],
        minimum_quiz_score=70,
    )


@pytest.fixture
def course_json():
    """Course file content in the authoring (camelCase) shape."""
    return {
        "id": "course-1",
        "title": "Astronomy Basics",
        "settings": {"certificate": {"minimumQuizScore": 70}},
        "lessons": [
            {"id": "intro", "title": "Introduction"},
            {
                "id": "planets",
                "title": "Planets",
                "settings": {"isRequired": True},
                "quiz": {
                    "maxAttempts": 2,
                    "shuffleQuestions": False,
                    "questions": [
                        {"id": "q-planet", "type": "multiple-choice", "text": "Which planet is largest?",
                         "options": ["Mars", "Jupiter", "Venus"], "correctOption": 1},
                        {"id": "q-water", "type": "true_false", "text": "Water boils at 100C.",
                         "correctAnswer": True},
                        {"id": "q-capital", "type": "fill-blank", "text": "Capital of France?",
                         "correctAnswers": ["Paris"], "points": 2},
                    ],
                },
            },
        ],
    }
