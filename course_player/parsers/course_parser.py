"""Parse course JSON files into Course / Lesson / QuizDefinition objects.

Accepts both the authoring shape (camelCase, ``quiz.questions``) and the
stored-row shape (snake_case, ``lesson.quiz_questions``). Question types
may be spelled ``multiple-choice`` or ``multiple_choice``; a question
without a type but with ``options`` is treated as multiple choice, which
covers the legacy ``{question, options, correctAnswer}`` form.
"""
from __future__ import annotations

import json
from pathlib import Path

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
from course_player.scoring import DEFAULT_MINIMUM_SCORE, match_pair


def _get(d: dict, *names, default=None):
    for n in names:
        if n in d and d[n] is not None:
            return d[n]
    return default


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _str_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return [str(v) for v in value]


def _matches(value) -> list[tuple[int, int]]:
    return [match_pair(m) for m in value or []]


def parse_question(raw: dict):
    qtype = str(_get(raw, "type", "question_type", default="")).replace("_", "-").lower()
    if not qtype:
        qtype = "multiple-choice" if "options" in raw else "essay"

    raw_id = _get(raw, "id")
    common = {
        "text": str(_get(raw, "text", "question", default="")),
        "id": str(raw_id) if raw_id not in (None, "") else None,
        "points": max(1, int(_get(raw, "points", default=1))),
        "image_url": _get(raw, "imageUrl", "image_url"),
        "explanation": _get(raw, "explanation"),
    }

    if qtype == "multiple-choice":
        return MultipleChoiceQuestion(
            **common,
            options=_str_list(_get(raw, "options")),
            correct_option=int(_get(raw, "correctOption", "correct_option",
                                    "correctAnswer", "correct_answer", default=0)),
            allow_multiple_correct=_as_bool(_get(raw, "allowMultipleCorrect",
                                                 "allow_multiple_correct", default=False)),
            partial_credit=_as_bool(_get(raw, "partialCredit", "partial_credit", default=False)),
        )
    if qtype == "true-false":
        return TrueFalseQuestion(
            **common,
            correct_answer=_as_bool(_get(raw, "correctAnswer", "correct_answer", default=True)),
        )
    if qtype == "fill-blank":
        return FillBlankQuestion(
            **common,
            correct_answers=_str_list(_get(raw, "correctAnswers", "correct_answers",
                                           "correctAnswer", "correct_answer")),
            case_sensitive=_as_bool(_get(raw, "caseSensitive", "case_sensitive", default=False)),
        )
    if qtype == "short-answer":
        return ShortAnswerQuestion(
            **common,
            correct_keywords=_str_list(_get(raw, "correctKeywords", "correct_keywords")),
            case_sensitive=_as_bool(_get(raw, "caseSensitive", "case_sensitive", default=False)),
        )
    if qtype == "essay":
        word_limit = _get(raw, "wordLimit", "word_limit")
        return EssayQuestion(
            **common,
            word_limit=int(word_limit) if word_limit is not None else None,
            rubric=_get(raw, "rubric"),
        )
    if qtype == "matching":
        return MatchingQuestion(
            **common,
            left_items=_str_list(_get(raw, "leftItems", "left_items")),
            right_items=_str_list(_get(raw, "rightItems", "right_items")),
            correct_matches=_matches(_get(raw, "correctMatches", "correct_matches")),
        )
    raise ValueError(f"Unknown question type: {qtype}")


def parse_quiz(raw: dict, questions: list | None = None, max_attempts: int = 3) -> QuizDefinition:
    items = questions if questions is not None else _get(raw, "questions", default=[])
    return QuizDefinition(
        questions=tuple(parse_question(q) for q in items),
        allow_multiple_attempts=_as_bool(_get(raw, "allowMultipleAttempts",
                                              "allow_multiple_attempts", default=True)),
        max_attempts=int(_get(raw, "maxAttempts", "max_attempts", default=max_attempts)),
        show_correct_answers=_as_bool(_get(raw, "showCorrectAnswers",
                                           "show_correct_answers", default=True)),
        show_results_immediately=_as_bool(_get(raw, "showResultsImmediately",
                                               "show_results_immediately", default=True)),
        shuffle_questions=_as_bool(_get(raw, "shuffleQuestions", "shuffle_questions", default=False)),
        enabled=_as_bool(_get(raw, "enabled", default=True)),
    )


def parse_lesson(raw: dict, max_attempts: int = 3) -> Lesson:
    quiz_raw = _get(raw, "quiz", default={}) or {}
    row_questions = _get(raw, "quiz_questions", "quizQuestions")
    quiz = None
    if row_questions or _get(quiz_raw, "questions"):
        quiz = parse_quiz(quiz_raw, row_questions or None, max_attempts)
        if not quiz.enabled:
            quiz = None
    settings = _get(raw, "settings", default={}) or {}
    return Lesson(
        id=str(raw["id"]),
        title=str(_get(raw, "title", default="")),
        quiz=quiz,
        is_required=_as_bool(_get(settings, "isRequired", "is_required", default=False)),
    )


def parse_course(
    raw: dict,
    source_file: str = "",
    minimum_quiz_score: int = DEFAULT_MINIMUM_SCORE,
    max_attempts: int = 3,
) -> Course:
    """Build a Course; the keyword defaults apply where the course is silent."""
    settings = _get(raw, "settings", default={}) or {}
    certificate = _get(settings, "certificate", default={}) or {}
    minimum = _get(settings, "minimumQuizScore", "minimum_quiz_score") or _get(
        certificate, "minimumQuizScore", "minimum_quiz_score", default=minimum_quiz_score
    )
    return Course(
        id=str(raw["id"]),
        title=str(_get(raw, "title", default="")),
        lessons=[parse_lesson(l, max_attempts) for l in _get(raw, "lessons", default=[])],
        minimum_quiz_score=int(minimum),
        source_file=source_file,
    )


def parse_course_file(path: Path, **defaults) -> Course:
    return parse_course(json.loads(path.read_text()), source_file=path.name, **defaults)
