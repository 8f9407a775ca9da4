"""Quiz scoring: per-question correctness, points and percentage."""
from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from course_player.models import (
    EssayQuestion,
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    QuizDefinition,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)

DEFAULT_MINIMUM_SCORE = 50


def _fold(text: str, case_sensitive: bool) -> str:
    text = text.strip()
    return text if case_sensitive else text.casefold()


def _pick(d: Mapping, *names) -> Any:
    for n in names:
        if d.get(n) is not None:
            return d[n]
    raise KeyError(names[0])


def match_pair(item: Any) -> tuple[int, int]:
    """One matching pair from ``[left, right]`` or ``{"leftIndex": .., "rightIndex": ..}``."""
    if isinstance(item, Mapping):
        return (int(_pick(item, "leftIndex", "left_index", "left")),
                int(_pick(item, "rightIndex", "right_index", "right")))
    left, right = item
    return int(left), int(right)


def _match_pairs(answer: Any) -> frozenset[tuple[int, int]] | None:
    """Normalize a matching answer: a {left: right} mapping or a list of pairs."""
    try:
        if isinstance(answer, Mapping):
            return frozenset((int(k), int(v)) for k, v in answer.items())
        return frozenset(match_pair(item) for item in answer)
    except (KeyError, TypeError, ValueError):
        return None


def is_answered(answer: Any) -> bool:
    """True when the learner has given a non-empty answer.

    ``False`` and ``0`` are real answers; ``None``, blank strings and empty
    collections are not.
    """
    if answer is None:
        return False
    if isinstance(answer, str):
        return bool(answer.strip())
    if isinstance(answer, (list, tuple, dict, set, frozenset)):
        return len(answer) > 0
    return True


def is_correct(question, answer: Any) -> bool:
    if not is_answered(answer):
        return False

    if isinstance(question, MultipleChoiceQuestion):
        return (
            isinstance(answer, int)
            and not isinstance(answer, bool)
            and answer == question.correct_option
        )

    if isinstance(question, TrueFalseQuestion):
        return isinstance(answer, bool) and answer == question.correct_answer

    if isinstance(question, FillBlankQuestion):
        if not isinstance(answer, str):
            return False
        given = _fold(answer, question.case_sensitive)
        return any(given == _fold(a, question.case_sensitive) for a in question.correct_answers)

    if isinstance(question, ShortAnswerQuestion):
        if not isinstance(answer, str):
            return False
        given = _fold(answer, question.case_sensitive)
        return any(
            _fold(k, question.case_sensitive) in given
            for k in question.correct_keywords
            if k.strip()
        )

    if isinstance(question, MatchingQuestion):
        pairs = _match_pairs(answer)
        expected = frozenset((int(l), int(r)) for l, r in question.correct_matches)
        return pairs is not None and bool(expected) and pairs == expected

    if isinstance(question, EssayQuestion):
        return False  # graded by an instructor, never automatically

    raise TypeError(f"Unknown question type: {type(question).__name__}")


def percentage(points_earned: int, total_points: int) -> int:
    """Whole-number percentage, rounded half up; 0 when there are no points."""
    if total_points <= 0:
        return 0
    return int(math.floor(100 * points_earned / total_points + 0.5))


def score(definition: QuizDefinition, answers: Mapping[int, Any]) -> tuple[int, int, int]:
    """Score *answers* (keyed by question position) against *definition*.

    Returns (points_earned, total_points, percentage).
    """
    total = 0
    earned = 0
    for position, question in enumerate(definition.questions):
        total += question.points
        answer = answers.get(position)
        if answer is not None and is_correct(question, answer):
            earned += question.points
    return earned, total, percentage(earned, total)


def passed(score_percentage: float, minimum_quiz_score: float = DEFAULT_MINIMUM_SCORE) -> bool:
    return score_percentage >= minimum_quiz_score
