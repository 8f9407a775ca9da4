"""Question ordering and the shuffle-aware post-submission review.

Questions may be displayed in a shuffled order. Answers are recorded by
display position, while correctness lives on the (never shuffled)
question object. Review therefore pairs the answer at the *shuffled*
position with the *original* question resolved from the mapping.
"""
from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from course_player.models import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    QuizDefinition,
    ShortAnswerQuestion,
    ShuffleMapping,
    TrueFalseQuestion,
)
from course_player.scoring import is_correct

log = logging.getLogger("course_player.review")


@dataclass
class OrderedQuestion:
    question: Any
    original_index: int
    shuffled_index: int


@dataclass
class ReviewItem:
    question: Any
    original_index: int
    shuffled_index: int
    user_answer: Any
    is_correct: bool

    def to_dict(self) -> dict:
        q = self.question
        d = q.public_dict()
        d.update({
            "original_index": self.original_index,
            "shuffled_index": self.shuffled_index,
            "user_answer": self.user_answer,
            "is_correct": self.is_correct,
            "correct_answer": correct_answer_for(q),
            "explanation": q.explanation,
        })
        return d


def correct_answer_for(question) -> Any:
    """The value shown as "Correct Answer" in review."""
    if isinstance(question, MultipleChoiceQuestion):
        return question.correct_option
    if isinstance(question, TrueFalseQuestion):
        return question.correct_answer
    if isinstance(question, FillBlankQuestion):
        return list(question.correct_answers)
    if isinstance(question, ShortAnswerQuestion):
        return list(question.correct_keywords)
    if isinstance(question, MatchingQuestion):
        return [list(pair) for pair in question.correct_matches]
    return None


def _resolve(definition: QuizDefinition, entry: str | int) -> int | None:
    """Original index for one shuffled-order entry: by id first, then by index."""
    key = str(entry)
    for i, q in enumerate(definition.questions):
        if q.id is not None and str(q.id) == key:
            return i
    try:
        idx = int(entry)
    except (TypeError, ValueError):
        return None
    if 0 <= idx < len(definition.questions):
        return idx
    return None


def resolve_order(definition: QuizDefinition, shuffle: ShuffleMapping | None) -> list[OrderedQuestion]:
    """Questions in display order.

    Without a mapping the original order is used. Entries that resolve to
    nothing, or to a question already placed, are dropped; questions the
    mapping never mentions are appended in original order so none is lost.
    """
    if shuffle is None or not shuffle.question_order:
        return [OrderedQuestion(q, i, i) for i, q in enumerate(definition.questions)]

    placed: list[int] = []
    for entry in shuffle.question_order:
        idx = _resolve(definition, entry)
        if idx is None:
            log.warning("Shuffle entry %r matches no question, skipped", entry)
            continue
        if idx in placed:
            continue
        placed.append(idx)
    placed.extend(i for i in range(len(definition.questions)) if i not in placed)

    return [
        OrderedQuestion(definition.questions[orig], orig, shuffled)
        for shuffled, orig in enumerate(placed)
    ]


def display_definition(definition: QuizDefinition, shuffle: ShuffleMapping | None) -> QuizDefinition:
    """Copy of *definition* with questions in display order."""
    return definition.with_questions([o.question for o in resolve_order(definition, shuffle)])


def new_shuffle(definition: QuizDefinition, rng: random.Random | None = None) -> ShuffleMapping:
    """Random display order, identified by question id (index when id-less)."""
    rng = rng or random.Random()
    keys = [q.id if q.id else i for i, q in enumerate(definition.questions)]
    rng.shuffle(keys)
    return ShuffleMapping(tuple(keys))


def build_review(
    definition: QuizDefinition,
    answers: Mapping[int, Any],
    shuffle: ShuffleMapping | None = None,
) -> list[ReviewItem]:
    """Per-question review; *answers* are keyed by display position."""
    items = []
    for o in resolve_order(definition, shuffle):
        answer = answers.get(o.shuffled_index)
        items.append(ReviewItem(
            question=o.question,
            original_index=o.original_index,
            shuffled_index=o.shuffled_index,
            user_answer=answer,
            is_correct=is_correct(o.question, answer),
        ))
    return items
