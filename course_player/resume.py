"""Rebuild quiz resume inputs and course progress from stored records."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from course_player.models import Course, QuizDefinition, ShuffleMapping
from course_player.review import resolve_order


@dataclass
class ResumeState:
    show_results_only: bool = False
    prefilled_answers: dict[int, Any] = field(default_factory=dict)
    initial_score: float | None = None
    initial_attempt_count: int | None = None
    shuffle: ShuffleMapping | None = None

    def session_kwargs(self) -> dict:
        return {
            "show_results_only": self.show_results_only,
            "prefilled_answers": self.prefilled_answers,
            "initial_score": self.initial_score,
            "initial_attempt_count": self.initial_attempt_count,
            "shuffle": self.shuffle,
        }


def restore_quiz_state(
    quiz: QuizDefinition,
    results: list[dict],
    progress: dict | None = None,
) -> ResumeState:
    """Resume inputs for a lesson's quiz.

    A lesson with stored results counts as a completed quiz. Stored answers
    are keyed by question id (or display position for id-less questions)
    and are placed back at their display positions through the shuffled
    order stored with them. Positions without a stored answer stay empty
    rather than shifting later answers forward.
    """
    attempts = progress.get("quiz_attempts") if progress else None
    if not results:
        return ResumeState(initial_attempt_count=attempts)

    order = results[0].get("shuffled_question_order")
    shuffle = ShuffleMapping(tuple(order)) if order else None
    by_key = {str(r["quiz_question_id"]): r for r in results}

    answers: dict[int, Any] = {}
    for o in resolve_order(quiz, shuffle):
        row = by_key.get(str(o.question.key(o.shuffled_index)))
        if row is not None and row.get("user_answer") is not None:
            answers[o.shuffled_index] = row["user_answer"]

    return ResumeState(
        show_results_only=True,
        prefilled_answers=answers,
        initial_score=progress.get("quiz_score") if progress else None,
        initial_attempt_count=attempts,
        shuffle=shuffle,
    )


def course_progress_summary(course: Course, progress_rows: list[dict]) -> dict:
    done = {str(p["lesson_id"]) for p in progress_rows if p.get("completed")}
    completed = [l.id for l in course.lessons if l.id in done]
    total = len(course.lessons)
    return {
        "course_id": course.id,
        "completed_lessons": completed,
        "progress": round(len(completed) / total * 100, 1) if total else 0,
        "all_completed": bool(total) and len(completed) == total,
    }


def can_access_lesson(course: Course, lesson_id: str, completed_lessons: list[str]) -> bool:
    """Required lessons unlock once every earlier required lesson is completed."""
    ids = [l.id for l in course.lessons]
    if str(lesson_id) not in ids:
        return False
    idx = ids.index(str(lesson_id))
    if not course.lessons[idx].is_required:
        return True
    done = set(completed_lessons)
    return all(
        l.id in done for l in course.lessons[:idx] if l.is_required
    )
