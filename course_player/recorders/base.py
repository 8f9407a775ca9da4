from __future__ import annotations

from abc import ABC, abstractmethod

from course_player.models import AnswerSubmission, ShuffleMapping
from course_player.store import KeyValueStore, MemoryStore, lesson_key


class ProgressRecorder(ABC):
    """Persistence boundary for quiz answers and lesson progress.

    Both calls are best-effort: implementations raise ``SubmissionError``
    with a user-facing message and callers decide how to surface it.
    """

    def __init__(self, cache: KeyValueStore | None = None):
        self.cache = cache if cache is not None else MemoryStore()

    @abstractmethod
    async def submit_answers(
        self,
        course_id: str,
        lesson_id: str,
        answers: list[AnswerSubmission],
        shuffle: ShuffleMapping | None = None,
    ) -> dict:
        ...

    @abstractmethod
    async def save_progress(
        self,
        course_id: str,
        lesson_id: str,
        completed: bool,
        score_percentage: float | None = None,
        attempts: int | None = None,
    ) -> dict:
        ...

    @abstractmethod
    async def load_lesson_state(self, course_id: str, lesson_id: str) -> tuple[list[dict], dict | None]:
        """Stored answers and progress record for a lesson, read back from
        wherever this recorder writes them.

        Answers are rows with ``quiz_question_id``, ``user_answer`` and
        ``shuffled_question_order``; the progress record is None when the
        lesson has none.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        ...

    def remember_progress(self, course_id: str, lesson_id: str, record: dict) -> None:
        self.cache.set(lesson_key(course_id, lesson_id, "progress"), record)

    def cached_progress(self, course_id: str, lesson_id: str) -> dict | None:
        """Last progress record this recorder saved successfully for the lesson."""
        return self.cache.get(lesson_key(course_id, lesson_id, "progress"))
